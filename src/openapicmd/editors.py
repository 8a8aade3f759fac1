"""Per-type input interpretation for a single field value.

Each field gets one editor, chosen once from its descriptor by
``select_editor`` and reused for both rendering and key handling. Editors are
stateless apart from the transient ``EditState`` that lives for one edit
session (segment cursor and typed-digit buffer of date/time fields).
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .consts import DATE_FORMAT, DATETIME_FORMAT, NULL_LITERAL, YEAR_MAX, YEAR_MIN
from .enums import KeyName
from .fields import FieldDescriptor
from .keys import Key
from .utils import get_now

UNSET_DISPLAY = "(unset)"


@dataclass
class EditState:
    segment: int = 0
    digits: str = ""

    def reset(self) -> None:
        self.segment = 0
        self.digits = ""


def cycle(options: list[str], value: str, step: int) -> str:
    """Move ``step`` positions through ``options`` circularly.

    A value that is not one of the options starts from the first option.
    """
    if value not in options:
        return options[0]
    return options[(options.index(value) + step) % len(options)]


def _direction(key: Key) -> int:
    if key.name in (KeyName.UP, KeyName.LEFT):
        return -1
    if key.name in (KeyName.DOWN, KeyName.RIGHT) or key.char == " ":
        return 1
    return 0


class FieldEditor:
    kind = "text"
    free_text = True

    def begin(self, value: str, state: EditState) -> str:
        """Prepare an edit session; returns the (possibly initialized) value."""
        state.reset()
        return value

    def handle(self, value: str, key: Key, state: EditState) -> str:
        if key.is_delete:
            return value[:-1]
        if key.is_char and self.accepts(value + key.char):
            return value + key.char
        return value

    def accepts(self, candidate: str) -> bool:
        return True

    def display(self, value: str, state: EditState | None = None) -> str:
        return value


class TextEditor(FieldEditor):
    pass


class IntegerEditor(FieldEditor):
    kind = "integer"
    pattern = re.compile(r"-?\d*")

    def accepts(self, candidate: str) -> bool:
        return self.pattern.fullmatch(candidate) is not None


class NumberEditor(IntegerEditor):
    kind = "number"
    pattern = re.compile(r"-?\d*\.?\d*")


class ChoiceEditor(FieldEditor):
    free_text = False

    def __init__(self, options: list[str]):
        self.options = options

    def handle(self, value: str, key: Key, state: EditState) -> str:
        step = _direction(key)
        if step == 0:
            return value
        return cycle(self.options, value, step)


class BooleanEditor(ChoiceEditor):
    kind = "boolean"

    def __init__(self, nullable: bool = False):
        options = ["true", "false"]
        if nullable:
            options.append(NULL_LITERAL)
        super().__init__(options)

    def begin(self, value: str, state: EditState) -> str:
        state.reset()
        return value if value in self.options else self.options[0]


class EnumEditor(ChoiceEditor):
    kind = "enum"

    def __init__(self, enum_values: list[str], nullable: bool = False):
        options = [""] + [v for v in enum_values if v != ""]
        if nullable and NULL_LITERAL not in options:
            options.append(NULL_LITERAL)
        super().__init__(options)

    def display(self, value: str, state: EditState | None = None) -> str:
        return value if value else UNSET_DISPLAY


# (name, width, low, high); the day high bound is computed per month
_DATE_SEGMENTS = [("year", 4, YEAR_MIN, YEAR_MAX), ("month", 2, 1, 12), ("day", 2, 1, 31)]
_TIME_SEGMENTS = [("hour", 2, 0, 23), ("minute", 2, 0, 59), ("second", 2, 0, 59)]

_DATETIME_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})(?:T(\d{2}):(\d{2}):(\d{2}))?")


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


class DateTimeEditor(FieldEditor):
    """Segment-based editor for ``YYYY-MM-DD`` and ``YYYY-MM-DDTHH:MM:SS`` values.

    Up/down changes the selected segment (wrapping within its bounds),
    left/right moves between segments, digits overwrite the segment once the
    segment's width is reached, ``n`` sets the current date/time and deletion
    clears the value.
    """

    kind = "date"
    free_text = False
    now_char = "n"

    def __init__(self, with_time: bool = False, clock: Callable[[], datetime] = get_now):
        self.with_time = with_time
        self.clock = clock
        self.segments = _DATE_SEGMENTS + (_TIME_SEGMENTS if with_time else [])
        if with_time:
            self.kind = "date-time"

    # ---- value <-> parts -------------------------------------------------

    def parse(self, value: str) -> list[int]:
        m = _DATETIME_RE.match(value or "")
        if m:
            parts = [int(g) for g in m.groups() if g is not None]
            if len(parts) < len(self.segments):
                parts += [0] * (len(self.segments) - len(parts))
            return self.clamp(parts[: len(self.segments)])
        now = self.clock()
        parts = [now.year, now.month, now.day, now.hour, now.minute, now.second]
        return self.clamp(parts[: len(self.segments)])

    def format(self, parts: list[int]) -> str:
        year, month, day = parts[:3]
        text = f"{year:04d}-{month:02d}-{day:02d}"
        if self.with_time:
            hour, minute, second = parts[3:6]
            text += f"T{hour:02d}:{minute:02d}:{second:02d}"
        return text

    def bounds(self, parts: list[int], index: int) -> tuple[int, int]:
        name, _width, low, high = self.segments[index]
        if name == "day":
            high = days_in_month(parts[0], parts[1])
        return low, high

    def clamp(self, parts: list[int]) -> list[int]:
        parts = list(parts)
        for index in range(len(self.segments)):
            low, high = self.bounds(parts, index)
            parts[index] = max(low, min(high, parts[index]))
        return parts

    def step(self, value: str, index: int, delta: int) -> str:
        parts = self.parse(value)
        low, high = self.bounds(parts, index)
        span = high - low + 1
        parts[index] = low + (parts[index] - low + delta) % span
        return self.format(self.clamp(parts))

    def now(self) -> str:
        fmt = DATETIME_FORMAT if self.with_time else DATE_FORMAT
        return self.clock().strftime(fmt)

    # ---- editing ---------------------------------------------------------

    def handle(self, value: str, key: Key, state: EditState) -> str:
        last = len(self.segments) - 1

        if key.is_delete:
            state.digits = ""
            return ""
        if key.name == KeyName.UP:
            state.digits = ""
            return self.step(value, state.segment, 1)
        if key.name == KeyName.DOWN:
            state.digits = ""
            return self.step(value, state.segment, -1)
        if key.name == KeyName.LEFT:
            state.segment = max(0, state.segment - 1)
            state.digits = ""
            return value
        if key.name == KeyName.RIGHT:
            state.segment = min(last, state.segment + 1)
            state.digits = ""
            return value
        if key.is_char and key.char == self.now_char:
            state.digits = ""
            return self.now()
        if key.is_char and key.char.isdigit():
            return self._type_digit(value, key.char, state)
        return value

    def _type_digit(self, value: str, digit: str, state: EditState) -> str:
        width = self.segments[state.segment][1]
        state.digits += digit
        if len(state.digits) < width:
            return value

        parts = self.parse(value)
        parts[state.segment] = int(state.digits)
        state.digits = ""
        state.segment = min(len(self.segments) - 1, state.segment + 1)
        return self.format(self.clamp(parts))

    def display(self, value: str, state: EditState | None = None) -> str:
        if state is None:
            return value or UNSET_DISPLAY
        chunks = re.split(r"([-T:])", self.format(self.parse(value)))
        segment_texts = chunks[::2]
        separators = chunks[1::2]
        if state.digits:
            width = self.segments[state.segment][1]
            segment_texts[state.segment] = state.digits.ljust(width, "_")
        segment_texts[state.segment] = f"[{segment_texts[state.segment]}]"
        out = segment_texts[0]
        for sep, text in zip(separators, segment_texts[1:]):
            out += sep + text
        return out


def select_editor(field: FieldDescriptor) -> FieldEditor:
    """Pick the editor variant for a descriptor."""
    if field.is_array:
        return TextEditor()
    if field.enum_values:
        return EnumEditor(field.enum_values, nullable=field.nullable)

    match field.base_type:
        case "boolean":
            return BooleanEditor(nullable=field.nullable)
        case "integer":
            return IntegerEditor()
        case "number":
            return NumberEditor()
        case "string" if field.format == "date":
            return DateTimeEditor(with_time=False)
        case "string" if field.format == "date-time":
            return DateTimeEditor(with_time=True)
        case _:
            return TextEditor()
