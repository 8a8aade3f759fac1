"""Discrete input events."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import KeyName


@dataclass(frozen=True)
class Key:
    """One keystroke: either a printable ``char`` or a named key, plus modifiers."""

    char: str = ""
    name: KeyName | None = None
    ctrl: bool = False
    shift: bool = False

    @classmethod
    def of(cls, char: str) -> "Key":
        return cls(char=char)

    @classmethod
    def named(cls, name: KeyName, *, ctrl: bool = False, shift: bool = False) -> "Key":
        return cls(name=name, ctrl=ctrl, shift=shift)

    @property
    def is_char(self) -> bool:
        return bool(self.char) and self.name is None and not self.ctrl

    @property
    def is_delete(self) -> bool:
        return self.name in (KeyName.BACKSPACE, KeyName.DELETE)

    def is_(self, name: KeyName) -> bool:
        return self.name == name


UP = Key.named(KeyName.UP)
DOWN = Key.named(KeyName.DOWN)
LEFT = Key.named(KeyName.LEFT)
RIGHT = Key.named(KeyName.RIGHT)
ENTER = Key.named(KeyName.ENTER)
CTRL_ENTER = Key.named(KeyName.ENTER, ctrl=True)
ESCAPE = Key.named(KeyName.ESCAPE)
TAB = Key.named(KeyName.TAB)
SHIFT_TAB = Key.named(KeyName.TAB, shift=True)
BACKSPACE = Key.named(KeyName.BACKSPACE)
