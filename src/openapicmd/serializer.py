"""Conversion between flat field value maps and nested JSON values.

Field values are always kept as strings keyed by dot-notation ``full_key``.
Typed values are derived on demand from the descriptor type.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Iterable, Mapping

from .consts import NULL_LITERAL
from .fields import FieldDescriptor
from .utils import to_text

logger = logging.getLogger(__name__)


class _Absent:
    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()

NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

STRUCTURED_TYPES = ("object", "any")


def _parse_number(raw: str) -> Any:
    text = raw.strip()
    if not NUMBER_RE.fullmatch(text):
        return raw
    if any(c in text for c in ".eE"):
        number = float(text)
        return number if math.isfinite(number) else raw
    return int(text)


def coerce(raw: str, type_: str) -> Any:
    """Convert a raw field string into the typed value sent on the wire.

    Returns ``ABSENT`` for an empty string. Never raises: unparsable numbers
    and structured values fall back to the raw string.
    """
    if raw == "":
        return ABSENT
    if raw == NULL_LITERAL:
        return None

    base = type_.rstrip("?")
    if base.endswith("[]") or base in STRUCTURED_TYPES:
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    if base in ("number", "integer"):
        return _parse_number(raw)
    if base == "boolean":
        return raw == "true"
    return raw


def is_hidden(full_key: str, collapsed: Iterable[str]) -> bool:
    """True when any ancestor group of ``full_key`` is collapsed."""
    return any(full_key.startswith(group + ".") for group in collapsed)


def is_excluded(full_key: str, collapsed: Iterable[str]) -> bool:
    """True when the key itself or one of its ancestors is collapsed."""
    collapsed = set(collapsed)
    return full_key in collapsed or is_hidden(full_key, collapsed)


def set_nested(target: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = target
    for part in parts[:-1]:
        if not isinstance(cur.get(part), dict):
            cur[part] = {}
        cur = cur[part]
    cur[parts[-1]] = value


def get_nested(source: Any, path: str) -> Any:
    cur = source
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return ABSENT
        cur = cur[part]
    return cur


def serialize(
    fields: list[FieldDescriptor],
    values: Mapping[str, str],
    collapsed: Iterable[str] = (),
) -> dict[str, Any]:
    """Build the nested request body from flat values.

    Group headers and fields under a collapsed group are skipped. Returns an
    empty dict when no field produced a value.
    """
    collapsed = set(collapsed)
    result: dict[str, Any] = {}
    for f in fields:
        if f.is_group_header or is_excluded(f.full_key, collapsed):
            continue
        coerced = coerce(values.get(f.full_key, ""), f.type)
        if coerced is not ABSENT:
            set_nested(result, f.full_key, coerced)
    return result


def serialize_text(
    fields: list[FieldDescriptor],
    values: Mapping[str, str],
    collapsed: Iterable[str] = (),
) -> str:
    """JSON text of ``serialize``, or an empty string when nothing is set."""
    result = serialize(fields, values, collapsed)
    return json.dumps(result, ensure_ascii=False) if result else ""


def deserialize(fields: list[FieldDescriptor], nested: Any) -> dict[str, str]:
    """Flatten a nested value back into field strings for every known leaf."""
    values: dict[str, str] = {}
    for f in fields:
        if f.is_group_header:
            continue
        found = get_nested(nested, f.full_key)
        if found is ABSENT or found is None:
            continue
        values[f.full_key] = to_text(found)
    return values


def flatten(obj: Any, prefix: str = "") -> dict[str, str]:
    """Flatten nested objects into dot-notation strings, independent of any schema.

    Used for history snapshots. Arrays and primitives are leaves; ``None``
    becomes an empty string.
    """
    if not isinstance(obj, Mapping):
        return {}
    result: dict[str, str] = {}
    for k, v in obj.items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, Mapping):
            result.update(flatten(v, key))
        else:
            result[key] = "" if v is None else to_text(v)
    return result
