"""``{{name}}`` variable references inside field values."""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from .fields import FieldDescriptor
from .generators import generate
from .utils import to_text

logger = logging.getLogger(__name__)

VARIABLE_RE = re.compile(r"\{\{([^{}]+)\}\}")


def reference(name: str) -> str:
    return "{{" + name + "}}"


def has_variable(value: str) -> bool:
    return VARIABLE_RE.search(value or "") is not None


def variable_names(value: str) -> list[str]:
    return VARIABLE_RE.findall(value or "")


def resolve(value: str, variables: Mapping[str, str]) -> str:
    """Replace every bound ``{{name}}`` token with its value.

    Unbound tokens are left intact.
    """
    if not value:
        return value
    for name, bound in variables.items():
        value = value.replace(reference(name), bound)
    return value


def resolve_all(values: Mapping[str, str], variables: Mapping[str, str]) -> dict[str, str]:
    return {k: resolve(v, variables) for k, v in values.items()}


def insert(value: str, name: str) -> str:
    """Append a reference to ``name`` at the end of ``value``."""
    return (value or "") + reference(name)


def clear(value: str) -> str:
    """Empty a value that holds a variable reference; other values are kept."""
    return "" if has_variable(value) else value


def match_variable(field_name: str, variables: Mapping[str, str]) -> str | None:
    """Reference to the variable whose name equals ``field_name`` ignoring case."""
    lowered = field_name.lower()
    for name in variables:
        if name.lower() == lowered:
            return reference(name)
    return None


def smart_fill(
    field: FieldDescriptor,
    variables: Mapping[str, str],
    patterns: Optional[Mapping[str, str]] = None,
) -> str | None:
    """Value for an empty field: schema example, matching variable, trained pattern.

    Returns None when nothing applies and the field should stay blank.
    """
    if field.example is not None:
        return to_text(field.example)

    ref = match_variable(field.label, variables)
    if ref is not None:
        return ref

    generator_id = (patterns or {}).get(field.label)
    if generator_id:
        value = generate(generator_id)
        if value is None:
            logger.warning(f"Unknown generator '{generator_id}' trained for field {field.label}")
        return value

    return None


class VariableStore:
    """In-memory variable dictionary.

    ``storages.EnvironmentStore`` offers the same ``variables`` and
    ``set_variable`` surface backed by the config file.
    """

    def __init__(self, variables: Optional[Mapping[str, str]] = None):
        self.variables: dict[str, str] = dict(variables or {})

    def set_variable(self, name: str, value: str) -> None:
        self.variables[name] = value
