"""Field model: flattens a resolved schema into ordered field descriptors."""

from __future__ import annotations

from typing import Any, Iterator, Optional

from pydantic import BaseModel

from .consts import MAX_FIELD_DEPTH
from .schema import UNSET, ObjectNode, SchemaNode, has_properties, resolve, type_label
from .utils import to_text


class FieldDescriptor(BaseModel):
    label: str
    full_key: str
    type: str
    required: bool = False
    indent: int = 0
    is_group_header: bool = False
    nullable: bool = False
    enum_values: Optional[list[str]] = None
    format: Optional[str] = None
    description: Optional[str] = None
    example: Any = None

    @property
    def base_type(self) -> str:
        """Type without nullable or array suffixes, e.g. ``integer`` for ``integer?``."""
        return self.type.replace("?", "").replace("[]", "")

    @property
    def is_array(self) -> bool:
        return self.type.rstrip("?").endswith("[]")

    @property
    def parent_key(self) -> str | None:
        if "." not in self.full_key:
            return None
        return self.full_key.rsplit(".", 1)[0]


def _iter_properties(
    node: SchemaNode, prefix: str, depth: int, max_depth: int
) -> Iterator[tuple[str, str, SchemaNode, bool, bool, int]]:
    """Yield ``(name, full_key, node, required, is_group, depth)`` in declared order.

    A group is always followed by its children before the next sibling.
    """
    if not isinstance(node, ObjectNode):
        return

    for name, sub in node.properties.items():
        full_key = f"{prefix}.{name}" if prefix else name
        required = name in node.required
        is_group = has_properties(sub) and depth < max_depth
        yield name, full_key, sub, required, is_group, depth
        if is_group:
            yield from _iter_properties(sub, full_key, depth + 1, max_depth)


def build_fields(
    schema: Any, prefix: str = "", depth: int = 0, max_depth: int = MAX_FIELD_DEPTH
) -> list[FieldDescriptor]:
    """Build the ordered field descriptors for a request body schema.

    Objects nested deeper than ``max_depth`` become opaque ``object`` leaves.
    """
    root = resolve(schema)
    fields: list[FieldDescriptor] = []

    for name, full_key, node, required, is_group, level in _iter_properties(
        root, prefix, depth, max_depth
    ):
        enum_values = [to_text(v) for v in node.enum] or None
        fields.append(
            FieldDescriptor(
                label=name,
                full_key=full_key,
                type=type_label(node),
                required=required,
                indent=level,
                is_group_header=is_group,
                nullable=node.nullable,
                enum_values=enum_values,
                format=node.format,
                description=node.description,
                example=None if node.example is UNSET else node.example,
            )
        )

    return fields


def default_value(node: SchemaNode) -> str:
    """Seed value for a leaf: default, then example, then first enum value."""
    if node.default is not UNSET:
        return to_text(node.default)
    if node.example is not UNSET:
        return to_text(node.example)
    if node.enum:
        return to_text(node.enum[0])
    return ""


def initial_values(schema: Any, max_depth: int = MAX_FIELD_DEPTH) -> dict[str, str]:
    """Initial flat value map for every leaf field of ``schema``."""
    if schema is None:
        return {}

    root = resolve(schema)
    return {
        full_key: default_value(node)
        for _name, full_key, node, _required, is_group, _depth in _iter_properties(
            root, "", 0, max_depth
        )
        if not is_group
    }


def find_field(fields: list[FieldDescriptor], full_key: str) -> FieldDescriptor | None:
    for f in fields:
        if f.full_key == full_key:
            return f
    return None
