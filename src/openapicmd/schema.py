"""Schema resolution.

Raw schema nodes arrive as plain mappings from the API-description loader.
``resolve`` normalizes them once into a small set of tagged node types so the
field builder can pattern-match instead of probing optional keys:

- ``ObjectNode``: keyed properties plus the required-list
- ``ArrayNode``: array of ``items``
- ``PrimitiveNode``: string/number/integer/boolean (or any other named type)
- ``RefNode``: an unresolved ``$ref``, named after its terminal segment
- ``AnyNode``: anything else

``allOf`` compositions are merged into an ``ObjectNode`` and nullable unions
(``oneOf``/``anyOf`` with a ``null`` alternative, ``nullable: true`` or a
``type`` list containing ``"null"``) are unwrapped into their non-null
alternative with ``nullable=True``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

PRIMITIVE_TYPES = ("string", "number", "integer", "boolean")


@dataclass(frozen=True, kw_only=True)
class SchemaNode:
    nullable: bool = False
    description: str | None = None
    format: str | None = None
    enum: tuple[Any, ...] = ()
    default: Any = UNSET
    example: Any = UNSET


@dataclass(frozen=True, kw_only=True)
class ObjectNode(SchemaNode):
    properties: dict[str, SchemaNode] = field(default_factory=dict)
    required: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class ArrayNode(SchemaNode):
    items: SchemaNode | None = None


@dataclass(frozen=True, kw_only=True)
class PrimitiveNode(SchemaNode):
    kind: str = "string"


@dataclass(frozen=True, kw_only=True)
class RefNode(SchemaNode):
    name: str = "object"


@dataclass(frozen=True, kw_only=True)
class AnyNode(SchemaNode):
    pass


def _is_null_marker(node: Any) -> bool:
    if node is None:
        return True
    if isinstance(node, Mapping):
        t = node.get("type")
        return t == "null" or t == ["null"]
    return False


def _annotations(raw: Mapping[str, Any]) -> dict[str, Any]:
    enum = raw.get("enum")
    examples = raw.get("examples")
    example = raw.get("example", UNSET)
    if example is UNSET and isinstance(examples, list) and examples:
        example = examples[0]
    description = raw.get("description")
    fmt = raw.get("format")
    return {
        "nullable": bool(raw.get("nullable", False)),
        "description": description if isinstance(description, str) else None,
        "format": fmt if isinstance(fmt, str) else None,
        "enum": tuple(enum) if isinstance(enum, list) else (),
        "default": raw.get("default", UNSET),
        "example": example,
    }


def _overlay(inner: SchemaNode, outer: dict[str, Any], nullable: bool) -> SchemaNode:
    """Apply annotations of a wrapping node where the wrapped node has none."""
    changes: dict[str, Any] = {"nullable": nullable or inner.nullable}
    for name in ("description", "format", "enum"):
        if outer[name] and not getattr(inner, name):
            changes[name] = outer[name]
    for name in ("default", "example"):
        if outer[name] is not UNSET and getattr(inner, name) is UNSET:
            changes[name] = outer[name]
    return replace(inner, **changes)


def _merge_all_of(raw: Mapping[str, Any], parts: list[Any]) -> ObjectNode:
    properties: dict[str, SchemaNode] = {}
    required: list[str] = []
    for part in parts:
        resolved = resolve(part)
        if isinstance(resolved, ObjectNode):
            properties.update(resolved.properties)
            required.extend(r for r in resolved.required if r not in required)

    # Sibling keys next to allOf contribute as well.
    own = {k: v for k, v in raw.items() if k != "allOf"}
    if own.get("properties") or own.get("required"):
        resolved = _resolve_object(own, _annotations(own))
        properties.update(resolved.properties)
        required.extend(r for r in resolved.required if r not in required)

    return ObjectNode(properties=properties, required=tuple(required), **_annotations(raw))


def _resolve_object(raw: Mapping[str, Any], annotations: dict[str, Any]) -> ObjectNode:
    props = raw.get("properties")
    properties: dict[str, SchemaNode] = {}
    if isinstance(props, Mapping):
        for name, sub in props.items():
            properties[str(name)] = resolve(sub)
    required = raw.get("required")
    req = tuple(str(r) for r in required) if isinstance(required, list) else ()
    return ObjectNode(properties=properties, required=req, **annotations)


def _resolve_union(raw: Mapping[str, Any], alternatives: list[Any]) -> SchemaNode:
    annotations = _annotations(raw)
    non_null = [a for a in alternatives if not _is_null_marker(a)]
    has_null = len(non_null) < len(alternatives)

    if not non_null:
        return AnyNode(**{**annotations, "nullable": True})

    inner = resolve(non_null[0])
    return _overlay(inner, annotations, nullable=has_null or annotations["nullable"])


def resolve(node: Any) -> SchemaNode:
    """Normalize a raw schema mapping into a canonical ``SchemaNode``.

    Resolving an already canonical node returns it unchanged. Anything that is
    not a mapping degrades to ``AnyNode``.
    """
    if isinstance(node, SchemaNode):
        return node
    if not isinstance(node, Mapping):
        return AnyNode()

    annotations = _annotations(node)

    all_of = node.get("allOf")
    if isinstance(all_of, list):
        return _merge_all_of(node, all_of)

    for union_key in ("oneOf", "anyOf"):
        alternatives = node.get(union_key)
        if isinstance(alternatives, list) and alternatives:
            return _resolve_union(node, alternatives)

    ref = node.get("$ref")
    if isinstance(ref, str):
        name = ref.rsplit("/", 1)[-1] or "object"
        return RefNode(name=name, **annotations)

    schema_type = node.get("type")
    if isinstance(schema_type, list):
        non_null = [t for t in schema_type if t != "null"]
        if len(non_null) < len(schema_type):
            annotations["nullable"] = True
        if not non_null:
            return AnyNode(**annotations)
        schema_type = non_null[0]

    if schema_type == "object" or (schema_type is None and "properties" in node):
        return _resolve_object(node, annotations)

    if schema_type == "array":
        items = node.get("items")
        return ArrayNode(items=resolve(items) if items is not None else None, **annotations)

    if isinstance(schema_type, str) and schema_type:
        return PrimitiveNode(kind=schema_type, **annotations)

    return AnyNode(**annotations)


def type_label(node: SchemaNode) -> str:
    """Return the display type of a node, e.g. ``integer``, ``string?``, ``Pet[]``."""
    match node:
        case ObjectNode():
            label = "object"
        case ArrayNode(items=None):
            label = "any[]"
        case ArrayNode(items=items):
            label = type_label(items) + "[]"
        case PrimitiveNode(kind=kind):
            label = kind
        case RefNode(name=name):
            label = name
        case _:
            label = "any"

    if node.nullable and not label.endswith("?"):
        label += "?"
    return label


def has_properties(node: SchemaNode) -> bool:
    return isinstance(node, ObjectNode) and bool(node.properties)
