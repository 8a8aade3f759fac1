"""API description loading.

Turns an OpenAPI 2/3 document into the endpoint models the request form
consumes. Local ``$ref`` pointers are dereferenced; cyclic references are left
as ``$ref`` nodes, which the schema resolver names after their target.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import requests
import yaml
from pydantic import BaseModel, Field

from .consts import DEFAULT_CONTENT_TYPE, HTTP_METHODS, TIMEOUT_HTTP_REQUEST
from .enums import ParameterLocation
from .errors import SpecException
from .fields import FieldDescriptor
from .schema import UNSET, resolve, type_label
from .utils import to_text

logger = logging.getLogger(__name__)


class Parameter(BaseModel):
    name: str
    location: ParameterLocation = Field(alias="in")
    required: bool = False
    type: str = "string"
    description: Optional[str] = None
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")
    default: Optional[str] = None
    example: Any = None

    model_config = {"populate_by_name": True}

    def to_field(self) -> FieldDescriptor:
        """Describe the parameter as a single leaf field so editors apply to it."""
        node = resolve(self.schema_ or {"type": self.type})
        return FieldDescriptor(
            label=self.name,
            full_key=self.name,
            type=type_label(node),
            required=self.required,
            nullable=node.nullable,
            enum_values=[to_text(v) for v in node.enum] or None,
            format=node.format,
            description=self.description,
            example=self.example if node.example is UNSET else node.example,
        )


class RequestBody(BaseModel):
    required: bool = False
    content_type: str = DEFAULT_CONTENT_TYPE
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")

    model_config = {"populate_by_name": True}


class Endpoint(BaseModel):
    id: str
    method: str
    path: str
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = []
    parameters: list[Parameter] = []
    request_body: Optional[RequestBody] = None
    operation_id: Optional[str] = None

    def params_in(self, location: ParameterLocation) -> list[Parameter]:
        return [p for p in self.parameters if p.location == location]


class TagGroup(BaseModel):
    name: str
    endpoints: list[Endpoint]


class ParsedSpec(BaseModel):
    title: str = ""
    version: str = ""
    description: Optional[str] = None
    servers: list[str] = []
    endpoints: list[Endpoint] = []
    tag_groups: list[TagGroup] = []

    def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        for endpoint in self.endpoints:
            if endpoint.id == endpoint_id:
                return endpoint
        return None


def _pointer(document: dict[str, Any], ref: str) -> Any:
    target: Any = document
    for raw in ref[2:].split("/"):
        part = raw.replace("~1", "/").replace("~0", "~")
        if isinstance(target, list):
            target = target[int(part)]
        else:
            target = target[part]
    return target


def dereference(document: dict[str, Any]) -> dict[str, Any]:
    """Inline local ``#/...`` references; references that loop are kept as-is."""

    def walk(node: Any, stack: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [walk(item, stack) for item in node]
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/"):
            if ref in stack:
                return {"$ref": ref}
            try:
                target = _pointer(document, ref)
            except (KeyError, IndexError, ValueError, TypeError):
                logger.warning(f"Unresolvable reference: {ref}")
                return {"$ref": ref}
            resolved = walk(target, stack + (ref,))
            siblings = {k: walk(v, stack) for k, v in node.items() if k != "$ref"}
            if siblings and isinstance(resolved, dict):
                return {**resolved, **siblings}
            return resolved

        return {k: walk(v, stack) for k, v in node.items()}

    return walk(document, ())


def _normalize_parameters(params: Any) -> list[Parameter]:
    result = []
    for raw in params or []:
        if not isinstance(raw, dict) or "name" not in raw or "in" not in raw:
            continue
        schema = raw.get("schema") if isinstance(raw.get("schema"), dict) else None
        type_ = "string"
        default = None
        if schema is not None:
            type_ = schema.get("type") or "string"
            if "default" in schema:
                default = to_text(schema["default"])
        elif raw.get("type"):
            type_ = raw["type"]
        if default is None and "default" in raw:
            default = to_text(raw["default"])
        if not isinstance(type_, str):
            type_ = "string"
        try:
            result.append(
                Parameter(
                    name=str(raw["name"]),
                    location=ParameterLocation(raw["in"]),
                    required=bool(raw.get("required")),
                    type=type_,
                    description=raw.get("description"),
                    schema=schema,
                    default=default,
                    example=raw.get("example"),
                )
            )
        except ValueError:
            logger.warning(f"Skipping parameter with unknown location: {raw.get('in')}")
    return result


def _request_body(operation: dict[str, Any], params: list[Parameter]) -> RequestBody | None:
    rb = operation.get("requestBody")
    if isinstance(rb, dict):
        content = rb.get("content") or {}
        content_type = next(iter(content), DEFAULT_CONTENT_TYPE)
        media = content.get(content_type) or {}
        return RequestBody(
            required=bool(rb.get("required")),
            content_type=content_type,
            schema=media.get("schema") if isinstance(media, dict) else None,
        )

    for p in params:
        if p.location == ParameterLocation.BODY:
            return RequestBody(required=p.required, schema=p.schema_)
    return None


def _tag_groups(endpoints: list[Endpoint]) -> list[TagGroup]:
    groups: dict[str, list[Endpoint]] = {}
    for ep in endpoints:
        for tag in ep.tags or ["default"]:
            groups.setdefault(tag, []).append(ep)
    return [TagGroup(name=name, endpoints=eps) for name, eps in groups.items()]


def _servers(document: dict[str, Any]) -> list[str]:
    if "swagger" in document:
        schemes = document.get("schemes") or ["https"]
        host = document.get("host") or "localhost"
        return [f"{schemes[0]}://{host}{document.get('basePath') or ''}"]
    return [s["url"] for s in document.get("servers") or [] if isinstance(s, dict) and "url" in s]


def parse_spec(document: dict[str, Any]) -> ParsedSpec:
    """Build a ``ParsedSpec`` from an already decoded OpenAPI document."""
    if not isinstance(document, dict) or not isinstance(document.get("paths"), dict):
        raise SpecException("API description has no 'paths' section")

    doc = dereference(document)
    endpoints: list[Endpoint] = []

    for path, path_item in doc["paths"].items():
        if not isinstance(path_item, dict):
            continue
        shared = _normalize_parameters(path_item.get("parameters"))

        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue

            merged: dict[tuple[str, str], Parameter] = {}
            for p in shared + _normalize_parameters(operation.get("parameters")):
                merged[(p.location.value, p.name)] = p
            params = list(merged.values())
            tags = operation.get("tags")

            endpoints.append(
                Endpoint(
                    id=f"{method}:{path}",
                    method=method,
                    path=path,
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    tags=tags if isinstance(tags, list) else [],
                    parameters=[p for p in params if p.location != ParameterLocation.BODY],
                    request_body=_request_body(operation, params),
                    operation_id=operation.get("operationId"),
                )
            )

    info = doc.get("info") or {}
    return ParsedSpec(
        title=str(info.get("title", "")),
        version=str(info.get("version", "")),
        description=info.get("description"),
        servers=_servers(doc),
        endpoints=endpoints,
        tag_groups=_tag_groups(endpoints),
    )


def decode(text: str) -> dict[str, Any]:
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SpecException(f"API description is neither JSON nor YAML: {e}") from e
    if not isinstance(data, dict):
        raise SpecException("API description must be a mapping")
    return data


def load_spec(source: str, timeout: int = TIMEOUT_HTTP_REQUEST) -> ParsedSpec:
    """Load an API description from a file path or an http(s) URL."""
    if source.startswith(("http://", "https://")):
        logger.info(f"Downloading API description: {source}")
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SpecException(f"Failed to download API description: {e}") from e
        text = response.text
    else:
        path = Path(source).expanduser()
        if not path.is_file():
            raise SpecException(f"API description not found: {source}")
        text = path.read_text(encoding="utf-8")

    return parse_spec(decode(text))
