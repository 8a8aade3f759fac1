"""Field lookups: fetch candidate values for a field from another endpoint.

Lookup path syntax (shared with the tree navigator's path translation):

- ``fields[].id``       -> ``body.fields`` is an array, collect ``id`` of each element
- ``[].id``             -> the body itself is an array
- ``data.items[].uuid`` -> navigate ``data`` -> ``items`` (array) -> ``uuid``
- ``nome``              -> ``body.nome`` as a one-element list

A trailing ``[]`` expands an array and an empty segment name means the
current element. Missing intermediate keys drop that branch.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from .enums import LookupStep
from .errors import FetchInProgress, LookupException
from .executor import RequestResult, RequestValues
from .openapi import Endpoint
from .utils import to_text

logger = logging.getLogger(__name__)


class FieldLookup(BaseModel):
    endpoint_id: str
    method: str
    path: str
    value_path: str
    label_path: Optional[str] = None
    query_params: dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None

    def as_endpoint(self) -> Endpoint:
        return Endpoint(id=self.endpoint_id, method=self.method, path=self.path)


class LookupOption(BaseModel):
    value: str
    label: str


def resolve_values(body: Any, path: str) -> list[Any]:
    """Resolve a lookup path to the raw matched values, in document order."""
    current: list[Any] = [body]

    for part in path.strip().split("."):
        expand = part.endswith("[]")
        key = part[:-2] if expand else part
        following: list[Any] = []

        for item in current:
            if key == "":
                val = item
            else:
                if not isinstance(item, dict) or key not in item:
                    continue
                val = item[key]

            if expand:
                if isinstance(val, list):
                    following.extend(val)
            else:
                following.append(val)

        current = following

    return [v for v in current if v is not None]


def resolve_path_array(body: Any, path: str) -> list[str]:
    """Resolve a lookup path against a response body into strings.

    Always returns a list, empty when nothing matched.
    """
    return [to_text(v) for v in resolve_values(body, path)]


def extract_options(body: Any, value_path: str, label_path: Optional[str] = None) -> list[LookupOption]:
    """Pair values with labels by position; a missing label falls back to the value."""
    values = resolve_path_array(body, value_path)
    labels = resolve_path_array(body, label_path) if label_path else []
    if labels and len(labels) != len(values):
        logger.warning(
            f"Lookup label path '{label_path}' matched {len(labels)} items, "
            f"value path '{value_path}' matched {len(values)}"
        )
    return [
        LookupOption(value=v, label=labels[i] if i < len(labels) else v)
        for i, v in enumerate(values)
    ]


Executor = Callable[[Endpoint, RequestValues], RequestResult]


class LookupRunner:
    """Runs lookups through an executor, one at a time."""

    def __init__(self, executor: Executor):
        self.executor = executor
        self.fetching = False

    def run(self, lookup: FieldLookup) -> list[LookupOption]:
        """Execute the lookup request and extract the candidate options.

        Raises:
            FetchInProgress: a lookup is already running on this runner
            LookupException: network error, empty body or no matches
        """
        if self.fetching:
            raise FetchInProgress("A lookup is already in progress")

        values = RequestValues(query_params=dict(lookup.query_params), body=lookup.body or "")
        self.fetching = True
        try:
            result = self.executor(lookup.as_endpoint(), values)
        finally:
            self.fetching = False

        if result.error:
            raise LookupException(f"Lookup request failed: {result.error}")
        if result.body is None or result.body == "":
            raise LookupException(f"Lookup response is empty (status {result.status})")

        body = result.body
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except ValueError:
                pass

        options = extract_options(body, lookup.value_path, lookup.label_path)
        if not options:
            raise LookupException(f"No values found at '{lookup.value_path}'")

        logger.info(f"Lookup {lookup.endpoint_id} returned {len(options)} options")
        return options


@dataclass
class LookupWizard:
    """Step-by-step definition of a lookup: endpoint, value path, label path."""

    endpoints: list[Endpoint]
    step: LookupStep = LookupStep.ENDPOINT
    cursor: int = 0
    buffer: str = ""
    endpoint: Optional[Endpoint] = None
    value_path: str = ""
    label_path: str = ""
    options: list[LookupOption] = field(default_factory=list)

    def move(self, delta: int) -> None:
        items = self.endpoints if self.step == LookupStep.ENDPOINT else self.options
        if items:
            self.cursor = max(0, min(len(items) - 1, self.cursor + delta))

    def type_char(self, char: str) -> None:
        if self.step in (LookupStep.VALUE_PATH, LookupStep.LABEL_PATH):
            self.buffer += char

    def backspace(self) -> None:
        self.buffer = self.buffer[:-1]

    def seed_value_path(self, path: str) -> None:
        """Start the value path from a navigated tree position."""
        self.value_path = path
        if self.step == LookupStep.VALUE_PATH:
            self.buffer = path

    def confirm(self) -> FieldLookup | None:
        """Advance one step; returns the finished lookup after the label path."""
        match self.step:
            case LookupStep.ENDPOINT:
                if not self.endpoints:
                    return None
                self.endpoint = self.endpoints[self.cursor]
                self.step = LookupStep.VALUE_PATH
                self.buffer = self.value_path
                return None
            case LookupStep.VALUE_PATH:
                if not self.buffer.strip():
                    return None
                self.value_path = self.buffer.strip()
                self.step = LookupStep.LABEL_PATH
                self.buffer = ""
                return None
            case LookupStep.LABEL_PATH:
                self.label_path = self.buffer.strip()
                return self.build()
            case _:
                return None

    def build(self) -> FieldLookup:
        assert self.endpoint is not None
        return FieldLookup(
            endpoint_id=self.endpoint.id,
            method=self.endpoint.method,
            path=self.endpoint.path,
            value_path=self.value_path,
            label_path=self.label_path or None,
        )

    def show_options(self, options: list[LookupOption]) -> None:
        self.options = options
        self.step = LookupStep.PICK
        self.cursor = 0

    def selected(self) -> LookupOption | None:
        if self.step != LookupStep.PICK or not self.options:
            return None
        return self.options[self.cursor]
