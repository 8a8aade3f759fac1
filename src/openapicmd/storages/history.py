"""Request history and named saved requests."""

import json
import logging
import uuid
from pathlib import Path
from time import time
from typing import Optional

from pydantic import BaseModel, Field

from openapicmd.consts import HISTORY_FILE, HISTORY_MAX_ENTRIES, SAVED_REQUESTS_FILE
from openapicmd.executor import RequestResult, RequestValues
from openapicmd.serializer import flatten

from .base import Store
from .file import JsonFileStore

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def body_field_values(body: str) -> dict[str, str]:
    """Flat snapshot of a JSON body used to repopulate individual form fields."""
    if not body.strip():
        return {}
    try:
        return flatten(json.loads(body))
    except ValueError:
        return {}


class ResultSummary(BaseModel):
    status: int
    status_text: str = ""
    duration_ms: int = 0
    error: Optional[str] = None

    @classmethod
    def of(cls, result: RequestResult) -> "ResultSummary":
        return cls(
            status=result.status,
            status_text=result.status_text,
            duration_ms=result.duration_ms,
            error=result.error,
        )


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    timestamp: float = Field(default_factory=time)
    endpoint_id: str
    method: str
    path: str
    env_name: Optional[str] = None
    values: RequestValues
    body_field_values: dict[str, str] = Field(default_factory=dict)
    result: ResultSummary


class SavedRequest(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    endpoint_id: str
    method: str
    path: str
    env_name: Optional[str] = None
    values: RequestValues
    body_field_values: dict[str, str] = Field(default_factory=dict)
    saved_at: float = Field(default_factory=time)


class HistoryStore:
    """Most recent submissions first, truncated to ``max_entries``."""

    def __init__(self, data_dir: Path | str, max_entries: int = HISTORY_MAX_ENTRIES):
        self.file: Store = JsonFileStore(Path(data_dir) / HISTORY_FILE, [])
        self.max_entries = max_entries

    def get_all(self) -> list[HistoryEntry]:
        return [HistoryEntry.model_validate(item) for item in self.file.load()]

    def _write(self, entries: list[HistoryEntry]) -> None:
        self.file.save([e.model_dump(mode="json") for e in entries])

    def add(
        self,
        endpoint_id: str,
        method: str,
        path: str,
        env_name: Optional[str],
        values: RequestValues,
        result: ResultSummary,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            endpoint_id=endpoint_id,
            method=method,
            path=path,
            env_name=env_name,
            values=values,
            body_field_values=body_field_values(values.body),
            result=result,
        )
        self._write([entry, *self.get_all()][: self.max_entries])
        logger.debug(f"History entry added: {method.upper()} {path} -> {result.status}")
        return entry

    def get(self, entry_id: str) -> HistoryEntry | None:
        return next((e for e in self.get_all() if e.id == entry_id), None)

    def remove(self, entry_id: str) -> None:
        self._write([e for e in self.get_all() if e.id != entry_id])

    def clear(self) -> None:
        self._write([])


class SavedRequestStore:
    def __init__(self, data_dir: Path | str):
        self.file: Store = JsonFileStore(Path(data_dir) / SAVED_REQUESTS_FILE, [])

    def get_all(self) -> list[SavedRequest]:
        return [SavedRequest.model_validate(item) for item in self.file.load()]

    def _write(self, items: list[SavedRequest]) -> None:
        self.file.save([s.model_dump(mode="json") for s in items])

    def save(
        self,
        name: str,
        endpoint_id: str,
        method: str,
        path: str,
        env_name: Optional[str],
        values: RequestValues,
    ) -> SavedRequest:
        item = SavedRequest(
            name=name,
            endpoint_id=endpoint_id,
            method=method,
            path=path,
            env_name=env_name,
            values=values,
            body_field_values=body_field_values(values.body),
        )
        self._write([item, *self.get_all()])
        return item

    def rename(self, request_id: str, name: str) -> None:
        self._write(
            [s.model_copy(update={"name": name}) if s.id == request_id else s for s in self.get_all()]
        )

    def remove(self, request_id: str) -> None:
        self._write([s for s in self.get_all() if s.id != request_id])
