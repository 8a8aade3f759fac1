from dataclasses import dataclass

from openapicmd.config import Config

from .base import Store
from .environment import EnvironmentStore
from .file import JsonFileStore
from .history import HistoryEntry, HistoryStore, SavedRequest, SavedRequestStore
from .lookups import FieldLookupStore, PatternStore, SavedLookupStore


@dataclass
class Stores:
    history: HistoryStore
    saved_requests: SavedRequestStore
    field_lookups: FieldLookupStore
    saved_lookups: SavedLookupStore
    patterns: PatternStore


def get_stores(*, config: Config) -> Stores:
    data_dir = config.data_dir
    return Stores(
        history=HistoryStore(data_dir, max_entries=config.history.max_entries),
        saved_requests=SavedRequestStore(data_dir),
        field_lookups=FieldLookupStore(data_dir),
        saved_lookups=SavedLookupStore(data_dir),
        patterns=PatternStore(data_dir),
    )


__all__ = [
    "EnvironmentStore",
    "FieldLookupStore",
    "HistoryEntry",
    "HistoryStore",
    "JsonFileStore",
    "PatternStore",
    "SavedLookupStore",
    "SavedRequest",
    "SavedRequestStore",
    "Store",
    "Stores",
    "get_stores",
]
