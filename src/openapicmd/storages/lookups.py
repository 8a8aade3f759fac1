"""Keyed stores: per-field lookups, named lookups and field-name patterns."""

from pathlib import Path

from openapicmd.consts import FIELD_LOOKUPS_FILE, FIELD_PATTERNS_FILE, SAVED_LOOKUPS_FILE
from openapicmd.lookups import FieldLookup

from .base import Store
from .file import JsonFileStore


class LookupStore:
    """Lookup definitions keyed by name."""

    filename = FIELD_LOOKUPS_FILE

    def __init__(self, data_dir: Path | str):
        self.file: Store = JsonFileStore(Path(data_dir) / self.filename, {})

    def get_all(self) -> dict[str, FieldLookup]:
        return {k: FieldLookup.model_validate(v) for k, v in self.file.load().items()}

    def get(self, key: str) -> FieldLookup | None:
        return self.get_all().get(key)

    def set(self, key: str, lookup: FieldLookup) -> None:
        data = self.file.load()
        data[key] = lookup.model_dump(mode="json")
        self.file.save(data)

    def remove(self, key: str) -> None:
        data = self.file.load()
        data.pop(key, None)
        self.file.save(data)


class FieldLookupStore(LookupStore):
    """Lookup attached to a field name, offered whenever that field is focused."""

    filename = FIELD_LOOKUPS_FILE


class SavedLookupStore(LookupStore):
    """Reusable lookup definitions under a user-chosen name."""

    filename = SAVED_LOOKUPS_FILE


class PatternStore:
    """Field label -> generator id, trained by applying a generator to a field."""

    def __init__(self, data_dir: Path | str):
        self.file: Store = JsonFileStore(Path(data_dir) / FIELD_PATTERNS_FILE, {})

    def get_all(self) -> dict[str, str]:
        return dict(self.file.load())

    def set(self, field_name: str, generator_id: str) -> None:
        data = self.file.load()
        data[field_name] = generator_id
        self.file.save(data)

    def remove(self, field_name: str) -> None:
        data = self.file.load()
        data.pop(field_name, None)
        self.file.save(data)
