import copy
import json
import logging
import shutil
from pathlib import Path
from typing import Any

from openapicmd.errors import StorageException

logger = logging.getLogger(__name__)


class JsonFileStore:
    """One JSON document on disk, replaced atomically on every save."""

    def __init__(self, path: Path | str, default: Any):
        self.path = Path(path)
        self.default = default

    def load(self) -> Any:
        if not self.path.exists():
            return copy.deepcopy(self.default)
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise StorageException(f"Corrupt store file {self.path}: {e}") from e
        except OSError as e:
            raise StorageException(f"Failed to read {self.path}: {e}") from e

    def save(self, data: Any) -> None:
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            shutil.move(str(temp_path), str(self.path))
        except OSError as e:
            raise StorageException(f"Failed to write {self.path}: {e}") from e
        logger.debug(f"Saved {self.path}")
