"""Environment variables and recent specs written back into the TOML config."""

import logging
import shutil
from pathlib import Path
from typing import Optional

import tomlkit
from tomlkit.exceptions import TOMLKitError

from openapicmd.config import Config, Environment
from openapicmd.consts import RECENT_SPECS_MAX
from openapicmd.errors import StorageException

logger = logging.getLogger(__name__)


class EnvironmentStore:
    """Variable dictionary of one environment, kept in memory and on disk.

    Writes go through tomlkit so comments and layout of the config file are
    preserved.
    """

    def __init__(self, config_path: Path | str, config: Config, env_name: Optional[str] = None):
        self.config_path = Path(config_path)
        self.config = config
        self.env_name = env_name or config.active_environment

    @property
    def environment(self) -> Environment | None:
        return self.config.get_environment(self.env_name)

    @property
    def variables(self) -> dict[str, str]:
        env = self.environment
        return env.variables if env else {}

    def set_variable(self, name: str, value: str) -> None:
        env = self.environment
        if env is None:
            raise StorageException("No active environment to store variables in")

        env.variables[name] = value

        doc = self._read()
        table = self._environment_table(doc, env.name)
        if "variables" not in table:
            table["variables"] = tomlkit.table()
        table["variables"][name] = value
        self._write(doc)
        logger.info(f"Variable {name} saved to environment {env.name}")

    def add_recent_spec(self, source: str) -> list[str]:
        recent = [source] + [s for s in self.config.recent_specs if s != source]
        recent = recent[:RECENT_SPECS_MAX]
        self.config.recent_specs = recent

        doc = self._read()
        doc["recent_specs"] = recent
        self._write(doc)
        return recent

    def _environment_table(self, doc: tomlkit.TOMLDocument, env_name: str):
        if "environments" not in doc:
            doc["environments"] = tomlkit.aot()
        envs = doc["environments"]
        for table in envs:
            if table.get("name") == env_name:
                return table

        table = tomlkit.table()
        table["name"] = env_name
        envs.append(table)
        return table

    def _read(self) -> tomlkit.TOMLDocument:
        if not self.config_path.exists():
            return tomlkit.document()
        try:
            return tomlkit.loads(self.config_path.read_text(encoding="utf-8"))
        except TOMLKitError as e:
            raise StorageException(f"Invalid TOML syntax in {self.config_path}: {e}") from e

    def _write(self, doc: tomlkit.TOMLDocument) -> None:
        temp_path = self.config_path.with_suffix(".tmp")
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(doc.as_string())
            shutil.move(str(temp_path), str(self.config_path))
        except OSError as e:
            raise StorageException(f"Failed to write {self.config_path}: {e}") from e
