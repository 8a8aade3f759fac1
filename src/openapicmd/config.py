"""Configuration file loading and validation."""

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from .consts import (
    DATA_DIR_DEFAULT,
    DEFAULT_TOKEN_HEADER,
    DEFAULT_TOKEN_PREFIX,
    DEFAULT_VIEWPORT,
    HISTORY_MAX_ENTRIES,
    MAX_FIELD_DEPTH,
    TIMEOUT_HTTP_REQUEST,
    TIMEOUT_PRE_REQUEST_HOOK,
    TIMEOUT_TOKEN_REQUEST,
)
from .errors import ConfigException

logger = logging.getLogger(__name__)


class TokenProvider(BaseModel):
    """Endpoint that hands out a bearer token for an environment."""

    endpoint_id: str = ""
    method: str = "post"
    path: str
    body: str = ""
    extra_headers: dict[str, str] = Field(default_factory=dict)
    token_path: str = ""
    header_name: str = DEFAULT_TOKEN_HEADER
    prefix: str = DEFAULT_TOKEN_PREFIX


class Environment(BaseModel):
    """A named target: base URL, default headers and variables."""

    name: str
    base_url: str = ""
    spec_url: Optional[str] = None
    headers: dict[str, str] = Field(default_factory=dict)
    variables: dict[str, str] = Field(default_factory=dict)
    pre_request_hook: Optional[str] = None
    token_provider: Optional[TokenProvider] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Environment name cannot be empty")
        return v.strip()


class RequestSettings(BaseModel):
    timeout: int = Field(default=TIMEOUT_HTTP_REQUEST, ge=1)
    token_timeout: int = Field(default=TIMEOUT_TOKEN_REQUEST, ge=1)
    hook_timeout: int = Field(default=TIMEOUT_PRE_REQUEST_HOOK, ge=1)


class FormSettings(BaseModel):
    max_depth: int = Field(default=MAX_FIELD_DEPTH, ge=0)
    smart_fill: bool = True
    viewport: int = Field(default=DEFAULT_VIEWPORT, ge=1)


class HistorySettings(BaseModel):
    max_entries: int = Field(default=HISTORY_MAX_ENTRIES, ge=1)


class Config(BaseSettings):
    """Application configuration."""

    data_dir: str = Field(default=DATA_DIR_DEFAULT)
    active_environment: Optional[str] = None
    environments: List[Environment] = Field(default_factory=list)
    recent_specs: List[str] = Field(default_factory=list)

    request: RequestSettings = Field(default_factory=RequestSettings)
    form: FormSettings = Field(default_factory=FormSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)

    model_config = SettingsConfigDict(
        env_prefix="OPENAPICMD_",
        env_nested_delimiter="__",
    )

    @field_validator("environments", mode="before")
    @classmethod
    def coerce_indexed_dict_to_list(cls, v):
        if v is None:
            return []
        if isinstance(v, dict):
            try:
                items = sorted(v.items(), key=lambda kv: int(kv[0]))
            except ValueError:
                return list(v.values())
            return [value for _key, value in items]
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @classmethod
    def load_from_file(cls, config_path: str) -> "Config":
        """Load configuration from specified path."""
        path = Path(config_path)
        if not path.exists():
            raise ConfigException(f"Configuration file not found: {config_path}")

        class _Config(cls):
            model_config = SettingsConfigDict(
                toml_file=str(path),
                env_prefix="OPENAPICMD_",
                env_nested_delimiter="__",
            )

        try:
            return _Config()
        except ValidationError as e:
            error_lines = ["Configuration validation failed:"]
            for error in e.errors():
                loc = " -> ".join(str(item) for item in error["loc"])
                error_lines.append(f"  - {loc}: {error['msg']}")
            raise ConfigException("\n".join(error_lines)) from e
        except ValueError as e:
            raise ConfigException(f"Invalid configuration file {config_path}: {e}") from e

    @classmethod
    def load_or_default(cls, config_path: str) -> "Config":
        """Load configuration, falling back to defaults when the file is missing."""
        if not Path(config_path).exists():
            logger.info(f"Configuration file not found, using defaults: {config_path}")
            return cls()
        return cls.load_from_file(config_path)

    def get_environment(self, name: Optional[str] = None) -> Optional[Environment]:
        """Environment by name, or the active one when no name is given."""
        target = name or self.active_environment
        if not target:
            return None
        for env in self.environments:
            if env.name == target:
                return env
        return None
