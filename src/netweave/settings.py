"""
Pydantic v2 settings for the netweave engine.
Supports .env files (selected by environment), environment variables with the
NETWEAVE_ prefix and nested sections via the `__` delimiter, e.g.

    NETWEAVE_INGEST__MAX_STATIC_FILE_MB=64
"""
from pathlib import Path
from typing import Dict, Type

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from netweave.environment import Environment, get_current_env


ROOT_PATH = Path(__file__).parent.parent.parent


class AppSettings(BaseModel):
    """General engine configuration."""

    log_level: str = Field(default="INFO", description="Logging level", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_format: str = Field(default="%(asctime)s %(levelname)s %(name)s: %(message)s", description="Logging format string")


class IngestSettings(BaseModel):
    """Raw data ingestion."""

    max_static_file_mb : float = Field(default=30, description="Files larger than this are refused unless the size check is skipped")
    default_encoding   : str   = Field(default="utf-8", description="Encoding used when the MIME lookup offers no charset")


class PersistenceSettings(BaseModel):
    """Model registry persistence."""

    storage_key             : str   = Field(default="netweave_models", description="Key under which all models are stored")
    update_debounce_seconds : float = Field(default=0.0, description="Delay before a batched model update is flushed")


class Settings(BaseSettings):
    """Complete netweave settings."""

    model_config = SettingsConfigDict(
        env_prefix="NETWEAVE_",
        env_file=(ROOT_PATH / ".env"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    ingest: IngestSettings = Field(default_factory=IngestSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)
    env: Environment = Field(default_factory=get_current_env, description="Current netweave environment")

    @property
    def max_static_file_bytes(self) -> int:
        return int(self.ingest.max_static_file_mb * 1024 * 1024)


class _SettingsTesting(Settings):
    """Settings for testing environment."""

    model_config = SettingsConfigDict(
        env_prefix="NETWEAVE_",
        env_file=(ROOT_PATH / Environment.TESTING.dotenv_filename),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )
    env: Environment = Field(default_factory=lambda: Environment("testing"), description="Current netweave environment")


class _SettingsProduction(Settings):
    """Settings for production environment."""

    model_config = SettingsConfigDict(
        env_prefix="NETWEAVE_",
        env_file=(ROOT_PATH / Environment.PRODUCTION.dotenv_filename),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )
    env: Environment = Field(default_factory=lambda: Environment("production"), description="Current netweave environment")


SETTINGS_CLASSES: Dict[Environment, Type[Settings]] = {
    Environment.DEVELOPMENT: Settings,
    Environment.TESTING: _SettingsTesting,
    Environment.PRODUCTION: _SettingsProduction,
}

# Global settings singleton
SETTINGS: Dict[Environment, Settings] = {}

def get_settings() -> Settings:
    """Retrieve the settings singleton for the current environment.

    The environment file is picked from the current environment when first accessed,
    so the environment must be set before the first call to take effect.

    Example:
        >>> from netweave.environment import set_current_env
        >>> set_current_env("testing")
        >>> get_settings().ingest.max_static_file_mb
        30.0
    """
    current_env = get_current_env()
    if SETTINGS.get(current_env, None) is None:
        SETTINGS[current_env] = SETTINGS_CLASSES[current_env]()
    return SETTINGS[current_env]


def reset_settings() -> None:
    """Forget cached settings so the next `get_settings()` re-reads the environment."""
    SETTINGS.clear()
