"""Settings for the tgcd server and configuration for the tgcd client."""

import os
from pathlib import Path

import platformdirs
import tomli
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "tgcd"
CLIENT_CONFIG_ENV_VAR = "TGCD_CLIENT_CONFIG"

DEFAULT_CLIENT_CONFIG = """\
# Address of the tgcd service, e.g. "http://localhost:8000".
server-url = ""

# Maximum number of files hashed in parallel.
max-cores = 4
"""


class ServerSettings(BaseSettings):
    """
    Server settings.

    Values are loaded from environment variables and/or a .env file.
    """

    database_url: str = Field(
        "sqlite+aiosqlite:///./tgcd.db",
        validation_alias=AliasChoices("TGCD_DATABASE_URL", "POSTGRES_URL"),
    )
    host: str = Field("0.0.0.0", validation_alias="TGCD_HOST")
    port: int = Field(8000, ge=0, le=65535, validation_alias=AliasChoices("TGCD_PORT", "PORT"))
    pool_size: int = Field(1, ge=1, validation_alias="TGCD_POOL_SIZE")
    log_level: str = Field("INFO", validation_alias="TGCD_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ConfigError(Exception):
    """Raised when the client configuration cannot be loaded."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class ConfigWrittenError(ConfigError):
    """Raised after a default configuration file was written because none existed."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Wrote default config to {path}, please set the server url manually", path)


class ClientConfig(BaseModel):
    """Root model for the client configuration file (`config.toml`)."""

    server_url: str = Field(min_length=1, alias="server-url")
    max_cores: int = Field(4, ge=1, alias="max-cores")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


def default_client_config_path() -> Path:
    """
    Return the location of the client configuration file.

    `TGCD_CLIENT_CONFIG` overrides the per-user config directory.
    """
    override = os.environ.get(CLIENT_CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return Path(platformdirs.user_config_dir(APP_NAME)) / "config.toml"


def load_client_config(path: Path | None = None) -> ClientConfig:
    """
    Load the client configuration, writing a default file if none exists.

    Raises:
        ConfigWrittenError: If the file did not exist and a default one was written.
        ConfigError: If the file cannot be read or does not hold a valid configuration.

    """
    config_path = path or default_client_config_path()

    if not config_path.exists():
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            config_path.write_text(DEFAULT_CLIENT_CONFIG, encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Can't write default config to {config_path}: {e}", config_path) from e
        raise ConfigWrittenError(config_path)

    try:
        with config_path.open("rb") as f:
            data = tomli.load(f)
    except OSError as e:
        raise ConfigError(f"Can't read config in {config_path}: {e}", config_path) from e
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"Invalid toml in {config_path}: {e}", config_path) from e

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}", config_path) from e
