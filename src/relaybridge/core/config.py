"""
relaybridge configuration — TOML file validated with pydantic.

Resolution order for the config file:
  1. ``$RELAYBRIDGE_CONFIG`` (explicit file path)
  2. ``$RELAYBRIDGE_HOME/config.toml``
  3. ``~/.relaybridge/config.toml``

A handful of environment variables override file values after parsing
(see ``_ENV_OVERRIDES``), so containers can inject secrets without
rewriting the file.

Usage::

    cfg = load_config()
    cfg.polling.max_attempts      # response_timeout_ms // interval_ms
    cfg.backend.bot_name
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal

import structlog
import tomli_w
from pydantic import BaseModel, Field, ValidationError, model_validator

from relaybridge.core.exceptions import ConfigError, ConfigNotFoundError

logger = structlog.get_logger()

CONFIG_FILENAME = "config.toml"
CURRENT_CONFIG_VERSION = 1

DEFAULT_DIRECTLINE_BASE_URL = "https://directline.botframework.com/v3/directline"


def config_dir() -> Path:
    """Return the relaybridge home directory."""
    home = os.environ.get("RELAYBRIDGE_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".relaybridge"


def config_path() -> Path:
    """Return the path of the active config file."""
    explicit = os.environ.get("RELAYBRIDGE_CONFIG")
    if explicit:
        return Path(explicit).expanduser()
    return config_dir() / CONFIG_FILENAME


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class BackendConfig(BaseModel):
    """Direct Line backend connection settings."""

    bot_name: str = Field(min_length=1)
    token_endpoint: str = ""
    directline_secret: str = ""
    base_url: str = DEFAULT_DIRECTLINE_BASE_URL
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _require_credentials(self) -> BackendConfig:
        if not self.token_endpoint and not self.directline_secret:
            raise ValueError("backend requires either token_endpoint or directline_secret")
        return self


class PollingConfig(BaseModel):
    """Reply polling budget."""

    interval_ms: int = Field(default=1000, ge=50, le=60_000)
    response_timeout_ms: int = Field(default=10_000, ge=50, le=600_000)

    @model_validator(mode="after")
    def _timeout_covers_interval(self) -> PollingConfig:
        if self.response_timeout_ms < self.interval_ms:
            raise ValueError("response_timeout_ms must be >= interval_ms")
        return self

    @property
    def max_attempts(self) -> int:
        return max(1, self.response_timeout_ms // self.interval_ms)

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


class SessionsConfig(BaseModel):
    """Session registry eviction settings."""

    idle_eviction_seconds: float = Field(default=3600.0, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=3978, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["console", "json"] = "console"


class RelayBridgeConfig(BaseModel):
    """Top-level configuration."""

    config_version: int = CURRENT_CONFIG_VERSION
    backend: BackendConfig
    polling: PollingConfig = Field(default_factory=PollingConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def redacted(self) -> dict[str, Any]:
        """Return a dict form with secrets masked, for display."""
        data = self.model_dump()
        if data["backend"].get("directline_secret"):
            data["backend"]["directline_secret"] = "********"
        return data


# ---------------------------------------------------------------------------
# Loading / saving
# ---------------------------------------------------------------------------

# env var -> (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "RELAYBRIDGE_LOG_LEVEL": ("logging", "level"),
    "RELAYBRIDGE_BOT_NAME": ("backend", "bot_name"),
    "RELAYBRIDGE_TOKEN_ENDPOINT": ("backend", "token_endpoint"),
    "RELAYBRIDGE_DIRECTLINE_SECRET": ("backend", "directline_secret"),
    "RELAYBRIDGE_PORT": ("server", "port"),
}


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    for env_var, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data.setdefault(section, {})[key] = value
    return data


def load_config(path: Path | None = None) -> RelayBridgeConfig:
    """Load, override from env, and validate the config file.

    Raises:
        ConfigNotFoundError: the file does not exist.
        ConfigError: the file is not valid TOML or fails validation.
    """
    path = path or config_path()
    if not path.exists():
        raise ConfigNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    data = _apply_env_overrides(data)

    try:
        cfg = RelayBridgeConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc

    logger.debug("config_loaded", path=str(path), version=cfg.config_version)
    return cfg


def save_config(data: dict[str, Any], path: Path | None = None) -> Path:
    """Validate ``data`` and write it as TOML with 0600 permissions.

    Returns:
        The path written.
    """
    path = path or config_path()
    data = {"config_version": CURRENT_CONFIG_VERSION, **data}
    try:
        RelayBridgeConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Refusing to save invalid config: {exc}") from exc

    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        tomli_w.dump(data, fh)
    os.chmod(path, 0o600)
    logger.info("config_saved", path=str(path))
    return path
