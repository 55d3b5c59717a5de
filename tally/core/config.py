"""
Tally Configuration.

Layers, later ones winning:
    defaults < ~/.tally/config.toml < ./tally.toml < TALLY_* env < overrides

Env values are passed through as strings and coerced by the models, so
a numeric-looking school phone stays a string. "${VAR}" inside any
string value is replaced with that environment variable.

    TALLY_SCHOOL_NAME=Entoto TALLY_QUEUE_BACKEND=memory python app.py
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Any, Iterator, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from tally.core.errors import ConfigError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_SCHOOL_NAME = "Smart Attendance Tracker"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config Sub-Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class SchoolConfig(BaseModel):
    """
    Fallback school identity.

    Used when the stored settings record is missing or unreadable.
    settings_key is the key-value slot the settings screen writes to.
    """

    id: str = ""  # namespaces storage keys when several schools share a database
    name: str = DEFAULT_SCHOOL_NAME
    phone: str = ""
    notification_email: str = ""
    settings_key: str = "attendance_settings"


class DeliveryConfig(BaseModel):
    """Delivery service endpoints."""

    base_url: str = "http://localhost:3000"
    email_path: str = "/api/send-email"
    sms_path: str = "/api/send-sms"
    drain_path: str = "/api/notifications"
    timeout: float = 15.0

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class QueueConfig(BaseModel):
    """Retry queue persistence and pacing."""

    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: str = "~/.tally/queue.db"
    storage_key: str = "sync_queue"
    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)


class ToastConfig(BaseModel):
    """User-visible toast defaults (durations in milliseconds)."""

    success_duration: int = 2500
    error_duration: int = 5000
    default_duration: int = 4000
    log_path: str = "~/.tally/toasts.log"
    console: bool = False


class LoggingConfig(BaseModel):
    """Log file location and verbosity."""

    dir: str = "~/.tally/logs"
    console_level: str = "WARNING"
    log_events: bool = True


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Main Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━



class TallyConfig(BaseModel):
    """Root configuration for Tally."""

    school: SchoolConfig = Field(default_factory=SchoolConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    toasts: ToastConfig = Field(default_factory=ToastConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(
        cls,
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> TallyConfig:
        """Merge every layer and validate the result once."""
        merged: dict[str, Any] = {}
        for layer in _layers(overrides, project_path, user_path):
            merged = _merge(merged, layer)

        try:
            return cls.model_validate(_expand(merged))
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}", details={"errors": e.errors()}) from e

    def get_queue_db_path(self) -> Path:
        return Path(self.queue.db_path).expanduser()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Sources
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

ENV_VARS: dict[str, tuple[str, str]] = {
    "TALLY_SCHOOL_ID": ("school", "id"),
    "TALLY_SCHOOL_NAME": ("school", "name"),
    "TALLY_SCHOOL_PHONE": ("school", "phone"),
    "TALLY_SCHOOL_EMAIL": ("school", "notification_email"),
    "TALLY_DELIVERY_BASE_URL": ("delivery", "base_url"),
    "TALLY_DELIVERY_TIMEOUT": ("delivery", "timeout"),
    "TALLY_QUEUE_BACKEND": ("queue", "backend"),
    "TALLY_QUEUE_DB_PATH": ("queue", "db_path"),
    "TALLY_QUEUE_RETRY_DELAY": ("queue", "retry_delay"),
    "TALLY_LOG_DIR": ("logging", "dir"),
    "TALLY_LOG_LEVEL": ("logging", "console_level"),
}


def _layers(
    overrides: dict[str, Any] | None,
    project_path: Path | None,
    user_path: Path | None,
) -> Iterator[dict[str, Any]]:
    """Config layers from lowest to highest precedence."""
    for path in (
        user_path or Path.home() / ".tally" / "config.toml",
        project_path or Path.cwd() / "tally.toml",
    ):
        if path.is_file():
            yield _read_toml(path)
    yield _from_env(os.environ)
    if overrides:
        yield overrides


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def _from_env(environ: dict[str, str] | os._Environ[str]) -> dict[str, Any]:
    sections: dict[str, Any] = {}
    for name, (section, key) in ENV_VARS.items():
        if name in environ:
            sections.setdefault(section, {})[key] = environ[name]
    return sections


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Merging
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _merge(lower: dict[str, Any], upper: dict[str, Any]) -> dict[str, Any]:
    """New dict with upper laid over lower; nested tables merge key by key."""
    result = dict(lower)
    for key, value in upper.items():
        below = result.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            result[key] = _merge(below, value)
        else:
            result[key] = value
    return result


_ENV_REF = re.compile(r"\$\{([^}]+)\}")


def _expand(value: Any) -> Any:
    """Replace ${VAR} in every string, recursing into tables and arrays."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value
