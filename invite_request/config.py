"""Process configuration.

Everything the service needs from its environment is read exactly once by
``load_settings()`` into an immutable ``Settings`` object. The object is stored
on ``app.state.settings`` and handed to the components that need it; nothing
else in the package touches ``os.environ``.

Required variables (startup aborts when any is missing):
    GA_TOKEN            Google Analytics tracking id rendered into every page
    SLACK_WEBHOOK_URL   Incoming webhook that receives application notices
    GOOGLE_CLIENTID     OAuth client id used by the client-side sign-in button

Everything else has a default, see ``Settings`` below.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from invite_request.exceptions import ConfigurationError

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_PUBLIC_DIR = PACKAGE_DIR / "public"

# Only ever used when SESSION_SECRET is unset; main logs a warning in that case.
DEV_SESSION_SECRET = "change-me-in-production"

REQUIRED_ENV: dict[str, str] = {
    "GA_TOKEN": "ga_token",
    "SLACK_WEBHOOK_URL": "slack_webhook_url",
    "GOOGLE_CLIENTID": "google_client_id",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Credentials / integration
    ga_token: str
    slack_webhook_url: str
    google_client_id: str
    slack_channel: Optional[str] = None
    slack_bot_name: str = "SIR"
    slack_timeout_seconds: float = Field(default=10.0, gt=0)

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Sessions
    session_secret: str = DEV_SESSION_SECRET
    session_cookie: str = "invite.sid"
    session_ttl_seconds: int = Field(default=86400, gt=0)
    session_backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://127.0.0.1:6379/0"
    redis_username: Optional[str] = None
    redis_password: Optional[str] = None

    # Rate limiting (state-changing endpoints only)
    rate_limit_backend: Literal["memory", "redis"] = "memory"
    rate_limit_max: int = Field(default=5, ge=1)
    rate_limit_window_seconds: int = Field(default=60, ge=1)
    rate_limit_fail_open: bool = True

    # Uploads
    public_dir: Path = DEFAULT_PUBLIC_DIR
    upload_move_timeout_seconds: float = Field(default=30.0, gt=0)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def images_dir(self) -> Path:
        return self.public_dir / "images"

    @property
    def uses_dev_session_secret(self) -> bool:
        return self.session_secret == DEV_SESSION_SECRET


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _as_bool(raw: str) -> bool:
    return raw.lower() in _TRUE_VALUES


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from the environment.

    Raises:
        ConfigurationError: a required variable is missing or a value does not
            parse.
    """
    env = os.environ if environ is None else environ

    for name in REQUIRED_ENV:
        if _get(env, name) is None:
            raise ConfigurationError(f"Please set {name} environment variable.")

    values: dict[str, object] = {field: _get(env, name) for name, field in REQUIRED_ENV.items()}

    optional = {
        "SLACK_CHANNEL": ("slack_channel", str),
        "SLACK_BOT_NAME": ("slack_bot_name", str),
        "SLACK_TIMEOUT_SECONDS": ("slack_timeout_seconds", float),
        "HOST": ("host", str),
        "PORT": ("port", int),
        "SESSION_SECRET": ("session_secret", str),
        "SESSION_COOKIE": ("session_cookie", str),
        "SESSION_TTL_SECONDS": ("session_ttl_seconds", int),
        "SESSION_BACKEND": ("session_backend", str),
        "REDIS_URL": ("redis_url", str),
        "REDIS_USERNAME": ("redis_username", str),
        "REDIS_PASSWORD": ("redis_password", str),
        "RATE_LIMIT_BACKEND": ("rate_limit_backend", str),
        "RATE_LIMIT_MAX": ("rate_limit_max", int),
        "RATE_LIMIT_WINDOW_SECONDS": ("rate_limit_window_seconds", int),
        "RATE_LIMIT_FAIL_OPEN": ("rate_limit_fail_open", _as_bool),
        "PUBLIC_DIR": ("public_dir", Path),
        "UPLOAD_MOVE_TIMEOUT_SECONDS": ("upload_move_timeout_seconds", float),
        "LOG_LEVEL": ("log_level", str),
        "LOG_FILE": ("log_file", str),
    }
    for name, (field, convert) in optional.items():
        raw = _get(env, name)
        if raw is None:
            continue
        try:
            values[field] = convert(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e

    try:
        return Settings(**values)
    except ValueError as e:  # pydantic.ValidationError subclasses ValueError
        raise ConfigurationError(f"Invalid configuration: {e}") from e


__all__ = ["Settings", "load_settings", "REQUIRED_ENV", "DEV_SESSION_SECRET", "DEFAULT_PUBLIC_DIR"]
