"""
Environment-driven configuration.

Server-side options (database, cache, Mux credentials, admin password) and the
viewer-side sync tunables used by ``simulive runtime watch`` live on one
BaseSettings model. Values come from the process environment, then from an
``.env`` file located by :func:`_find_env_file`.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Simulive configuration, one field per environment variable."""

    # Metadata store
    database_url: str = Field(default="sqlite:///./simulive.db", alias="DATABASE_URL")
    echo_sql: bool = Field(default=False, alias="ECHO_SQL")

    # Cache / session backend (in-process store when unset)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Asset provider
    mux_token_id: str = Field(default="", alias="MUX_TOKEN_ID")
    mux_token_secret: str = Field(default="", alias="MUX_TOKEN_SECRET")
    mux_api_url: str = Field(default="https://api.mux.com", alias="MUX_API_URL")

    # Admin auth
    admin_password: str = Field(default="", alias="ADMIN_PASSWORD")
    secure_cookies: bool = Field(default=False, alias="SECURE_COOKIES")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|console
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    # Stream record defaults
    default_sync_interval_ms: int = Field(default=5000, gt=0, alias="DEFAULT_SYNC_INTERVAL_MS")
    default_drift_tolerance: float = Field(default=2.0, ge=0, alias="DEFAULT_DRIFT_TOLERANCE")

    # Viewer-side synchronization
    clock_url: str = Field(default="http://localhost:8000/api/time", alias="CLOCK_URL")
    clock_timeout_s: float = Field(default=5.0, gt=0, alias="CLOCK_TIMEOUT_S")
    recalibrate_interval_s: float = Field(default=60.0, gt=0, alias="RECALIBRATE_INTERVAL_S")
    heartbeat_interval_s: float = Field(default=5.0, gt=0, alias="HEARTBEAT_INTERVAL_S")
    heartbeat_threshold_s: float = Field(default=2.0, gt=0, alias="HEARTBEAT_THRESHOLD_S")
    resume_settle_s: float = Field(default=0.1, ge=0, alias="RESUME_SETTLE_S")

    model_config: SettingsConfigDict = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def mux_configured(self) -> bool:
        return bool(self.mux_token_id and self.mux_token_secret)


def _find_env_file() -> str | None:
    """``SIMULIVE_ENV_FILE`` when it names a file, else ``./.env`` if present."""
    candidates = [os.getenv("SIMULIVE_ENV_FILE"), str(Path.cwd() / ".env")]
    return next((c for c in candidates if c and Path(c).is_file()), None)


settings = Settings(_env_file=_find_env_file())  # type: ignore[call-arg]
