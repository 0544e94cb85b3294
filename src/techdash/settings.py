"""
techdash.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (session secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

import secrets
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven process configuration (prefix `TECHDASH_`).
    Defaults are safe for local dev; prod flips the cookie `Secure` flag.
    """

    model_config = SettingsConfigDict(env_prefix="TECHDASH_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    app_name: str = "Digitaler Techniker Dashboard"
    service_name: str = "techdash"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Cross-origin allow-list; comma separated in the environment.
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )

    # Sessions
    session_secret: str = Field(default_factory=lambda: secrets.token_hex(48), repr=False)
    session_cookie_name: str = "techniker-dashboard.sid"
    session_max_age_seconds: int = 24 * 60 * 60

    # Global rate limit (fixed window, keyed by client address)
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 1000
    devices_rate_limit_max_requests: int = 300

    # Request bodies and uploads share one ceiling.
    max_body_bytes: int = 10 * 1024 * 1024
    max_upload_files: int = 20

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./techdash.db"

    # Lifecycle
    shutdown_deadline_seconds: float = 10.0
    cache_purge_interval_seconds: float = 60.0

    # Realtime channel is public unless configured otherwise.
    realtime_requires_session: bool = False

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [o.strip().rstrip("/") for o in value.split(",") if o.strip()]
        return value

    @property
    def is_production(self) -> bool:
        return self.env == "prod"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every subsystem receives this object at construction; nothing reads the
# environment directly.
