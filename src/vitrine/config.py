"""Client configuration via environment variables.

Uses pydantic-settings to load config from env vars with VITRINE_ prefix.
The storefront's own variable names (NEXT_PUBLIC_API_URL,
NEXT_PUBLIC_SERVER_URL) are accepted too, so one .env serves both.

Learn: The socket server lives at the API origin, not under the versioned
REST prefix. socket_url() strips a trailing /api/v1 so both can be
configured from a single variable.
"""

import re
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_SOCKET_URL = "http://localhost:5000"

_API_SUFFIX = re.compile(r"/api/v1/?$")


class Settings(BaseSettings):
    """All client configuration. Set via VITRINE_* env vars."""

    # Backend
    api_url: str = Field(
        default="http://localhost:5000/api/v1",
        validation_alias=AliasChoices("VITRINE_API_URL", "NEXT_PUBLIC_API_URL"),
    )
    server_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("VITRINE_SERVER_URL", "NEXT_PUBLIC_SERVER_URL"),
    )
    request_timeout: float = 30.0

    # Query cache
    keep_unused_for: float = 60.0  # seconds an unsubscribed entry survives

    # Session
    session_path: Path = Path.home() / ".vitrine" / "session.json"
    token_ttl_days: int = 30

    # Logging
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # console | json

    model_config = {
        "env_prefix": "VITRINE_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("console", "json"):
            raise ValueError("VITRINE_LOG_FORMAT must be 'console' or 'json'")
        return v

    def socket_url(self) -> str:
        """Origin of the Socket.IO server.

        Prefers server_url, falls back to api_url, and strips any
        /api/v1 suffix and trailing slash.
        """
        raw = self.server_url or self.api_url or ""
        url = _API_SUFFIX.sub("", raw).rstrip("/")
        return url or DEFAULT_SOCKET_URL


# Singleton: import this everywhere
settings = Settings()
