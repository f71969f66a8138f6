"""
Runtime configuration for Burnout Buddy.

All settings come from environment variables with the ``BUDDY_`` prefix.
``load_config()`` reads them once per call into an immutable ``AppConfig``;
nothing here caches state across calls so tests can patch ``os.environ``.

Variables:
    BUDDY_API_SECRET_KEY   JWT signing secret (required to serve the API)
    BUDDY_ENVIRONMENT      "development" (default) or "production"
    BUDDY_DEV_MODE         "1" enables console logging and docs
    BUDDY_CORS_ORIGINS     comma-separated allowed origins
    BUDDY_DATABASE_URL     SQLAlchemy URL for account sessions
    BUDDY_DEMO_DATA_DIR    directory for demo-session JSON documents
    BUDDY_OPENAI_API_KEY   optional LLM key (falls back to OPENAI_API_KEY)
    BUDDY_OPENAI_BASE_URL  OpenAI-compatible API base URL
    BUDDY_TIMEZONE         IANA zone used for hour/day bucketing
    BUDDY_HOST / BUDDY_PORT  uvicorn bind address
    LOG_LEVEL              stdlib log level name
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.lib.exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./burnout_buddy.db"
DEFAULT_DEMO_DATA_DIR = "./.demo-data"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


@dataclass(frozen=True)
class AppConfig:
    """Immutable snapshot of the environment configuration."""

    api_secret_key: str | None = None
    environment: str = "development"
    dev_mode: bool = False
    cors_origins: tuple[str, ...] = field(default_factory=tuple)
    database_url: str = DEFAULT_DATABASE_URL
    demo_data_dir: str = DEFAULT_DEMO_DATA_DIR
    openai_api_key: str | None = None
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    timezone: str = "UTC"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def tzinfo(self) -> ZoneInfo:
        """Resolve the configured zone, raising ConfigurationError if unknown."""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown BUDDY_TIMEZONE: {self.timezone!r}") from e

    def require_secret(self) -> str:
        """Return the API secret or fail fast at startup."""
        if not self.api_secret_key:
            raise ConfigurationError(
                "BUDDY_API_SECRET_KEY environment variable is required. "
                "Set it to a cryptographically random string."
            )
        return self.api_secret_key


def load_config() -> AppConfig:
    """Build an AppConfig from the current process environment."""
    cors_env = os.getenv("BUDDY_CORS_ORIGINS", "")
    port_env = os.getenv("BUDDY_PORT", "8000")
    try:
        port = int(port_env)
    except ValueError as e:
        raise ConfigurationError(f"BUDDY_PORT must be an integer, got {port_env!r}") from e

    return AppConfig(
        api_secret_key=os.getenv("BUDDY_API_SECRET_KEY") or None,
        environment=os.getenv("BUDDY_ENVIRONMENT", "development"),
        dev_mode=os.getenv("BUDDY_DEV_MODE", "0") == "1",
        cors_origins=tuple(o.strip() for o in cors_env.split(",") if o.strip()),
        database_url=os.getenv("BUDDY_DATABASE_URL", DEFAULT_DATABASE_URL),
        demo_data_dir=os.getenv("BUDDY_DEMO_DATA_DIR", DEFAULT_DEMO_DATA_DIR),
        openai_api_key=os.getenv("BUDDY_OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("BUDDY_OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
        timezone=os.getenv("BUDDY_TIMEZONE", "UTC"),
        host=os.getenv("BUDDY_HOST", "0.0.0.0"),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["AppConfig", "load_config"]
