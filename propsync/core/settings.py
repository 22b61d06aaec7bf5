"""Propsync application settings loaded from environment and ``.env`` files.

Uses :mod:`pydantic_settings` to parse ``PROPSYNC_*`` environment variables
(and optionally an ``.env`` file) into a validated settings object.  The
field name is the lowercase env-var name without the prefix (e.g.
``PROPSYNC_DATABASE_PATH`` → ``database_path``).

Typical usage::

    from propsync.core.settings import Settings

    settings = Settings()                      # loads from env + .env
    print(settings.database_path_resolved)
    print(settings.webhook_configured)         # True / False
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings"]

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Central application configuration.

    Values are loaded in priority order:

    1. Actual environment variables (highest priority).
    2. ``.env`` file in the working directory.
    3. Field defaults (lowest priority).
    """

    model_config = SettingsConfigDict(
        env_prefix="PROPSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    database_path: str = Field(
        default="data/propsync.db",
        description="Path to the SQLite canonical store.",
    )

    # ------------------------------------------------------------------
    # Scraper webhook
    # ------------------------------------------------------------------
    webhook_url: str = Field(
        default="",
        description="URL that triggers the scraping job and returns the batch.",
    )
    webhook_timeout: float = Field(
        default=120.0,
        gt=0.0,
        description="Read timeout in seconds; scraping runs synchronously.",
    )
    webhook_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Total attempts for the webhook call, including the first.",
    )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    collapse_duplicate_links: bool = Field(
        default=False,
        description="Keep only the last occurrence of a link within one batch.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(default="INFO", description="Logging level.")
    log_format: str = Field(default="text", description="Log format: 'text' or 'json'.")

    # ------------------------------------------------------------------
    # Field validators
    # ------------------------------------------------------------------

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got {v!r}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, v: str) -> str:
        allowed = {"text", "json"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v_lower

    @field_validator("webhook_url")
    @classmethod
    def _validate_webhook_url(cls, v: str) -> str:
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"webhook_url must be an http(s) URL, got {v!r}")
        return v

    # ------------------------------------------------------------------
    # Derived helpers
    # ------------------------------------------------------------------

    @property
    def database_path_resolved(self) -> Path:
        """Return the database path as a resolved :class:`~pathlib.Path`."""
        return Path(self.database_path).resolve()

    @property
    def webhook_configured(self) -> bool:
        """``True`` if a scraper webhook URL is set."""
        return bool(self.webhook_url)
