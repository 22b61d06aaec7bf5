"""Shared pytest fixtures and configuration for the Propsync test suite.

This file is loaded automatically by pytest before any test module.
It provides project-wide fixtures used across the unit tests.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import aiosqlite
import pytest
from pydantic_settings import SettingsConfigDict

from propsync.core import configure_logging
from propsync.core.settings import Settings
from propsync.storage.database import open_db
from propsync.storage.repository import ListingRepository

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _configure_test_logging() -> None:
    """Force DEBUG logging in text format for every test.

    ``force=True`` applies the configuration even when pytest's own
    ``log_cli`` handler is already present.
    """
    configure_logging(level="DEBUG", fmt="text", force=True)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all ``PROPSYNC_*`` env vars for the duration of a test.

    Also disables pydantic-settings ``.env`` loading so a developer's local
    ``.env`` file does not leak into Settings tests.
    """
    for key in list(os.environ):
        if key.startswith("PROPSYNC_"):
            monkeypatch.delenv(key, raising=False)

    monkeypatch.setattr(
        Settings,
        "model_config",
        SettingsConfigDict(
            env_prefix="PROPSYNC_",
            env_file=None,
            env_file_encoding="utf-8",
            extra="ignore",
        ),
    )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@pytest.fixture()
async def conn() -> AsyncGenerator[aiosqlite.Connection, None]:
    """Open an in-memory SQLite database with the schema applied."""
    connection = await open_db(":memory:")
    try:
        yield connection
    finally:
        await connection.close()


@pytest.fixture()
async def repo(conn: aiosqlite.Connection) -> ListingRepository:
    """Repository bound to the in-memory :func:`conn` fixture."""
    return ListingRepository(conn)
