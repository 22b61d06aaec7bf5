"""SQLite database initialisation for Propsync.

This module is responsible for:

* Opening (or creating) the SQLite file.
* Configuring PRAGMA settings (WAL journal mode).
* Bootstrapping the schema via ``CREATE TABLE IF NOT EXISTS``; safe to call
  on every startup because the statements are idempotent.

Consumers call :func:`open_db` once and hand the returned connection to
:class:`~propsync.storage.repository.ListingRepository`.  The connection
must be closed explicitly (``await conn.close()``).

Typical usage::

    from propsync.storage.database import open_db

    async def main() -> None:
        conn = await open_db()          # creates file + schema if absent
        # ... pass conn to ListingRepository ...
        await conn.close()
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

__all__ = [
    "DEFAULT_DB_PATH",
    "open_db",
    "create_schema",
]

logger = logging.getLogger(__name__)

#: Fallback database path when no explicit path is passed to :func:`open_db`.
DEFAULT_DB_PATH: Path = Path("propsync.db")

# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

#: ``properties`` is the canonical listing store.
#:
#: Column notes
#: ------------
#: id          Surrogate row id; internal to storage, never used as a key.
#: link        Source URL.  UNIQUE: at most one row per listing.
#: isnew       Freshness flag (0/1).  Defaults to fresh for rows written
#:             without an explicit flag.
#: created_at  ISO-8601 UTC timestamp set by the application on first
#:             insert; kept across updates.  Drives display ordering.
#: other cols  Free-text attributes exactly as scraped; '' when absent.
_DDL_PROPERTIES = """\
CREATE TABLE IF NOT EXISTS properties (
    id            INTEGER  PRIMARY KEY AUTOINCREMENT,
    link          TEXT     NOT NULL UNIQUE,
    propertyname  TEXT     NOT NULL DEFAULT '',
    price         TEXT     NOT NULL DEFAULT '',
    bhk           TEXT     NOT NULL DEFAULT '',
    locality      TEXT     NOT NULL DEFAULT '',
    area          TEXT     NOT NULL DEFAULT '',
    developer     TEXT     NOT NULL DEFAULT '',
    status        TEXT     NOT NULL DEFAULT '',
    regdate       TEXT     NOT NULL DEFAULT '',
    propertytype  TEXT     NOT NULL DEFAULT '',
    city          TEXT     NOT NULL DEFAULT '',
    furnishing    TEXT     NOT NULL DEFAULT '',
    fomo          TEXT     NOT NULL DEFAULT '',
    source        TEXT     NOT NULL DEFAULT '',
    isnew         INTEGER  NOT NULL DEFAULT 1,
    created_at    TEXT     NOT NULL
)"""

_DDL_FRESH_INDEX = "CREATE INDEX IF NOT EXISTS idx_properties_isnew ON properties (isnew)"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def open_db(path: Path | str | None = None) -> aiosqlite.Connection:
    """Open (or create) the SQLite database and bootstrap the schema.

    Args:
        path: Filesystem path for the SQLite file, or ``":memory:"``.
            Defaults to :data:`DEFAULT_DB_PATH`.

    Returns:
        An open :class:`aiosqlite.Connection` with ``row_factory`` set to
        :class:`aiosqlite.Row`.  The caller is responsible for closing it.

    Raises:
        aiosqlite.OperationalError: If the file cannot be opened or created.
        OSError: If the parent directory cannot be created.
    """
    db_path = path or DEFAULT_DB_PATH
    if str(db_path) != ":memory:":
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening SQLite database at %s", db_path)

    conn: aiosqlite.Connection = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row

    try:
        await _configure_pragmas(conn)
        await create_schema(conn)
    except Exception:
        await conn.close()
        raise

    logger.info("SQLite database ready at %s", db_path)
    return conn


async def create_schema(conn: aiosqlite.Connection) -> None:
    """Create all required tables and indexes if they do not already exist.

    Idempotent; never migrates or drops existing data.
    """
    await conn.execute(_DDL_PROPERTIES)
    await conn.execute(_DDL_FRESH_INDEX)
    await conn.commit()
    logger.debug("Schema bootstrap complete (properties table verified)")


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


async def _configure_pragmas(conn: aiosqlite.Connection) -> None:
    """Enable WAL journaling so readers do not block the single writer."""
    result = await conn.execute("PRAGMA journal_mode=WAL")
    row = await result.fetchone()
    mode = row[0] if row else "unknown"
    if mode != "wal":
        logger.debug("SQLite journal_mode is %r (expected for ':memory:')", mode)
    else:
        logger.debug("SQLite journal_mode set to WAL")
