"""Listing repository for the canonical ``properties`` store.

Provides :class:`ListingRepository`, the single data-access object for the
``properties`` SQLite table.  It implements exactly the store contract the
reconciliation pass needs:

* bulk read of every listing, newest first;
* link/area projection for a set of links;
* bulk reset of the freshness flag;
* bulk insert of new listings;
* bulk upsert of existing listings keyed by link.

Each bulk call commits once, so a phase is either fully written or not at
all.  Nothing here sequences phases; see
:func:`~propsync.orchestrator.pipeline.apply_pass`.

Typical usage::

    from propsync.storage.database import open_db
    from propsync.storage.repository import ListingRepository

    async def run() -> None:
        conn = await open_db()
        repo = ListingRepository(conn)
        listings = await repo.load_all()
        await conn.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Final

import aiosqlite

from propsync.core.models import Listing

__all__ = ["ListingRepository"]

logger = logging.getLogger(__name__)

#: Listing field → ``properties`` column, in DDL order.  ``link`` first.
_FIELD_COLUMNS: Final[tuple[tuple[str, str], ...]] = (
    ("link", "link"),
    ("property_name", "propertyname"),
    ("price", "price"),
    ("bhk", "bhk"),
    ("locality", "locality"),
    ("area", "area"),
    ("developer", "developer"),
    ("status", "status"),
    ("reg_date", "regdate"),
    ("property_type", "propertytype"),
    ("city", "city"),
    ("furnishing", "furnishing"),
    ("fomo", "fomo"),
    ("source", "source"),
)

_COLUMNS: Final[tuple[str, ...]] = tuple(col for _, col in _FIELD_COLUMNS)

# Stay well under SQLITE_MAX_VARIABLE_NUMBER on older builds (999).
_IN_CHUNK: Final[int] = 500

_WRITE_SQL: Final[str] = (
    f"INSERT INTO properties ({', '.join(_COLUMNS)}, isnew, created_at) "
    f"VALUES ({', '.join('?' * (len(_COLUMNS) + 2))}) "
    "ON CONFLICT(link) DO UPDATE SET "
    + ", ".join(f"{col} = excluded.{col}" for col in (*_COLUMNS[1:], "isnew"))
)


def _listing_to_row(listing: Listing, created_at: str) -> tuple[object, ...]:
    values = [getattr(listing, name) for name, _ in _FIELD_COLUMNS]
    return (*values, int(listing.is_new), created_at)


def _row_to_listing(row: aiosqlite.Row) -> Listing:
    data = {name: row[col] for name, col in _FIELD_COLUMNS}
    # A NULL flag means the row was written without one: the column default
    # treats such rows as fresh.
    isnew = row["isnew"]
    data["is_new"] = True if isnew is None else bool(isnew)
    data["created_at"] = row["created_at"]
    return Listing(**data)


def _chunks(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ListingRepository:
    """Data-access object for the ``properties`` table.

    It owns no connection lifecycle: the caller supplies an open
    :class:`aiosqlite.Connection` (see :func:`~propsync.storage.database.open_db`)
    and closes it when done.

    Errors from :mod:`aiosqlite` / :mod:`sqlite3` propagate unchanged; the
    pipeline wraps them per phase.

    Args:
        conn: Open, configured :class:`aiosqlite.Connection`.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def load_all(self, *, newest_first: bool = True) -> list[Listing]:
        """Return every stored listing ordered by creation time.

        Args:
            newest_first: Descending creation order (the display default).
                Ties are broken by row id in the same direction.
        """
        direction = "DESC" if newest_first else "ASC"
        cursor = await self._conn.execute(
            f"SELECT {', '.join(_COLUMNS)}, isnew, created_at FROM properties "
            f"ORDER BY created_at {direction}, id {direction}"
        )
        rows = await cursor.fetchall()
        return [_row_to_listing(row) for row in rows]

    async def fetch_areas(self, links: Iterable[str]) -> list[Listing]:
        """Return the stored listings among *links*, projected to link + area.

        Only ``link`` and ``area`` are populated on the returned listings;
        that is all the reconciler compares.

        Args:
            links: Links of the incoming batch.  Duplicates are ignored.
        """
        unique = list(dict.fromkeys(links))
        if not unique:
            return []

        found: list[Listing] = []
        for chunk in _chunks(unique, _IN_CHUNK):
            placeholders = ",".join("?" * len(chunk))
            cursor = await self._conn.execute(
                f"SELECT link, area FROM properties WHERE link IN ({placeholders})",
                list(chunk),
            )
            rows = await cursor.fetchall()
            found.extend(Listing(link=row["link"], area=row["area"]) for row in rows)

        logger.debug("fetch_areas: %d requested, %d stored", len(unique), len(found))
        return found

    # ------------------------------------------------------------------
    # Write helpers
    # ------------------------------------------------------------------

    async def reset_fresh(self) -> int:
        """Clear the freshness flag on every listing currently flagged fresh.

        Returns:
            Number of rows whose flag was cleared.
        """
        cursor = await self._conn.execute("UPDATE properties SET isnew = 0 WHERE isnew = 1")
        await self._conn.commit()
        count = cursor.rowcount
        logger.debug("reset_fresh: cleared %d flag(s)", count)
        return count

    async def insert_many(self, listings: Sequence[Listing]) -> int:
        """Insert listings that were not stored before, in one transaction.

        The write is keyed by link, so a link repeated within *listings*
        still yields a single row holding the last occurrence.

        Returns:
            Number of listings written.
        """
        count = await self._write_many(listings)
        logger.debug("insert_many: inserted %d listing(s)", count)
        return count

    async def upsert_many(self, listings: Sequence[Listing]) -> int:
        """Insert or update listings keyed by link, in one transaction.

        Existing rows keep their ``id`` and ``created_at``; every other column
        is overwritten.  Rows applied later in *listings* win over earlier
        ones with the same link.

        Returns:
            Number of listings written.
        """
        count = await self._write_many(listings)
        logger.debug("upsert_many: wrote %d listing(s)", count)
        return count

    async def _write_many(self, listings: Sequence[Listing]) -> int:
        if not listings:
            return 0

        now_utc = datetime.now(UTC).isoformat()
        rows = [_listing_to_row(listing, now_utc) for listing in listings]
        try:
            await self._conn.executemany(_WRITE_SQL, rows)
        except Exception:
            await self._conn.rollback()
            raise
        await self._conn.commit()
        return len(rows)

    async def clear(self) -> int:
        """Delete every stored listing (administrative operation).

        Returns:
            Number of rows deleted.
        """
        cursor = await self._conn.execute("DELETE FROM properties")
        await self._conn.commit()
        count = cursor.rowcount
        logger.warning("Cleared canonical store: %d listing(s) deleted", count)
        return count
