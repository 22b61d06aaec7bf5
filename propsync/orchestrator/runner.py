"""Engine host: own the store connection and run passes against it.

:class:`ListingSync` is what callers (the CLI, tests, an embedding app) hold
on to.  It wraps one :class:`~propsync.storage.repository.ListingRepository`
and never raises for store trouble:

* If the store cannot be opened, :meth:`ListingSync.connect` logs a
  :exc:`~propsync.core.exceptions.ConfigurationError` and returns a
  *degraded* instance.  Every operation on it is a harmless no-op.
* :meth:`ListingSync.load` keeps the last list it read successfully and
  hands that back when a later read fails.

:func:`run_once` wires settings, a batch source and a host together for a
single fetch → pass → reload cycle.

Typical usage::

    import asyncio
    from propsync.core.settings import Settings
    from propsync.orchestrator.runner import run_once
    from propsync.sources.file import FileBatchSource

    outcome = asyncio.run(run_once(Settings(), FileBatchSource("batch.json")))
    print(outcome.report.notice)
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

import aiosqlite

from propsync.core import events
from propsync.core.exceptions import ConfigurationError, ListingValidationError
from propsync.core.logging_config import PASS_ID_CTX
from propsync.core.models import Listing
from propsync.core.settings import Settings
from propsync.orchestrator.pipeline import PassReport, apply_pass
from propsync.sources.base import BaseBatchSource
from propsync.sources.records import parse_records
from propsync.storage.database import open_db
from propsync.storage.repository import ListingRepository

__all__ = ["ListingSync", "SyncOutcome", "run_once"]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Engine host
# ---------------------------------------------------------------------------


class ListingSync:
    """Reconciliation host bound to one canonical store.

    Args:
        repo: Repository for the store, or ``None`` for a degraded host.
        conn: Connection owned by this host, closed by :meth:`close`.
        collapse_duplicates: Collapse same-link duplicates inside a batch
            before classifying.
    """

    def __init__(
        self,
        repo: ListingRepository | None,
        *,
        conn: aiosqlite.Connection | None = None,
        collapse_duplicates: bool = False,
    ) -> None:
        self._repo = repo
        self._conn = conn
        self._collapse = collapse_duplicates
        self._last_known: list[Listing] = []

    @classmethod
    async def connect(
        cls,
        path: Path | str,
        *,
        collapse_duplicates: bool = False,
    ) -> ListingSync:
        """Open the store at *path*; degrade instead of raising if it is unusable."""
        try:
            conn = await open_db(path)
        except (OSError, sqlite3.Error) as exc:
            err = ConfigurationError(f"cannot open listing store at {path}: {exc}")
            err.__cause__ = exc
            logger.error("%s", err, extra={"event": events.STORE_DEGRADED})
            return cls(None, collapse_duplicates=collapse_duplicates)
        return cls(
            ListingRepository(conn),
            conn=conn,
            collapse_duplicates=collapse_duplicates,
        )

    @property
    def degraded(self) -> bool:
        """``True`` when no store is available."""
        return self._repo is None

    @property
    def last_known(self) -> list[Listing]:
        """Listings from the most recent successful :meth:`load`."""
        return list(self._last_known)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.debug("Listing store connection closed.")

    async def __aenter__(self) -> ListingSync:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sync(
        self,
        incoming: Sequence[Listing],
        *,
        rejected: Sequence[ListingValidationError] = (),
    ) -> PassReport:
        """Run one reconciliation pass for *incoming*.

        Args:
            incoming: Validated listings of the batch.
            rejected: Records already skipped by validation; counted on the
                report only.
        """
        token = PASS_ID_CTX.set(uuid.uuid4().hex[:8])
        try:
            if self._repo is None:
                logger.warning(
                    "Store unavailable; skipping pass of %d listing(s)",
                    len(incoming),
                    extra={"event": events.STORE_DEGRADED},
                )
                return PassReport(skipped=len(rejected), degraded=True)

            report = await apply_pass(
                self._repo, incoming, collapse_duplicates=self._collapse
            )
            report.skipped = len(rejected)
            logger.info("%s", report.notice)
            return report
        finally:
            PASS_ID_CTX.reset(token)

    async def ingest(self, source: BaseBatchSource) -> PassReport:
        """Fetch a batch from *source*, validate it and sync it.

        A degraded host returns a degraded report without contacting
        *source*, so a webhook-triggered scrape is never started for a
        store that cannot take the result.

        Raises:
            BatchFetchError: If the source cannot deliver a batch.  Nothing
                is written in that case.
        """
        if self._repo is None:
            logger.warning(
                "Store unavailable; not fetching from %s",
                source.label,
                extra={"event": events.STORE_DEGRADED},
            )
            return PassReport(degraded=True)
        records = await source.fetch_batch()
        listings, rejected = parse_records(records)
        return await self.sync(listings, rejected=rejected)

    async def load(self) -> list[Listing]:
        """Return the whole store, newest first.

        On a read failure the last successfully loaded list is returned.
        """
        if self._repo is None:
            return []
        try:
            listings = await self._repo.load_all()
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Loading listings failed; returning %d last known: %s",
                len(self._last_known),
                exc,
                exc_info=True,
            )
            return list(self._last_known)
        self._last_known = listings
        return list(listings)

    async def clear(self) -> int | None:
        """Delete every stored listing.

        Returns:
            Rows removed; ``0`` on a degraded host, ``None`` if the delete
            failed (the store is left as it was).
        """
        if self._repo is None:
            return 0
        try:
            removed = await self._repo.clear()
        except Exception as exc:  # noqa: BLE001
            logger.error("Clearing the store failed: %s", exc, exc_info=True)
            return None
        self._last_known = []
        return removed


# ---------------------------------------------------------------------------
# One-shot entry-point
# ---------------------------------------------------------------------------


@dataclass
class SyncOutcome:
    """Report of one :func:`run_once` cycle plus the reloaded store."""

    report: PassReport
    listings: list[Listing] = field(default_factory=list)


async def run_once(settings: Settings, source: BaseBatchSource) -> SyncOutcome:
    """Fetch one batch from *source*, apply it and reload the store.

    Raises:
        BatchFetchError: If the source cannot deliver a batch.
    """
    logger.info(
        "run_once starting: source=%s db=%s",
        source.label,
        settings.database_path,
    )
    async with await ListingSync.connect(
        settings.database_path_resolved,
        collapse_duplicates=settings.collapse_duplicate_links,
    ) as host:
        async with source:
            report = await host.ingest(source)
        listings = await host.load()
    return SyncOutcome(report=report, listings=listings)
