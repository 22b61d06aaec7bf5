"""Single reconciliation pass: reset → lookup → reconcile → insert → update.

This module applies one incoming batch to the canonical store.  The four
store phases run strictly in sequence on the single connection:

1. **Reset**: clear every stored freshness flag
   (:meth:`~propsync.storage.repository.ListingRepository.reset_fresh`).
2. **Lookup**: read the link/area projection for the batch links
   (:meth:`~propsync.storage.repository.ListingRepository.fetch_areas`).
3. **Reconcile**: pure classification via
   :func:`~propsync.engine.reconciler.reconcile` (no I/O).
4. **Insert**: write ``to_insert``
   (:meth:`~propsync.storage.repository.ListingRepository.insert_many`).
5. **Update**: write ``to_update``
   (:meth:`~propsync.storage.repository.ListingRepository.upsert_many`).

Failure policy
--------------
Each store phase is isolated: its exception is wrapped in a
:class:`~propsync.core.exceptions.PersistenceError` tagged with the phase,
logged, and recorded on the returned :class:`PassReport`.  Nothing is rolled
back across phases.

* reset fails  → the pass continues;
* lookup fails → the pass is aborted (classification needs the lookup);
* insert fails → update is still attempted;
* update fails → recorded.

:func:`apply_pass` therefore never raises for store failures.

Typical usage::

    from propsync.orchestrator.pipeline import apply_pass
    from propsync.storage.database import open_db
    from propsync.storage.repository import ListingRepository

    async def main(batch) -> None:
        conn = await open_db()
        report = await apply_pass(ListingRepository(conn), batch)
        print(report.notice)
        await conn.close()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from propsync.core import events
from propsync.core.exceptions import PersistenceError, Phase
from propsync.core.models import Listing, ReconciliationResult
from propsync.engine.reconciler import reconcile
from propsync.storage.repository import ListingRepository

__all__ = [
    "PassReport",
    "apply_pass",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass
class PassReport:
    """Outcome of one reconciliation pass.

    Attributes:
        received: Listings handed to the pass (after record validation).
        skipped: Incoming records rejected by validation before the pass.
        reset_count: Flags cleared by the reset phase; ``None`` if the
            phase did not run or failed.
        inserted: Listings written by the insert phase.
        updated: Listings written by the update phase.
        unchanged: Incoming listings dropped as unchanged.
        errors: One :class:`PersistenceError` per failed phase, in order.
        aborted: ``True`` when the lookup failed and nothing was written.
        degraded: ``True`` when the store was unavailable and the pass was a
            no-op.
        result: The reconciliation plan, when classification ran.
    """

    received: int = 0
    skipped: int = 0
    reset_count: int | None = None
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: list[PersistenceError] = field(default_factory=list)
    aborted: bool = False
    degraded: bool = False
    result: ReconciliationResult | None = None

    @property
    def ok(self) -> bool:
        """``True`` when every phase succeeded on an available store."""
        return not (self.errors or self.aborted or self.degraded)

    @property
    def failed_phases(self) -> list[Phase]:
        """Phases that failed, in execution order."""
        return [err.phase for err in self.errors]

    @property
    def notice(self) -> str:
        """One-line, user-facing summary of the pass."""
        if self.degraded:
            return "Listing store unavailable; showing last known listings."
        if self.aborted:
            return "Sync failed while reading stored listings; showing last known listings."
        counts = f"{self.inserted} new, {self.updated} updated, {self.unchanged} unchanged"
        if self.skipped:
            counts += f", {self.skipped} skipped"
        if self.errors:
            phases = ", ".join(str(phase) for phase in self.failed_phases)
            return f"Sync partially failed ({phases}): {counts}."
        if not self.received:
            if self.skipped:
                return f"No valid listings in batch ({self.skipped} skipped); store unchanged."
            return "Scraper returned no listings; store unchanged."
        return f"Sync complete: {counts}."


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _record_failure(report: PassReport, phase: Phase, exc: Exception) -> PersistenceError:
    err = PersistenceError(phase, str(exc) or type(exc).__name__)
    err.__cause__ = exc
    report.errors.append(err)
    logger.error(
        "Phase %s failed: %s",
        phase,
        exc,
        exc_info=exc,
        extra={"event": events.PHASE_ERROR, "phase": str(phase)},
    )
    return err


# ---------------------------------------------------------------------------
# Pass entry-point
# ---------------------------------------------------------------------------


async def apply_pass(
    repo: ListingRepository,
    incoming: Sequence[Listing],
    *,
    collapse_duplicates: bool = False,
) -> PassReport:
    """Reconcile *incoming* against the store and persist the result.

    An empty batch is not a pass: the store, including its freshness flags,
    is left untouched.

    Args:
        repo: Repository bound to the canonical store.
        incoming: Validated listings of one batch, in scrape order.
        collapse_duplicates: Forwarded to
            :func:`~propsync.engine.reconciler.reconcile`.

    Returns:
        A :class:`PassReport`; store failures are reported there, not raised.
    """
    report = PassReport(received=len(incoming))
    if not incoming:
        logger.info("Empty batch; store left untouched")
        return report

    logger.info(
        "Pass started: %d incoming listing(s)",
        len(incoming),
        extra={"event": events.PASS_START},
    )

    # ------------------------------------------------------------------
    # Phase 1: reset freshness epoch
    # ------------------------------------------------------------------
    try:
        report.reset_count = await repo.reset_fresh()
    except Exception as exc:  # noqa: BLE001
        _record_failure(report, Phase.RESET, exc)

    # ------------------------------------------------------------------
    # Phase 2: lookup (fatal on failure)
    # ------------------------------------------------------------------
    try:
        stored = await repo.fetch_areas(listing.link for listing in incoming)
    except Exception as exc:  # noqa: BLE001
        _record_failure(report, Phase.LOOKUP, exc)
        report.aborted = True
        logger.error(
            "Pass aborted: cannot classify without the stored lookup",
            extra={"event": events.PASS_ABORT},
        )
        return report

    result = reconcile(stored, incoming, collapse_duplicates=collapse_duplicates)
    report.result = result
    report.unchanged = len(result.unchanged)

    # ------------------------------------------------------------------
    # Phase 3: insert
    # ------------------------------------------------------------------
    try:
        report.inserted = await repo.insert_many(result.to_insert)
    except Exception as exc:  # noqa: BLE001
        _record_failure(report, Phase.INSERT, exc)

    # ------------------------------------------------------------------
    # Phase 4: update
    # ------------------------------------------------------------------
    try:
        report.updated = await repo.upsert_many(result.to_update)
    except Exception as exc:  # noqa: BLE001
        _record_failure(report, Phase.UPDATE, exc)

    logger.info(
        "Pass complete: reset=%s inserted=%d updated=%d unchanged=%d failed_phases=%s",
        report.reset_count if report.reset_count is not None else "n/a",
        report.inserted,
        report.updated,
        report.unchanged,
        ",".join(str(p) for p in report.failed_phases) or "none",
        extra={"event": events.PASS_COMPLETE},
    )
    return report
