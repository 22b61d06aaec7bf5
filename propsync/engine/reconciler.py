"""Reconciliation of an incoming batch against the persisted listing set.

:func:`reconcile` classifies every incoming listing as **insert**, **update**
or **unchanged** and returns a :class:`~propsync.core.models.ReconciliationResult`
write plan.  It performs no I/O; applying the plan to a store is the job of
:func:`~propsync.orchestrator.pipeline.apply_pass`.

Classification rules
--------------------
* Link not among the stored links → insert, flagged fresh.
* Link stored, ``normalize(stored.area) != normalize(incoming.area)`` →
  update, flagged fresh.
* Link stored, same normalised area → unchanged; neither written nor
  re-flagged.

Freshness is a single global epoch: the plan always requires the store's
freshness flags to be cleared *before* the inserts and updates are written,
so that after the pass exactly the listings of this plan are flagged fresh.

Duplicate links within one batch
--------------------------------
By default every occurrence is classified independently against the same
pre-pass snapshot, so a link seen twice yields two writes and the last one
wins when applied in order.  Pass ``collapse_duplicates=True`` to keep only
the last occurrence of each link before classification.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from propsync.core import events
from propsync.core.models import Listing, ReconciliationResult
from propsync.engine.normalizer import normalize

__all__ = ["build_area_lookup", "collapse_to_last", "reconcile"]

logger = logging.getLogger(__name__)


def build_area_lookup(stored: Iterable[Listing], links: set[str]) -> dict[str, str]:
    """Map link → stored area for the stored listings whose link is in *links*.

    Only the comparison-relevant field is kept, and only for links present in
    the incoming batch, so the lookup is bounded by the batch size.
    """
    return {listing.link: listing.area for listing in stored if listing.link in links}


def collapse_to_last(incoming: Sequence[Listing]) -> list[Listing]:
    """Keep only the last occurrence of each link, at that occurrence's position."""
    last_index = {listing.link: i for i, listing in enumerate(incoming)}
    return [listing for i, listing in enumerate(incoming) if last_index[listing.link] == i]


def reconcile(
    stored: Iterable[Listing],
    incoming: Sequence[Listing],
    *,
    collapse_duplicates: bool = False,
) -> ReconciliationResult:
    """Compute the insert / update plan for one incoming batch.

    Args:
        stored: Persisted listings.  Only ``link`` and ``area`` are read, so a
            link/area projection from the store is sufficient.
        incoming: The batch, in scrape order.
        collapse_duplicates: Collapse same-link records to their last
            occurrence before classifying.

    Returns:
        A :class:`~propsync.core.models.ReconciliationResult` whose
        ``to_insert`` and ``to_update`` preserve batch order and carry
        ``is_new=True``.
    """
    batch = collapse_to_last(incoming) if collapse_duplicates else list(incoming)
    if collapse_duplicates and len(batch) != len(incoming):
        logger.debug(
            "Collapsed %d duplicate-link record(s) in batch",
            len(incoming) - len(batch),
        )

    lookup = build_area_lookup(stored, {listing.link for listing in batch})
    result = ReconciliationResult()

    for listing in batch:
        if listing.link not in lookup:
            result.to_insert.append(listing.with_freshness(True))
            logger.debug("NEW  %s", listing.link, extra={"event": events.LISTING_NEW})
            continue

        previous_area = lookup[listing.link]
        if normalize(previous_area) != normalize(listing.area):
            result.to_update.append(listing.with_freshness(True))
            logger.debug(
                "UPDATED  %s: area %r -> %r",
                listing.link,
                previous_area,
                listing.area,
                extra={"event": events.LISTING_UPDATED},
            )
        else:
            result.unchanged.append(listing)
            logger.debug(
                "UNCHANGED  %s", listing.link, extra={"event": events.LISTING_UNCHANGED}
            )

    logger.info(
        "Reconciled batch of %d: insert=%d update=%d unchanged=%d",
        len(batch),
        len(result.to_insert),
        len(result.to_update),
        len(result.unchanged),
    )
    return result
