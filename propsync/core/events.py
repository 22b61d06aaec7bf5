"""Structured log event name constants for Propsync.

Every key transition of a reconciliation pass emits a log record with an
``event`` field (``extra={"event": events.X}``).  In ``json`` log format the
value surfaces as ``extra.event``; in text mode the message is
self-describing and the event name is not printed.

Usage example::

    import logging
    from propsync.core import events

    logger = logging.getLogger(__name__)
    logger.info("Pass started", extra={"event": events.PASS_START})
"""

from __future__ import annotations

__all__ = [
    # Pass lifecycle
    "PASS_START",
    "PASS_COMPLETE",
    "PASS_ABORT",
    "PHASE_ERROR",
    # Listing classification
    "LISTING_NEW",
    "LISTING_UPDATED",
    "LISTING_UNCHANGED",
    "LISTING_SKIPPED",
    # Store
    "STORE_DEGRADED",
]

# ---------------------------------------------------------------------------
# Pass lifecycle
# ---------------------------------------------------------------------------

#: A reconciliation pass started applying a batch.
PASS_START: str = "PASS_START"

#: All four phases ran (some may have failed; see PHASE_ERROR records).
PASS_COMPLETE: str = "PASS_COMPLETE"

#: The lookup phase failed, so insert/update were not attempted.
PASS_ABORT: str = "PASS_ABORT"

#: One store phase (reset / lookup / insert / update) failed.
PHASE_ERROR: str = "PHASE_ERROR"

# ---------------------------------------------------------------------------
# Listing classification
# ---------------------------------------------------------------------------

#: Link not previously stored; classified for insert.
LISTING_NEW: str = "LISTING_NEW"

#: Link stored with a different normalised area; classified for update.
LISTING_UPDATED: str = "LISTING_UPDATED"

#: Link stored with the same normalised area; dropped.
LISTING_UNCHANGED: str = "LISTING_UNCHANGED"

#: Incoming record could not be coerced to a listing; skipped.
LISTING_SKIPPED: str = "LISTING_SKIPPED"

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

#: The store could not be opened; the engine host runs in degraded mode.
STORE_DEGRADED: str = "STORE_DEGRADED"
