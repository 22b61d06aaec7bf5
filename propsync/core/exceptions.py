"""Propsync exception taxonomy.

Every custom exception inherits from :class:`PropsyncError`.  Exceptions are
organised by the layer that raises them so callers can catch at the right
granularity:

    Layer hierarchy
    ---------------
    PropsyncError
    ├── ConfigurationError
    ├── ListingValidationError
    ├── PersistenceError
    └── BatchFetchError

Usage:

    from propsync.core.exceptions import PersistenceError, Phase

    raise PersistenceError(Phase.LOOKUP, "database is locked") from exc
"""

from __future__ import annotations

import logging
from enum import StrEnum

__all__ = [
    "PropsyncError",
    "Phase",
    # Config
    "ConfigurationError",
    # Sources
    "ListingValidationError",
    "BatchFetchError",
    # Storage
    "PersistenceError",
]

logger = logging.getLogger(__name__)


class Phase(StrEnum):
    """The four ordered store operations of a reconciliation pass."""

    RESET = "reset"
    LOOKUP = "lookup"
    INSERT = "insert"
    UPDATE = "update"


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class PropsyncError(Exception):
    """Root exception for all Propsync errors.

    Catch this to handle any application-level error uniformly.  Prefer
    catching the layer-specific subclasses wherever possible.
    """


# ---------------------------------------------------------------------------
# Config layer
# ---------------------------------------------------------------------------


class ConfigurationError(PropsyncError):
    """Raised when the store or the application settings are unusable.

    Examples:
        - The SQLite file cannot be created or opened.
        - A required setting (e.g. the webhook URL) is missing.
    """


# ---------------------------------------------------------------------------
# Source layer
# ---------------------------------------------------------------------------


class ListingValidationError(PropsyncError):
    """Raised for an incoming record that cannot become a listing.

    Such records are skipped; the rest of the batch is still processed.

    Args:
        index: Position of the record inside its batch.
        message: Human-readable reason.
    """

    def __init__(self, index: int, message: str) -> None:
        self.index = index
        super().__init__(f"record #{index}: {message}")


class BatchFetchError(PropsyncError):
    """Raised when a batch source cannot deliver a batch.

    Covers network errors, non-2xx responses after retries, unreadable files
    and non-JSON bodies.

    Args:
        source: Short label of the batch source (URL or file path).
        message: Human-readable error description.
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"[{source}] {message}")


# ---------------------------------------------------------------------------
# Storage layer
# ---------------------------------------------------------------------------


class PersistenceError(PropsyncError):
    """Raised when one phase of a pass fails against the store.

    A failure in one phase never rolls back a phase that already completed.

    Args:
        phase: Which store operation failed.
        message: Human-readable error description.
    """

    def __init__(self, phase: Phase | str, message: str) -> None:
        self.phase = Phase(phase)
        super().__init__(f"{self.phase} failed: {message}")
