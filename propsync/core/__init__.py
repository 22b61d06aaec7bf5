"""Core domain models, settings, logging configuration, and shared utilities."""

from propsync.core.exceptions import (
    BatchFetchError,
    ConfigurationError,
    ListingValidationError,
    PersistenceError,
    Phase,
    PropsyncError,
)
from propsync.core.logging_config import JsonFormatter, configure_logging
from propsync.core.models import ALL_SOURCES, KnownSource, Listing, ReconciliationResult
from propsync.core.settings import Settings

__all__ = [
    # Logging
    "configure_logging",
    "JsonFormatter",
    # Domain models
    "ALL_SOURCES",
    "KnownSource",
    "Listing",
    "ReconciliationResult",
    # Settings
    "Settings",
    # Exceptions
    "PropsyncError",
    "Phase",
    "ConfigurationError",
    "ListingValidationError",
    "PersistenceError",
    "BatchFetchError",
]
