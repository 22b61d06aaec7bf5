"""SQLite-backed canonical listing store."""

from propsync.storage.database import DEFAULT_DB_PATH, create_schema, open_db
from propsync.storage.repository import ListingRepository

__all__ = [
    "DEFAULT_DB_PATH",
    "open_db",
    "create_schema",
    "ListingRepository",
]
