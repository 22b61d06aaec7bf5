"""JSON-file batch source, for replaying a saved scraper response."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from propsync.core.exceptions import BatchFetchError
from propsync.sources.base import BaseBatchSource
from propsync.sources.records import extract_records

__all__ = ["FileBatchSource"]

logger = logging.getLogger(__name__)


class FileBatchSource(BaseBatchSource):
    """Read a batch from a JSON file in any shape the webhook may return.

    Args:
        path: Path to the JSON file.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def label(self) -> str:
        return str(self._path)

    async def fetch_batch(self) -> list[Any]:
        """Load and unwrap the file's records.

        Raises:
            BatchFetchError: If the file cannot be read or is not valid JSON.
        """
        try:
            text = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except OSError as exc:
            raise BatchFetchError(self.label, f"cannot read file: {exc}") from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise BatchFetchError(self.label, f"invalid JSON: {exc}") from exc

        records = extract_records(payload)
        logger.info("Loaded %d record(s) from %s", len(records), self.label)
        return records
