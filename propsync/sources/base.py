"""Batch source interface.

A batch source delivers the raw records of one scraping run.  Sources do
not validate, deduplicate or reconcile; they only fetch and unwrap the
payload (see :func:`~propsync.sources.records.extract_records`).

Typical usage::

    async with WebhookBatchSource(url) as source:
        records = await source.fetch_batch()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any

__all__ = ["BaseBatchSource"]

logger = logging.getLogger(__name__)


class BaseBatchSource(ABC):
    """Abstract base for everything that can deliver an incoming batch.

    The async context manager protocol is provided; override :meth:`close`
    to release resources.
    """

    @property
    @abstractmethod
    def label(self) -> str:
        """Short human-readable origin (URL or path) for logs and errors."""

    async def close(self) -> None:  # noqa: B027
        """Release any resources held by this source.  No-op by default."""

    async def __aenter__(self) -> BaseBatchSource:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def fetch_batch(self) -> list[Any]:
        """Fetch one batch of raw records.

        Returns:
            Raw records in scrape order, possibly empty.

        Raises:
            :class:`~propsync.core.exceptions.BatchFetchError`: when no batch
            could be obtained.
        """
