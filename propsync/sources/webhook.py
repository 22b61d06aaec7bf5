"""Webhook batch source: trigger the scraping job over HTTP.

A single ``POST`` to the workflow webhook starts the scrapers and returns
their combined output as the response body, so the call is long-running
and the read timeout is generous.

Transient failures (network errors, HTTP 5xx) are retried with exponential
back-off via :mod:`tenacity`; any other non-2xx status fails immediately.
Every failure surfaces as :class:`~propsync.core.exceptions.BatchFetchError`.

Typical usage::

    from propsync.sources.webhook import WebhookBatchSource

    async with WebhookBatchSource("https://flows.example.com/webhook/scrape") as src:
        records = await src.fetch_batch()
"""

from __future__ import annotations

import logging
from typing import Any, Final

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from propsync.core.exceptions import BatchFetchError
from propsync.sources.base import BaseBatchSource
from propsync.sources.records import extract_records

__all__ = ["WebhookBatchSource"]

logger = logging.getLogger(__name__)

#: HTTP status codes that signal a transient server-side fault.
_RETRYABLE_STATUS: Final[frozenset[int]] = frozenset({500, 502, 503, 504})

_DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0
_DEFAULT_READ_TIMEOUT: Final[float] = 120.0
_DEFAULT_MAX_ATTEMPTS: Final[int] = 3

#: Cap on the exponential back-off between attempts (seconds).
_MAX_BACKOFF: Final[float] = 30.0


class _RetryableWebhookError(BatchFetchError):
    """Internal: a 5xx status that tenacity should retry."""


class WebhookBatchSource(BaseBatchSource):
    """Batch source backed by the scraping workflow's HTTP webhook.

    Args:
        url: Webhook URL.  Must be non-empty.
        timeout: Read timeout in seconds for the (long) scraping call.
        max_attempts: Total attempts including the first (≥ 1).
        backoff: Multiplier of the exponential back-off in seconds.
        client: Pre-built :class:`httpx.AsyncClient`.  When given, the source
            does not close it.

    Raises:
        ValueError: If *url* is empty or *max_attempts* is below 1.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = _DEFAULT_READ_TIMEOUT,
        max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
        backoff: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url:
            raise ValueError("url must not be empty")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be ≥ 1, got {max_attempts!r}.")

        self._url = url
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._timeout = httpx.Timeout(timeout, connect=_DEFAULT_CONNECT_TIMEOUT)
        self._http = client
        self._owns_client = client is None

    @property
    def label(self) -> str:
        return self._url

    async def close(self) -> None:
        """Close the HTTP session if this source created it."""
        if self._owns_client and self._http is not None and not self._http.is_closed:
            await self._http.aclose()
            logger.debug("Webhook HTTP session closed.")
        if self._owns_client:
            self._http = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        return self._http

    async def fetch_batch(self) -> list[Any]:
        """Trigger the scrape and return the raw records it produced.

        Raises:
            BatchFetchError: On network failure or non-2xx status after
                retries, or when the body is not JSON.
        """

        def _before_sleep(rs: RetryCallState) -> None:
            exc = rs.outcome.exception() if rs.outcome else None
            logger.warning(
                "Webhook POST %s attempt %d/%d failed (%s); retrying",
                self._url,
                rs.attempt_number,
                self._max_attempts,
                exc,
            )

        response: httpx.Response | None = None
        try:
            async for attempt in AsyncRetrying(
                wait=wait_exponential(multiplier=self._backoff, max=_MAX_BACKOFF),
                stop=stop_after_attempt(self._max_attempts),
                retry=retry_if_exception_type((_RetryableWebhookError, httpx.TransportError)),
                reraise=True,
                before_sleep=_before_sleep,
            ):
                with attempt:
                    response = await self._post_once()
        except httpx.TransportError as exc:
            raise BatchFetchError(self._url, f"network error: {exc!r}") from exc

        assert response is not None, "tenacity exited without a response or exception"

        try:
            payload = response.json()
        except ValueError as exc:
            raise BatchFetchError(self._url, "response body is not JSON") from exc

        records = extract_records(payload)
        logger.info("Webhook returned %d record(s)", len(records))
        return records

    async def _post_once(self) -> httpx.Response:
        client = self._ensure_client()
        logger.debug("POST %s", self._url)
        response = await client.post(self._url)

        if response.is_success:
            return response
        if response.status_code in _RETRYABLE_STATUS:
            raise _RetryableWebhookError(
                self._url, f"transient HTTP {response.status_code}"
            )
        raise BatchFetchError(
            self._url, f"HTTP {response.status_code}: {response.text[:200]}"
        )
