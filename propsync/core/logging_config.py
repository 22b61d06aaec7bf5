"""Process-wide logging setup.

``configure_logging()`` is called once by the CLI.  Modules log through
``logging.getLogger(__name__)`` and tag structured events with
``extra={"event": ...}`` (see :mod:`propsync.core.events`).

Every record carries the id of the reconciliation pass it was emitted in,
taken from :data:`PASS_ID_CTX`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

__all__ = ["configure_logging", "JsonFormatter", "PASS_ID_CTX", "PassContextFilter"]

#: Id of the pass in progress; ``"-"`` outside a pass.  Set by
#: :meth:`~propsync.orchestrator.runner.ListingSync.sync`.
PASS_ID_CTX: ContextVar[str] = ContextVar("pass_id", default="-")

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_FORMATS = ("text", "json")
_TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(pass_id)s] %(name)s: %(message)s"

# Attributes every LogRecord has; anything else was passed via ``extra``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class PassContextFilter(logging.Filter):
    """Stamp ``record.pass_id`` from :data:`PASS_ID_CTX`."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.pass_id = PASS_ID_CTX.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ``ts``, ``level``, ``logger``, ``message``,
    ``extra`` and, when present, ``exc_info``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        ts = datetime.fromtimestamp(record.created, tz=UTC)
        payload: dict[str, Any] = {
            "ts": ts.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "extra": {
                key: value
                for key, value in record.__dict__.items()
                if key not in _STANDARD_ATTRS
            },
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _pick(value: str | None, env_var: str, default: str, allowed: tuple[str, ...]) -> str:
    chosen = value or os.environ.get(env_var) or default
    chosen = chosen.upper() if allowed is _LEVELS else chosen.lower()
    if chosen not in allowed:
        kind = "log level" if allowed is _LEVELS else "log format"
        raise ValueError(f"Unknown {kind} {chosen!r}; expected one of {', '.join(allowed)}")
    return chosen


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    *,
    force: bool = False,
) -> None:
    """Install a single stderr handler on the root logger.

    *level* and *fmt* fall back to ``$PROPSYNC_LOG_LEVEL`` /
    ``$PROPSYNC_LOG_FORMAT``, then ``INFO`` / ``text``.  If the root logger
    already has handlers and *force* is false, only the level is applied.

    Raises:
        ValueError: On an unknown level or format.
    """
    level = _pick(level, "PROPSYNC_LOG_LEVEL", "INFO", _LEVELS)
    fmt = _pick(fmt, "PROPSYNC_LOG_FORMAT", "text", _FORMATS)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers and not force:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(PassContextFilter())
    handler.setFormatter(
        JsonFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT)
    )
    root.handlers[:] = [handler]

    quiet = logging.NOTSET if level == "DEBUG" else logging.WARNING
    for name in ("httpx", "httpcore", "aiosqlite"):
        logging.getLogger(name).setLevel(quiet)
