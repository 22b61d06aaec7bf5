"""Propsync process entry-point.

Usage:
    python -m propsync [--batch FILE | --webhook] [--show] [--source TAG]
                       [--fresh-only] [--clear]

Every invocation is one-shot: at most one reconciliation pass, then an
optional listing of the store.  ``--clear`` empties the store and exits.

Exit codes:
    0  success
    1  configuration error, unavailable store, or aborted pass
    2  the batch could not be fetched
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from propsync.core import configure_logging
from propsync.core.exceptions import BatchFetchError, ConfigurationError
from propsync.core.models import ALL_SOURCES, Listing
from propsync.core.settings import Settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FETCH = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="propsync",
        description="Reconcile scraped real-estate listings into a canonical store.",
    )
    batch = parser.add_mutually_exclusive_group()
    batch.add_argument(
        "--batch",
        metavar="FILE",
        default=None,
        help="Run one pass from a saved JSON scraper response.",
    )
    batch.add_argument(
        "--webhook",
        action="store_true",
        help="Run one pass by triggering PROPSYNC_WEBHOOK_URL.",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Print the store, newest first, after any pass.",
    )
    parser.add_argument(
        "--source",
        default=ALL_SOURCES,
        metavar="TAG",
        help=f"Only show listings from this source (default: {ALL_SOURCES}).",
    )
    parser.add_argument(
        "--fresh-only",
        action="store_true",
        help="Only show listings flagged fresh by the last pass.",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete every stored listing and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        metavar="LEVEL",
        help="Override PROPSYNC_LOG_LEVEL (DEBUG|INFO|WARNING|ERROR).",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        metavar="FORMAT",
        help="Override PROPSYNC_LOG_FORMAT (text|json).",
    )
    return parser


def _print_listings(listings: Sequence[Listing], *, source: str, fresh: bool) -> None:
    from propsync.engine.views import (  # noqa: PLC0415
        filter_by_source,
        fresh_only,
        list_sources,
    )

    sources = sorted(list_sources(listings))
    shown = filter_by_source(listings, source)
    if fresh:
        shown = fresh_only(shown)

    for listing in shown:
        marker = "*" if listing.is_new else " "
        print(  # noqa: T201
            f"{marker} {listing.property_name or '-'} | {listing.price or '-'} | "
            f"{listing.area or '-'} | {listing.locality or '-'} | "
            f"{listing.source or '-'} | {listing.link}"
        )
    print(  # noqa: T201
        f"{len(shown)} of {len(listings)} listing(s); "
        f"sources: {', '.join(sources) or 'none'}"
    )


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    # Lazy imports keep --help fast.
    from propsync.orchestrator.runner import ListingSync, run_once  # noqa: PLC0415
    from propsync.sources.base import BaseBatchSource  # noqa: PLC0415
    from propsync.sources.file import FileBatchSource  # noqa: PLC0415
    from propsync.sources.webhook import WebhookBatchSource  # noqa: PLC0415

    if args.clear:
        async with await ListingSync.connect(settings.database_path_resolved) as host:
            if host.degraded:
                return EXIT_CONFIG
            removed = await host.clear()
        if removed is None:
            print("Clearing the store failed; see log for details.")  # noqa: T201
            return EXIT_CONFIG
        print(f"Cleared {removed} listing(s).")  # noqa: T201
        return EXIT_OK

    source: BaseBatchSource | None = None
    if args.batch:
        source = FileBatchSource(args.batch)
    elif args.webhook:
        if not settings.webhook_configured:
            raise ConfigurationError(
                "--webhook requires PROPSYNC_WEBHOOK_URL to be set (env or .env)."
            )
        source = WebhookBatchSource(
            settings.webhook_url,
            timeout=settings.webhook_timeout,
            max_attempts=settings.webhook_max_attempts,
        )

    exit_code = EXIT_OK
    if source is not None:
        outcome = await run_once(settings, source)
        print(outcome.report.notice)  # noqa: T201
        if outcome.report.aborted or outcome.report.degraded:
            exit_code = EXIT_CONFIG
        listings = outcome.listings
    elif args.show:
        async with await ListingSync.connect(settings.database_path_resolved) as host:
            if host.degraded:
                print("Listing store unavailable.")  # noqa: T201
                return EXIT_CONFIG
            listings = await host.load()
    else:
        logger.info("Nothing to do; pass --batch, --webhook, --show or --clear.")
        return EXIT_OK

    if args.show:
        _print_listings(listings, source=args.source, fresh=args.fresh_only)
    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry-point registered in ``pyproject.toml``."""
    args = _build_parser().parse_args(argv)

    # Flags override the settings (env and .env).
    try:
        settings = Settings()
        configure_logging(
            level=args.log_level or settings.log_level,
            fmt=args.log_format or settings.log_format,
        )
    except ValueError as exc:
        print(f"propsync: configuration error: {exc}", file=sys.stderr)  # noqa: T201
        return EXIT_CONFIG

    try:
        return asyncio.run(_run(args, settings))
    except ConfigurationError as exc:
        logger.critical("Configuration error: %s", exc)
        return EXIT_CONFIG
    except BatchFetchError as exc:
        logger.error("Batch fetch failed: %s", exc)
        return EXIT_FETCH
    except KeyboardInterrupt:
        logger.info("Interrupted; exiting.")
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
