"""Read-side helpers over the reconciled store.

All helpers take the listings in store order (as returned by
:meth:`~propsync.storage.repository.ListingRepository.load_all`) and return
stable sub-sequences; none of them reorder.
"""

from __future__ import annotations

from collections.abc import Iterable

from propsync.core.models import ALL_SOURCES, Listing

__all__ = ["filter_by_source", "fresh_only", "list_sources"]


def list_sources(listings: Iterable[Listing]) -> set[str]:
    """Return the distinct, non-empty source tags present in *listings*."""
    return {listing.source for listing in listings if listing.source}


def filter_by_source(listings: Iterable[Listing], source: str) -> list[Listing]:
    """Return the listings whose source tag equals *source*, in store order.

    :data:`~propsync.core.models.ALL_SOURCES` (``"all"``) is the identity
    filter.  Matching is exact and case-sensitive, like the tags themselves.
    """
    if source == ALL_SOURCES:
        return list(listings)
    return [listing for listing in listings if listing.source == source]


def fresh_only(listings: Iterable[Listing]) -> list[Listing]:
    """Return the listings flagged fresh by the most recent pass, in store order."""
    return [listing for listing in listings if listing.is_new]
