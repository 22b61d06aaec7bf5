"""Batch payload extraction and record coercion.

The scraping workflow answers its trigger in several JSON shapes depending
on how its last node is configured.  :func:`extract_records` accepts all of
them:

* a bare array of records, each optionally wrapped as ``{"json": {...}}``;
* ``{"success": true, "data": [...]}``;
* ``{"json": {"data": [...]}}``;
* ``{"data": [...]}``.

Anything else is treated as an empty batch.

:func:`parse_records` then turns raw records into
:class:`~propsync.core.models.Listing` objects.  Keys are matched without
regard to case or underscores, so ``propertyName``, ``property_name`` and
the store's ``propertyname`` all land on the same field.  Records that
cannot become a listing (typically a missing link) are skipped and reported
as :class:`~propsync.core.exceptions.ListingValidationError`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Final

from pydantic import ValidationError

from propsync.core import events
from propsync.core.exceptions import ListingValidationError
from propsync.core.models import Listing

__all__ = ["extract_records", "parse_records"]

logger = logging.getLogger(__name__)

#: Folded key (lowercase, no underscores) → Listing field name.
_KEY_TO_FIELD: Final[dict[str, str]] = {
    name.replace("_", "").lower(): name
    for name in Listing.model_fields
    if name != "created_at"
}


def _fold_key(key: str) -> str:
    return key.replace("_", "").lower()


def _unwrap(item: Any) -> Any:
    if isinstance(item, Mapping) and isinstance(item.get("json"), Mapping):
        return item["json"]
    return item


def extract_records(payload: Any) -> list[Any]:
    """Pull the list of raw records out of a scraper response payload.

    Args:
        payload: Decoded JSON body.

    Returns:
        The raw records, in payload order.  Empty if the shape is not
        recognised.
    """
    if isinstance(payload, list):
        return [_unwrap(item) for item in payload]

    if not isinstance(payload, Mapping):
        logger.warning("Unrecognised batch payload of type %s", type(payload).__name__)
        return []

    data = payload.get("data")
    if "success" in payload and isinstance(data, list):
        return list(data)

    wrapped = payload.get("json")
    if isinstance(wrapped, Mapping) and isinstance(wrapped.get("data"), list):
        return list(wrapped["data"])

    if isinstance(data, list):
        return list(data)

    logger.warning("Batch payload has no record list (keys: %s)", sorted(payload))
    return []


def _summarise(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in exc.errors()
    )


def parse_records(
    records: Sequence[Any],
) -> tuple[list[Listing], list[ListingValidationError]]:
    """Coerce raw records into listings, skipping the invalid ones.

    Unknown keys are ignored; missing descriptive fields default to ``""``.

    Args:
        records: Raw records as returned by :func:`extract_records`.

    Returns:
        ``(listings, rejected)``: valid listings in batch order, and one
        :class:`ListingValidationError` per skipped record.
    """
    listings: list[Listing] = []
    rejected: list[ListingValidationError] = []

    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            err = ListingValidationError(
                index, f"expected an object, got {type(record).__name__}"
            )
        else:
            data = {
                _KEY_TO_FIELD[folded]: value
                for key, value in record.items()
                if isinstance(key, str) and (folded := _fold_key(key)) in _KEY_TO_FIELD
            }
            try:
                listings.append(Listing(**data))
                continue
            except ValidationError as exc:
                err = ListingValidationError(index, _summarise(exc))

        rejected.append(err)
        logger.warning("Skipping %s", err, extra={"event": events.LISTING_SKIPPED})

    logger.debug(
        "Parsed %d record(s): %d valid, %d skipped",
        len(records),
        len(listings),
        len(rejected),
    )
    return listings, rejected
