"""Propsync core domain models.

This module defines the canonical :class:`Listing` model and the
:class:`ReconciliationResult` produced by the reconciler.

A listing is identified by its **source link**: the URL of the listing on
the site it was scraped from.  The link is the dedup key everywhere in the
application; there is no surrogate identifier outside the storage layer.

Typical usage::

    from propsync.core.models import Listing, KnownSource

    listing = Listing(
        link="https://www.99acres.com/3-bhk-flat-r12345",
        propertyName="Skyline Residency",
        area="1,935 sqft",
        source=KnownSource.NINETY_NINE_ACRES,
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum
from typing import Final

from pydantic import BaseModel, Field, field_validator

__all__ = [
    "ALL_SOURCES",
    "KnownSource",
    "Listing",
    "ReconciliationResult",
]

logger = logging.getLogger(__name__)

#: Reserved source filter value meaning "every source".  No listing may use
#: it as its own source tag.
ALL_SOURCES: Final[str] = "all"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class KnownSource(StrEnum):
    """Scraper origins emitted by the current scraping workflow.

    Sources form an open set: a listing may carry any other non-reserved tag.
    """

    NINETY_NINE_ACRES = "99acres"
    VITAL_SPACE = "VitalSpace"
    OTHER = "Other"


# ---------------------------------------------------------------------------
# Core domain model
# ---------------------------------------------------------------------------

_TEXT_FIELDS: Final[tuple[str, ...]] = (
    "property_name",
    "price",
    "bhk",
    "locality",
    "area",
    "developer",
    "status",
    "reg_date",
    "property_type",
    "city",
    "furnishing",
    "fomo",
    "source",
)


class Listing(BaseModel):
    """Normalised representation of one scraped real-estate listing.

    Scrapers emit free-text values, so every descriptive attribute is kept as
    a string exactly as displayed on the source site.  Absent values are
    stored as ``""`` so comparison and display code never needs a ``None``
    guard.

    Input accepts either the Python field names or the camelCase names used
    by the scraper payload (``propertyName``, ``regDate``, ``propertyType``,
    ``isNew``).

    The model is **frozen**; use :meth:`with_freshness` to derive a copy with
    a different freshness flag.

    Attributes:
        link: Source URL of the listing.  Natural key, never blank.
        property_name: Display name of the project / building.
        price: Price as displayed (e.g. ``"₹ 1.2 Cr"``).
        bhk: Room-count class (e.g. ``"3 BHK"``).
        locality: Neighbourhood.
        area: Area measurement with its unit, free text.
        developer: Builder / developer name.
        status: Construction or availability status.
        reg_date: Registration (RERA) date as displayed.
        property_type: Apartment, villa, plot, ...
        city: City name.
        furnishing: Furnishing state.
        fomo: Urgency blurb shown by the source site, if any.
        source: Scraper origin tag (see :class:`KnownSource`).
        is_new: Freshness flag: ``True`` iff the listing was inserted or
            materially updated by the most recent reconciliation pass.
        created_at: When the row was first stored.  Only set on listings
            read back from the store.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    link: str = Field(..., min_length=1, description="Source URL; dedup key.")
    property_name: str = Field(default="", alias="propertyName")
    price: str = ""
    bhk: str = ""
    locality: str = ""
    area: str = ""
    developer: str = ""
    status: str = ""
    reg_date: str = Field(default="", alias="regDate")
    property_type: str = Field(default="", alias="propertyType")
    city: str = ""
    furnishing: str = ""
    fomo: str = ""
    source: str = ""
    is_new: bool = Field(default=False, alias="isNew")
    created_at: datetime | None = None

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("link", mode="before")
    @classmethod
    def _link_non_blank(cls, v: object) -> object:
        """Reject a missing or blank link with a clear message."""
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("link must not be blank")
        return v

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, v: object) -> object:
        """Treat ``None`` as empty and render scalar numbers as text."""
        if v is None:
            return ""
        if isinstance(v, Enum):
            return v.value
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("source")
    @classmethod
    def _source_not_reserved(cls, v: str) -> str:
        if v.strip().lower() == ALL_SOURCES:
            raise ValueError(f"source tag {v!r} is reserved for the all-sources filter")
        return v

    @field_validator("is_new", mode="before")
    @classmethod
    def _none_is_not_fresh(cls, v: object) -> object:
        return False if v is None else v

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def with_freshness(self, is_new: bool) -> Listing:
        """Return a copy of this listing carrying the given freshness flag."""
        return self.model_copy(update={"is_new": is_new})


# ---------------------------------------------------------------------------
# Reconciliation output
# ---------------------------------------------------------------------------


@dataclass
class ReconciliationResult:
    """Write plan produced by :func:`~propsync.engine.reconciler.reconcile`.

    The consumer applies it as an explicit two-phase write: first clear every
    stored freshness flag (when :attr:`reset_required`), then write
    :attr:`to_insert` and :attr:`to_update`, both already flagged fresh.

    Attributes:
        to_insert: Listings whose link is not stored yet, in batch order.
        to_update: Stored listings whose normalised area changed, in batch
            order.
        reset_required: Always ``True`` for a reconciliation pass; kept as an
            explicit output so the persistence layer sequences the reset.
        unchanged: Incoming listings dropped because nothing material
            changed.  Informational only; never written.
    """

    to_insert: list[Listing] = field(default_factory=list)
    to_update: list[Listing] = field(default_factory=list)
    reset_required: bool = True
    unchanged: list[Listing] = field(default_factory=list)

    @property
    def fresh_links(self) -> set[str]:
        """Links that will carry the freshness flag once the plan is applied."""
        return {listing.link for listing in (*self.to_insert, *self.to_update)}

    @property
    def is_empty(self) -> bool:
        """``True`` when there is nothing to insert or update."""
        return not self.to_insert and not self.to_update
