"""Reconciliation engine: normalisation, insert/update classification, read-side views."""

from propsync.engine.normalizer import normalize
from propsync.engine.reconciler import build_area_lookup, collapse_to_last, reconcile
from propsync.engine.views import filter_by_source, fresh_only, list_sources

__all__ = [
    "normalize",
    "reconcile",
    "build_area_lookup",
    "collapse_to_last",
    "list_sources",
    "filter_by_source",
    "fresh_only",
]
