"""Propsync: reconcile scraped real-estate listings into a canonical store."""

__version__ = "0.1.0"
