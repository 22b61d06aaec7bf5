"""Incoming batch sources and record coercion."""

from propsync.sources.base import BaseBatchSource
from propsync.sources.file import FileBatchSource
from propsync.sources.records import extract_records, parse_records
from propsync.sources.webhook import WebhookBatchSource

__all__ = [
    "BaseBatchSource",
    "FileBatchSource",
    "WebhookBatchSource",
    "extract_records",
    "parse_records",
]
