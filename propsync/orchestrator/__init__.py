"""Pass orchestration and the engine host."""

from propsync.orchestrator.pipeline import PassReport, apply_pass
from propsync.orchestrator.runner import ListingSync, SyncOutcome, run_once

__all__ = [
    "PassReport",
    "apply_pass",
    "ListingSync",
    "SyncOutcome",
    "run_once",
]
