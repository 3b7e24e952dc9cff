"""Cycle orchestration and gap backfill."""

from .backfill import BackfillResult, BackfillRunner, find_gap_date
from .orchestrator import STALE_RUN_AFTER, CycleOrchestrator, CycleResult, PipelineStage, SchedulerStatus, build_extractor

__all__ = [
    "STALE_RUN_AFTER",
    "BackfillResult",
    "BackfillRunner",
    "CycleOrchestrator",
    "CycleResult",
    "PipelineStage",
    "SchedulerStatus",
    "build_extractor",
    "find_gap_date",
]
