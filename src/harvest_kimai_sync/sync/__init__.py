"""Reconciliation, matching, and transfer of time entries."""

from harvest_kimai_sync.sync.engine import SyncEngine, TaskExtractionResult
from harvest_kimai_sync.sync.matcher import MatchResult, TaskMatcher, find_matches, normalize_name
from harvest_kimai_sync.sync.reconciler import EntryReconciler, ReconcileResult
from harvest_kimai_sync.sync.transfer import (
    TransferEngine,
    TransferResult,
    derive_interval,
    plan_timesheets,
    resolve_mappings,
)

__all__ = [
    "EntryReconciler",
    "MatchResult",
    "ReconcileResult",
    "SyncEngine",
    "TaskExtractionResult",
    "TaskMatcher",
    "TransferEngine",
    "TransferResult",
    "derive_interval",
    "find_matches",
    "normalize_name",
    "plan_timesheets",
    "resolve_mappings",
]
