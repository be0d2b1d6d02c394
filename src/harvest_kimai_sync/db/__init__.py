"""Local persistence for harvest-kimai-sync."""

from harvest_kimai_sync.db.models import (
    ENTRY_COMPARED_FIELDS,
    Base,
    KimaiActivityRecord,
    TaskRecord,
    TimeEntryRecord,
)
from harvest_kimai_sync.db.store import LocalStore

__all__ = [
    "ENTRY_COMPARED_FIELDS",
    "Base",
    "KimaiActivityRecord",
    "LocalStore",
    "TaskRecord",
    "TimeEntryRecord",
]
