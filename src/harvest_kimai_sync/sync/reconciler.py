"""Diff freshly fetched Harvest entries against the local store."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from harvest_kimai_sync.db import ENTRY_COMPARED_FIELDS, LocalStore, TimeEntryRecord
from harvest_kimai_sync.exceptions import StorageError
from harvest_kimai_sync.harvest import HarvestTimeEntry


class ReconcileResult:
    """Counts from one reconciliation run."""

    def __init__(self) -> None:
        self.inserted = 0
        self.updated = 0
        self.unchanged = 0
        self.failed = 0
        self.errors: list[str] = []

    def add_failure(self, error: str) -> None:
        """Record a row that could not be written."""
        self.failed += 1
        self.errors.append(error)

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.unchanged + self.failed

    def as_dict(self) -> dict[str, int]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "failed": self.failed,
        }

    def __str__(self) -> str:
        return (
            f"Inserted: {self.inserted}, "
            f"Updated: {self.updated}, "
            f"Unchanged: {self.unchanged}, "
            f"Failed: {self.failed}"
        )


def entry_values(entry: HarvestTimeEntry) -> dict[str, Any]:
    """Flatten a Harvest entry into the comparable store columns.

    Missing client/project/task objects and notes become empty strings.
    """
    return {
        "date": entry.spent_date,
        "client": entry.client_name,
        "project": entry.project_name,
        "task": entry.task_name,
        "notes": entry.notes or "",
        "hours": entry.hours,
        "started_time": entry.started_time,
        "ended_time": entry.ended_time,
    }


def has_changed(existing: TimeEntryRecord, values: dict[str, Any]) -> bool:
    """Check whether any compared field differs from the stored row."""
    return any(getattr(existing, field) != values[field] for field in ENTRY_COMPARED_FIELDS)


class EntryReconciler:
    """Classifies fetched entries as new, changed, or unchanged and writes them."""

    def __init__(self, store: LocalStore, logger: logging.Logger | None = None) -> None:
        """Initialize reconciler.

        Args:
            store: Local store to diff against.
            logger: Logger to report progress to.
        """
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    async def reconcile(self, entries: Sequence[HarvestTimeEntry]) -> ReconcileResult:
        """Store a batch of fetched entries.

        New entries are inserted with imported unset. Changed entries have
        their compared fields overwritten; their import status and Kimai ID
        are left alone. A row that fails to write is counted and logged and
        the rest of the batch continues.

        Args:
            entries: Entries as fetched from Harvest.

        Returns:
            Counts of inserted, updated, unchanged, and failed rows.

        Raises:
            StorageError: If existing rows cannot be loaded.
        """
        result = ReconcileResult()
        self.logger.info(f"Processing {len(entries)} time entries for database storage")

        if not entries:
            self.logger.warning("No time entries to store")
            return result

        existing = await self.store.get_entries(entry.source_id for entry in entries)

        new_entries: list[HarvestTimeEntry] = []
        changed_entries: list[HarvestTimeEntry] = []
        seen: set[str] = set()
        for entry in entries:
            if entry.source_id in seen:
                # repeated within the batch; the first occurrence wins
                self.logger.warning(f"Duplicate Harvest entry {entry.source_id} in batch, ignoring")
                result.unchanged += 1
                continue
            seen.add(entry.source_id)

            stored = existing.get(entry.source_id)
            if stored is None:
                new_entries.append(entry)
            elif has_changed(stored, entry_values(entry)):
                changed_entries.append(entry)
            else:
                result.unchanged += 1

        self.logger.info(
            f"Found {len(new_entries)} new entries, {len(changed_entries)} changed entries, "
            f"and {result.unchanged} unchanged entries"
        )

        for entry in new_entries:
            created_at = entry.created_at or datetime.now(timezone.utc)
            values = {
                "harvest_id": entry.source_id,
                **entry_values(entry),
                "created_at": created_at.isoformat(),
                "imported": False,
            }
            try:
                self.logger.debug(f"Inserting new time entry: {entry.id} - {entry.spent_date}")
                await self.store.insert_entry(values)
                result.inserted += 1
            except StorageError as e:
                self.logger.error(f"Error inserting time entry {entry.id}: {e}")
                result.add_failure(str(e))

        for entry in changed_entries:
            try:
                self.logger.debug(f"Updating time entry: {entry.id} - {entry.spent_date}")
                await self.store.update_entry(entry.source_id, entry_values(entry))
                result.updated += 1
            except StorageError as e:
                self.logger.error(f"Error updating time entry {entry.id}: {e}")
                result.add_failure(str(e))

        self.logger.info(f"Reconciliation complete: {result}")
        return result
