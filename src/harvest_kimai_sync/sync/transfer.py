"""Push pending entries to Kimai with derived begin/end timestamps."""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from harvest_kimai_sync.db import LocalStore, TaskRecord, TimeEntryRecord
from harvest_kimai_sync.exceptions import NetworkError, StorageError
from harvest_kimai_sync.kimai import KimaiClient, KimaiTimesheet

DEFAULT_DAY_START = time(9, 0)


@dataclass(frozen=True)
class ActivityRef:
    """Kimai identifiers resolved for a Harvest task name."""

    project_id: int
    activity_id: int


@dataclass(frozen=True)
class MappedEntry:
    """A pending entry together with its resolved Kimai identifiers."""

    entry: TimeEntryRecord
    ref: ActivityRef


@dataclass(frozen=True)
class PlannedTimesheet:
    """A pending entry and the timesheet that will be pushed for it."""

    entry: TimeEntryRecord
    timesheet: KimaiTimesheet


class TransferResult:
    """Results from one transfer run."""

    def __init__(self) -> None:
        self.imported = 0
        self.failed = 0
        self.skipped = 0
        self.errors: list[str] = []
        self.planned: list[PlannedTimesheet] = []

    def add_success(self) -> None:
        self.imported += 1

    def add_skip(self) -> None:
        self.skipped += 1

    def add_failure(self, error: str) -> None:
        self.failed += 1
        self.errors.append(error)

    def __str__(self) -> str:
        return f"Imported: {self.imported}, Failed: {self.failed}, Skipped: {self.skipped}"


def resolve_mappings(tasks: Sequence[TaskRecord]) -> dict[str, ActivityRef]:
    """Turn stored task mappings into a lookup by exact Harvest task name.

    Entries reference tasks by name only. When several mapped tasks share a
    name, the first in store order is used.
    """
    refs: dict[str, ActivityRef] = {}
    for task in tasks:
        if not task.is_mapped or task.name in refs:
            continue
        try:
            refs[task.name] = ActivityRef(
                project_id=int(task.kimai_project_id),
                activity_id=int(task.kimai_activity_id),
            )
        except (TypeError, ValueError):
            continue
    return refs


def duration_minutes(hours: float) -> int:
    """Convert fractional hours to whole minutes, rounding halves up."""
    return math.floor(hours * 60 + 0.5)


def parse_created_at(value: str | None) -> datetime | None:
    """Parse a stored creation timestamp, returning None when unusable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def derive_interval(
    entry_date: date,
    created_at: datetime | None,
    hours: float,
    day_ends: Mapping[date, datetime],
    day_start: time = DEFAULT_DAY_START,
) -> tuple[datetime, datetime]:
    """Pick begin and end timestamps for an entry.

    The begin time is the creation timestamp when it falls on the entry's
    own day, else the end of the previous entry on that day in this run,
    else day_start local time on the entry's day. The end time is begin plus
    the duration rounded to whole minutes.

    The creation timestamp is compared by its calendar date in its own UTC
    offset. Harvest sends UTC, so an entry created shortly before or after
    local midnight may not count as same-day for users outside UTC.

    Args:
        entry_date: Day the time was spent.
        created_at: Creation timestamp from Harvest, if any.
        hours: Duration in fractional hours.
        day_ends: End times already derived in this run, by day.
        day_start: Begin time for the first entry of a day.

    Returns:
        Tuple of (begin, end).
    """
    if created_at is not None and created_at.date() == entry_date:
        begin = created_at
    elif entry_date in day_ends:
        begin = day_ends[entry_date]
    else:
        begin = datetime.combine(entry_date, day_start)

    end = begin + timedelta(minutes=duration_minutes(hours))
    return begin, end


def plan_timesheets(
    entries: Sequence[MappedEntry],
    day_start: time = DEFAULT_DAY_START,
) -> list[PlannedTimesheet]:
    """Derive timesheets for entries in ascending date order.

    Entries on the same day are chained: each one starts where the previous
    one ended unless it has a same-day creation timestamp.

    Args:
        entries: Mapped pending entries in any order.
        day_start: Begin time for the first entry of a day.

    Returns:
        Planned timesheets sorted by entry date, ties in input order.
    """
    planned: list[PlannedTimesheet] = []
    day_ends: dict[date, datetime] = {}

    for mapped in sorted(entries, key=lambda m: m.entry.date):
        entry = mapped.entry
        begin, end = derive_interval(
            entry.date,
            parse_created_at(entry.created_at),
            entry.hours,
            day_ends,
            day_start,
        )
        day_ends = {**day_ends, entry.date: end}
        planned.append(
            PlannedTimesheet(
                entry=entry,
                timesheet=KimaiTimesheet(
                    begin=begin,
                    end=end,
                    description=entry.notes or "",
                    project=mapped.ref.project_id,
                    activity=mapped.ref.activity_id,
                ),
            )
        )
    return planned


class TransferEngine:
    """Pushes pending local entries to Kimai one at a time."""

    def __init__(
        self,
        store: LocalStore,
        kimai_client: KimaiClient,
        day_start: time = DEFAULT_DAY_START,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize transfer engine.

        Args:
            store: Local store with pending entries and task mappings.
            kimai_client: Kimai API client.
            day_start: Begin time for the first entry of a day.
            logger: Logger to report progress to.
        """
        self.store = store
        self.kimai = kimai_client
        self.day_start = day_start
        self.logger = logger or logging.getLogger(__name__)

    async def load_mapped_entries(self, result: TransferResult) -> list[MappedEntry]:
        """Load pending entries and attach resolved Kimai identifiers.

        Entries whose task has no Kimai project or activity are skipped.

        Raises:
            StorageError: If the store cannot be read.
        """
        entries = await self.store.get_pending_entries()
        self.logger.info(f"Found {len(entries)} pending entries to import")

        refs = resolve_mappings(await self.store.list_tasks())

        mapped: list[MappedEntry] = []
        for entry in entries:
            ref = refs.get(entry.task)
            if ref is None:
                self.logger.warning(
                    f"Skipping entry {entry.harvest_id} - Missing project or activity mapping for task '{entry.task}'"
                )
                result.add_skip()
                continue
            mapped.append(MappedEntry(entry=entry, ref=ref))
        return mapped

    async def run(self, dry_run: bool = False) -> TransferResult:
        """Import all pending entries into Kimai.

        Each entry is pushed and marked imported before the next one starts.
        A failure on one entry is logged and counted, and the run continues.

        Args:
            dry_run: Derive timesheets without pushing or marking anything.

        Returns:
            Transfer results; planned holds every derived timesheet.

        Raises:
            StorageError: If pending entries or task mappings cannot be loaded.
        """
        result = TransferResult()
        self.logger.info("Starting import of all pending time entries")

        mapped = await self.load_mapped_entries(result)
        if not mapped:
            self.logger.info("No pending entries to import")
            return result

        result.planned = plan_timesheets(mapped, self.day_start)

        for planned in result.planned:
            entry = planned.entry
            timesheet = planned.timesheet

            if dry_run:
                self.logger.info(
                    f"[DRY RUN] Would import entry {entry.harvest_id}: "
                    f"{timesheet.begin.isoformat()} - {timesheet.end.isoformat()}"
                )
                continue

            try:
                created = await self.kimai.push_entry(timesheet)
            except NetworkError as e:
                self.logger.error(f"Failed to import entry {entry.harvest_id}: {e}")
                result.add_failure(f"{entry.harvest_id}: {e}")
                continue

            try:
                await self.store.mark_imported(entry.harvest_id, str(created.id))
            except StorageError as e:
                self.logger.error(
                    f"Entry {entry.harvest_id} was created in Kimai as {created.id} "
                    f"but could not be marked imported: {e}"
                )
                result.add_failure(f"{entry.harvest_id}: {e}")
                continue

            result.add_success()
            self.logger.debug(f"Successfully imported entry {entry.harvest_id} as Kimai ID {created.id}")

        self.logger.info(f"Import complete: {result}")
        return result
