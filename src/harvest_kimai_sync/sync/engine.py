"""Sync engine tying the Harvest extraction and Kimai import phases together."""

import logging
from datetime import date, time

from harvest_kimai_sync.db import LocalStore
from harvest_kimai_sync.harvest import HarvestClient
from harvest_kimai_sync.kimai import KimaiClient
from harvest_kimai_sync.sync.matcher import TaskMatcher
from harvest_kimai_sync.sync.reconciler import EntryReconciler, ReconcileResult
from harvest_kimai_sync.sync.transfer import DEFAULT_DAY_START, TransferEngine, TransferResult
from harvest_kimai_sync.utils import StorageManager


class TaskExtractionResult:
    """Results from a task extraction run."""

    def __init__(self) -> None:
        self.harvest_tasks = 0
        self.kimai_activities = 0
        self.matched = 0
        self.unmatched = 0

    def __str__(self) -> str:
        return (
            f"Harvest tasks: {self.harvest_tasks}, "
            f"Kimai activities: {self.kimai_activities}, "
            f"Matched: {self.matched}, "
            f"Unmatched: {self.unmatched}"
        )


class SyncEngine:
    """Runs the extraction, task matching, and import phases."""

    def __init__(
        self,
        store: LocalStore,
        harvest_client: HarvestClient | None = None,
        kimai_client: KimaiClient | None = None,
        storage: StorageManager | None = None,
        day_start: time = DEFAULT_DAY_START,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize sync engine.

        Args:
            store: Local store.
            harvest_client: Harvest API client, needed for extraction.
            kimai_client: Kimai API client, needed for task matching and import.
            storage: Where to record run state. Nothing is recorded when omitted.
            day_start: Begin time for the first entry of a day.
            logger: Logger passed on to every component.
        """
        self.store = store
        self.harvest = harvest_client
        self.kimai = kimai_client
        self.storage = storage
        self.day_start = day_start
        self.logger = logger or logging.getLogger(__name__)

        self.reconciler = EntryReconciler(store, logger=self.logger)
        self.matcher = TaskMatcher(store, logger=self.logger)

    async def extract_entries(self, from_date: date, to_date: date) -> ReconcileResult:
        """Fetch Harvest entries for a date range and store them.

        Args:
            from_date: First day (inclusive).
            to_date: Last day (inclusive).

        Returns:
            Reconciliation counts.

        Raises:
            NetworkError: If fetching entries fails.
            StorageError: If existing entries cannot be loaded.
        """
        if self.harvest is None:
            raise ValueError("Harvest client is required for extraction")

        self.logger.info(f"Starting extraction of time entries from {from_date} to {to_date}")
        entries = await self.harvest.fetch_entries(from_date, to_date)
        result = await self.reconciler.reconcile(entries)

        pending = await self.store.get_pending_entries(from_date, to_date)
        self.logger.info(
            f"Verification: {len(pending)} pending time entries found in database for the given date range"
        )
        self.logger.info(
            f"Sync summary: {result.inserted} new entries, {result.updated} updated entries, "
            f"{result.unchanged} unchanged entries, {result.failed} failed entries"
        )

        if self.storage is not None:
            self.storage.record_extraction(from_date, to_date, result.as_dict())
        return result

    async def extract_tasks(self) -> TaskExtractionResult:
        """Refresh both task catalogs and match tasks to activities.

        Returns:
            Catalog sizes and matching counts.

        Raises:
            NetworkError: If fetching tasks or activities fails.
            StorageError: If truncating a catalog or matching fails.
        """
        if self.harvest is None or self.kimai is None:
            raise ValueError("Harvest and Kimai clients are required for task extraction")

        result = TaskExtractionResult()
        self.logger.info("Starting task extraction process")

        tasks = await self.harvest.fetch_tasks()
        if not tasks:
            self.logger.warning("No tasks returned from Harvest API")
            return result
        result.harvest_tasks = len(tasks)

        await self.store.truncate_tasks()
        await self.matcher.store_tasks(tasks)

        activities = await self.kimai.fetch_activities()
        if not activities:
            self.logger.warning("No activities returned from Kimai API")
            result.unmatched = result.harvest_tasks
            return result
        result.kimai_activities = len(activities)

        await self.store.truncate_activities()
        await self.matcher.store_activities(activities)

        match_result = await self.matcher.match()
        result.matched = match_result.matched
        result.unmatched = match_result.unmatched

        stored_tasks = await self.store.list_tasks()
        stored_activities = await self.store.list_activities()
        self.logger.info(
            f"Verification: {len(stored_tasks)} harvest tasks and "
            f"{len(stored_activities)} kimai activities found in database"
        )
        self.logger.info(f"Task extraction complete: {result}")
        return result

    async def import_entries(self, dry_run: bool = False) -> TransferResult:
        """Push all pending entries to Kimai.

        Args:
            dry_run: Derive timesheets without pushing or marking anything.

        Returns:
            Transfer results.

        Raises:
            StorageError: If pending entries cannot be loaded.
        """
        if self.kimai is None:
            raise ValueError("Kimai client is required for import")

        engine = TransferEngine(self.store, self.kimai, day_start=self.day_start, logger=self.logger)
        result = await engine.run(dry_run=dry_run)

        if self.storage is not None and not dry_run:
            self.storage.record_import(result.imported)
        return result
