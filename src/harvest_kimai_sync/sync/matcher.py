"""Match Harvest tasks to Kimai activities by name."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from harvest_kimai_sync.db import KimaiActivityRecord, LocalStore, TaskRecord
from harvest_kimai_sync.exceptions import StorageError
from harvest_kimai_sync.harvest import HarvestTask
from harvest_kimai_sync.kimai import KimaiActivity


def normalize_name(name: str | None) -> str:
    """Trim surrounding whitespace and case-fold a task or activity name."""
    return (name or "").strip().casefold()


@dataclass(frozen=True)
class TaskMatch:
    """A Kimai activity chosen for a stored Harvest task."""

    task_id: int
    task_name: str
    kimai_project_id: str | None
    kimai_activity_id: str
    kimai_activity_name: str


class MatchResult:
    """Counts from one matching run."""

    def __init__(self, matched: int = 0, unmatched: int = 0) -> None:
        self.matched = matched
        self.unmatched = unmatched

    def __str__(self) -> str:
        return f"Matched: {self.matched}, Unmatched: {self.unmatched}"


class StoreResult:
    """Counts from storing one catalog."""

    def __init__(self) -> None:
        self.stored = 0
        self.failed = 0

    def __str__(self) -> str:
        return f"Stored: {self.stored}, Failed: {self.failed}"


def find_matches(
    tasks: Sequence[TaskRecord],
    activities: Sequence[KimaiActivityRecord],
    logger: logging.Logger | None = None,
) -> list[TaskMatch]:
    """Pick a task for every activity whose display name equals a task name.

    Names are compared after trimming and case-folding. When several tasks
    share a normalized name the first one in store order wins and the others
    stay unmatched; this ambiguity is logged, never resolved silently.

    Args:
        tasks: Stored Harvest tasks in store order.
        activities: Stored Kimai activities in store order.
        logger: Logger for ambiguity warnings.

    Returns:
        One match per activity that found a task, in activity order.
    """
    logger = logger or logging.getLogger(__name__)

    by_name: dict[str, list[TaskRecord]] = {}
    for task in tasks:
        by_name.setdefault(normalize_name(task.name), []).append(task)

    matches: list[TaskMatch] = []
    for activity in activities:
        candidates = by_name.get(normalize_name(activity.task_name))
        if not candidates:
            continue

        task = candidates[0]
        if len(candidates) > 1:
            others = ", ".join(c.harvest_id for c in candidates[1:])
            logger.warning(
                f"Kimai activity '{activity.task_name}' matches {len(candidates)} Harvest tasks; "
                f"using task {task.harvest_id}, leaving {others} unmatched"
            )

        matches.append(
            TaskMatch(
                task_id=task.id,
                task_name=task.name,
                kimai_project_id=activity.kimai_project_id,
                kimai_activity_id=activity.kimai_activity_id,
                kimai_activity_name=activity.task_name,
            )
        )
    return matches


class TaskMatcher:
    """Stores both catalogs and links Harvest tasks to Kimai activities."""

    def __init__(self, store: LocalStore, logger: logging.Logger | None = None) -> None:
        """Initialize task matcher.

        Args:
            store: Local store holding both catalogs.
            logger: Logger to report progress to.
        """
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    async def store_tasks(self, tasks: Sequence[HarvestTask]) -> StoreResult:
        """Upsert Harvest tasks, clearing any previous Kimai mapping.

        Args:
            tasks: Tasks as fetched from Harvest.

        Returns:
            Counts of stored and failed tasks.
        """
        result = StoreResult()
        self.logger.info(f"Starting to store {len(tasks)} tasks in database")

        for task in tasks:
            values = {
                "harvest_id": str(task.id),
                "name": task.name,
                "is_active": task.is_active,
                "kimai_project_id": None,
                "kimai_activity_id": None,
                "kimai_activity_name": None,
                "created_at": task.created_at,
                "updated_at": task.updated_at,
            }
            try:
                self.logger.debug(f"Inserting task: {task.id} - {task.name}")
                await self.store.upsert_task(values)
                result.stored += 1
            except StorageError as e:
                self.logger.error(f"Error inserting task {task.id}: {e}")
                result.failed += 1

        self.logger.info(f"Task storage complete: {result}")
        return result

    async def store_activities(self, activities: Sequence[KimaiActivity]) -> StoreResult:
        """Upsert Kimai activities with their parent-prefixed display names.

        Args:
            activities: Activities as fetched from Kimai.

        Returns:
            Counts of stored and failed activities.
        """
        result = StoreResult()
        self.logger.info(f"Starting to store {len(activities)} activities in database")
        now = datetime.now(timezone.utc).isoformat()

        for activity in activities:
            values = {
                "kimai_activity_id": str(activity.id),
                "kimai_project_id": str(activity.project) if activity.project is not None else None,
                "task_name": activity.display_name,
                "parent_title": activity.parent_title or "",
                "created_at": now,
            }
            try:
                self.logger.debug(f"Inserting Kimai activity: {activity.id} - {activity.display_name}")
                await self.store.upsert_activity(values)
                result.stored += 1
            except StorageError as e:
                self.logger.error(f"Error inserting activity {activity.id}: {e}")
                result.failed += 1

        self.logger.info(f"Activity storage complete: {result}")
        return result

    async def match(self) -> MatchResult:
        """Write matched Kimai activity details onto stored tasks.

        Returns:
            matched is the number of distinct tasks updated, unmatched the
            remaining task count.

        Raises:
            StorageError: If loading the catalogs or updating a task fails.
        """
        self.logger.info("Starting to match Harvest tasks with Kimai activities")

        tasks = await self.store.list_tasks()
        self.logger.info(f"Found {len(tasks)} Harvest tasks for matching")
        if not tasks:
            self.logger.warning("No Harvest tasks found, skipping matching")
            return MatchResult()

        activities = await self.store.list_activities()
        self.logger.info(f"Found {len(activities)} Kimai activities for matching")
        if not activities:
            self.logger.warning("No Kimai activities found, skipping matching")
            return MatchResult(unmatched=len(tasks))

        updated: set[int] = set()
        for match in find_matches(tasks, activities, self.logger):
            if match.task_id in updated:
                self.logger.warning(
                    f"Harvest task '{match.task_name}' matched again, "
                    f"now mapped to Kimai activity {match.kimai_activity_id}"
                )
            await self.store.set_task_mapping(
                match.task_id,
                match.kimai_project_id,
                match.kimai_activity_id,
                match.kimai_activity_name,
            )
            updated.add(match.task_id)
            self.logger.debug(
                f"Matched Harvest task '{match.task_name}' with Kimai activity '{match.kimai_activity_name}'"
            )

        result = MatchResult(matched=len(updated), unmatched=len(tasks) - len(updated))
        self.logger.info(f"Task matching complete: {result}")
        return result
