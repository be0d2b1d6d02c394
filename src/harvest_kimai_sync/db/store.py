"""Async SQLAlchemy-backed local store for entries, tasks, and Kimai activities."""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from harvest_kimai_sync.db.models import Base, KimaiActivityRecord, TaskRecord, TimeEntryRecord
from harvest_kimai_sync.exceptions import StorageError


class LocalStore:
    """Table store reached through simple CRUD operations.

    One store instance serves one invocation. Concurrent invocations against
    the same database are not supported.
    """

    def __init__(self, database_url: str, logger: logging.Logger | None = None, echo: bool = False) -> None:
        """Initialize the store.

        Args:
            database_url: SQLAlchemy async URL, e.g. sqlite+aiosqlite:///path/to/db.
            logger: Logger to report progress to.
            echo: Log every SQL statement.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.database_url = database_url
        self.engine = create_async_engine(database_url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init(self) -> None:
        """Create tables that do not exist yet.

        Raises:
            StorageError: If the schema cannot be created.
        """
        url = make_url(self.database_url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Initializing database failed: {e}") from e
        self.logger.debug(f"Local store ready at {url.render_as_string(hide_password=True)}")

    async def close(self) -> None:
        """Release all database connections."""
        await self.engine.dispose()
        self.logger.debug("Database connection closed")

    async def __aenter__(self) -> "LocalStore":
        await self.init()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[AsyncSession]:
        """Run a unit of work, translating driver errors into StorageError."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            raise StorageError(f"{action} failed: {e}") from e

    # Time entries

    async def get_entries(self, harvest_ids: Iterable[str]) -> dict[str, TimeEntryRecord]:
        """Load stored entries by Harvest ID.

        Args:
            harvest_ids: Harvest entry IDs to look up.

        Returns:
            Mapping of Harvest ID to stored row, for IDs that exist.
        """
        ids = list(harvest_ids)
        if not ids:
            return {}
        async with self._transaction("Fetching existing entries") as session:
            result = await session.scalars(
                select(TimeEntryRecord).where(TimeEntryRecord.harvest_id.in_(ids))
            )
            return {row.harvest_id: row for row in result}

    async def insert_entry(self, values: dict[str, Any]) -> None:
        """Insert a new entry row.

        Args:
            values: Column values; must include harvest_id.
        """
        async with self._transaction(f"Inserting entry {values.get('harvest_id')}") as session:
            session.add(TimeEntryRecord(**values))

    async def update_entry(self, harvest_id: str, values: dict[str, Any]) -> None:
        """Overwrite columns of an existing entry.

        Args:
            harvest_id: Harvest entry ID.
            values: Column values to write.
        """
        async with self._transaction(f"Updating entry {harvest_id}") as session:
            result = await session.execute(
                update(TimeEntryRecord)
                .where(TimeEntryRecord.harvest_id == harvest_id)
                .values(**values)
            )
            if result.rowcount == 0:
                raise StorageError(f"Updating entry {harvest_id} failed: no such entry")

    async def get_pending_entries(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[TimeEntryRecord]:
        """Load entries not yet imported into Kimai.

        Args:
            from_date: Optional first day (inclusive).
            to_date: Optional last day (inclusive).

        Returns:
            Pending entries in insertion order.
        """
        query = select(TimeEntryRecord).where(TimeEntryRecord.imported.is_(False))
        if from_date is not None:
            query = query.where(TimeEntryRecord.date >= from_date)
        if to_date is not None:
            query = query.where(TimeEntryRecord.date <= to_date)

        async with self._transaction("Fetching pending entries") as session:
            result = await session.scalars(query.order_by(TimeEntryRecord.id))
            return list(result)

    async def mark_imported(self, harvest_id: str, kimai_id: str) -> None:
        """Flag an entry as imported and remember its Kimai ID.

        Args:
            harvest_id: Harvest entry ID.
            kimai_id: ID of the created Kimai timesheet.
        """
        async with self._transaction(f"Marking entry {harvest_id} imported") as session:
            result = await session.execute(
                update(TimeEntryRecord)
                .where(TimeEntryRecord.harvest_id == harvest_id)
                .values(imported=True, kimai_id=kimai_id)
            )
            if result.rowcount == 0:
                raise StorageError(f"Marking entry {harvest_id} imported failed: no such entry")
        self.logger.debug(f"Marked entry {harvest_id} as imported to Kimai with ID {kimai_id}")

    # Harvest tasks

    async def truncate_tasks(self) -> None:
        """Delete every stored Harvest task."""
        self.logger.info("Truncating tasks table")
        async with self._transaction("Truncating tasks table") as session:
            await session.execute(delete(TaskRecord))

    async def upsert_task(self, values: dict[str, Any]) -> None:
        """Insert or overwrite a task keyed by Harvest ID.

        Args:
            values: Column values; must include harvest_id.
        """
        harvest_id = values["harvest_id"]
        async with self._transaction(f"Storing task {harvest_id}") as session:
            existing = await session.scalar(
                select(TaskRecord).where(TaskRecord.harvest_id == harvest_id)
            )
            if existing is None:
                session.add(TaskRecord(**values))
            else:
                for key, value in values.items():
                    setattr(existing, key, value)

    async def list_tasks(self) -> list[TaskRecord]:
        """Load all tasks in insertion order."""
        async with self._transaction("Fetching tasks") as session:
            result = await session.scalars(select(TaskRecord).order_by(TaskRecord.id))
            return list(result)

    async def set_task_mapping(
        self,
        task_id: int,
        kimai_project_id: str | None,
        kimai_activity_id: str,
        kimai_activity_name: str,
    ) -> None:
        """Write the matched Kimai activity onto a task row.

        Args:
            task_id: Local task row ID.
            kimai_project_id: Kimai project ID of the activity.
            kimai_activity_id: Kimai activity ID.
            kimai_activity_name: Display name of the activity.
        """
        async with self._transaction(f"Updating task {task_id}") as session:
            result = await session.execute(
                update(TaskRecord)
                .where(TaskRecord.id == task_id)
                .values(
                    kimai_project_id=kimai_project_id,
                    kimai_activity_id=kimai_activity_id,
                    kimai_activity_name=kimai_activity_name,
                )
            )
            if result.rowcount == 0:
                raise StorageError(f"Updating task {task_id} failed: no such task")

    # Kimai activities

    async def truncate_activities(self) -> None:
        """Delete every stored Kimai activity."""
        self.logger.info("Truncating tasks_kimai table")
        async with self._transaction("Truncating tasks_kimai table") as session:
            await session.execute(delete(KimaiActivityRecord))

    async def upsert_activity(self, values: dict[str, Any]) -> None:
        """Insert or overwrite an activity keyed by Kimai activity ID.

        Args:
            values: Column values; must include kimai_activity_id.
        """
        activity_id = values["kimai_activity_id"]
        async with self._transaction(f"Storing activity {activity_id}") as session:
            existing = await session.scalar(
                select(KimaiActivityRecord).where(KimaiActivityRecord.kimai_activity_id == activity_id)
            )
            if existing is None:
                session.add(KimaiActivityRecord(**values))
            else:
                for key, value in values.items():
                    setattr(existing, key, value)

    async def list_activities(self) -> list[KimaiActivityRecord]:
        """Load all activities in insertion order."""
        async with self._transaction("Fetching Kimai activities") as session:
            result = await session.scalars(
                select(KimaiActivityRecord).order_by(KimaiActivityRecord.id)
            )
            return list(result)
