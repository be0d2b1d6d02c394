"""SQLAlchemy table models for the local store."""

import datetime as dt

from sqlalchemy import Boolean, Date, Float, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Fields compared when deciding whether a re-fetched entry changed.
ENTRY_COMPARED_FIELDS = (
    "date",
    "client",
    "project",
    "task",
    "notes",
    "hours",
    "started_time",
    "ended_time",
)


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all table models."""
    pass


class TimeEntryRecord(Base):
    """A Harvest time entry and its Kimai import status."""

    __tablename__ = "time_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    harvest_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    kimai_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    client: Mapped[str] = mapped_column(Text, default="", nullable=False)
    project: Mapped[str] = mapped_column(Text, default="", nullable=False)
    task: Mapped[str] = mapped_column(Text, default="", nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    hours: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    started_time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ended_time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    imported: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    # ISO 8601 text, keeps the UTC offset Harvest sent
    created_at: Mapped[str] = mapped_column(String(40), nullable=False)

    def __repr__(self) -> str:
        return f"<TimeEntryRecord(harvest_id={self.harvest_id}, date={self.date}, imported={self.imported})>"


class TaskRecord(Base):
    """A Harvest task and the Kimai activity it was matched to."""

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    harvest_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    kimai_project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    kimai_activity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    kimai_activity_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    updated_at: Mapped[str | None] = mapped_column(String(40), nullable=True)

    @property
    def is_mapped(self) -> bool:
        return bool(self.kimai_project_id) and bool(self.kimai_activity_id)

    def __repr__(self) -> str:
        return f"<TaskRecord(harvest_id={self.harvest_id}, name={self.name!r})>"


class KimaiActivityRecord(Base):
    """Snapshot of a Kimai activity."""

    __tablename__ = "tasks_kimai"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kimai_activity_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    kimai_project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    task_name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[str] = mapped_column(String(40), nullable=False)

    def __repr__(self) -> str:
        return f"<KimaiActivityRecord(kimai_activity_id={self.kimai_activity_id}, task_name={self.task_name!r})>"
