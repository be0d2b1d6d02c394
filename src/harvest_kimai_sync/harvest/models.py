"""Pydantic models for Harvest API responses."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class HarvestRef(BaseModel):
    """Nested client/project/task reference on a time entry."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str | None = None


class HarvestTimeEntry(BaseModel):
    """Harvest time entry model."""

    model_config = ConfigDict(extra="ignore")

    id: int
    spent_date: date
    hours: float = 0.0
    notes: str | None = None
    started_time: str | None = None
    ended_time: str | None = None
    created_at: datetime | None = None
    client: HarvestRef | None = None
    project: HarvestRef | None = None
    task: HarvestRef | None = None

    @property
    def source_id(self) -> str:
        """Entry ID as stored locally."""
        return str(self.id)

    @property
    def client_name(self) -> str:
        return (self.client.name or "") if self.client else ""

    @property
    def project_name(self) -> str:
        return (self.project.name or "") if self.project else ""

    @property
    def task_name(self) -> str:
        return (self.task.name or "") if self.task else ""


class HarvestTask(BaseModel):
    """Harvest task model."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None
