"""Pydantic models for Kimai API requests and responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def activity_display_name(name: str, parent_title: str | None) -> str:
    """Build the name used to match an activity against Harvest tasks.

    Args:
        name: Activity name.
        parent_title: Optional parent label (usually the project name).

    Returns:
        "<parent>: <name>" when a parent is present, else the bare name.
    """
    if parent_title:
        return f"{parent_title}: {name}"
    return name


class KimaiActivity(BaseModel):
    """Kimai activity model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str
    parent_title: str | None = Field(default=None, alias="parentTitle")
    project: int | None = None

    @property
    def display_name(self) -> str:
        """Parent-prefixed name."""
        return activity_display_name(self.name, self.parent_title)


class KimaiTimesheet(BaseModel):
    """Kimai timesheet entry model."""

    id: int | None = None
    begin: datetime
    end: datetime
    description: str = ""
    project: int
    activity: int

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to API-compatible dictionary.

        Returns:
            Dictionary for API submission.
        """
        return {
            "begin": self.begin.isoformat(),
            "end": self.end.isoformat(),
            "description": self.description,
            "project": self.project,
            "activity": self.activity,
        }
