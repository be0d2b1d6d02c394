"""Kimai API integration."""

from harvest_kimai_sync.kimai.client import KimaiClient
from harvest_kimai_sync.kimai.models import KimaiActivity, KimaiTimesheet, activity_display_name

__all__ = [
    "KimaiClient",
    "KimaiActivity",
    "KimaiTimesheet",
    "activity_display_name",
]
