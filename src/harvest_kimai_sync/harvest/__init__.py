"""Harvest API integration."""

from harvest_kimai_sync.harvest.client import HarvestClient
from harvest_kimai_sync.harvest.models import HarvestRef, HarvestTask, HarvestTimeEntry

__all__ = [
    "HarvestClient",
    "HarvestRef",
    "HarvestTask",
    "HarvestTimeEntry",
]
