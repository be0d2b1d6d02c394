"""Utility modules for harvest-kimai-sync."""

from harvest_kimai_sync.utils.dates import current_month, parse_date_arg, yesterday
from harvest_kimai_sync.utils.logging import get_logger, setup_logging
from harvest_kimai_sync.utils.storage import StorageManager

__all__ = [
    "current_month",
    "get_logger",
    "parse_date_arg",
    "setup_logging",
    "StorageManager",
    "yesterday",
]
