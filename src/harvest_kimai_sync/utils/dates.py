"""Date range helpers for the extract command."""

import calendar
import re
from datetime import date, datetime, timedelta

from harvest_kimai_sync.exceptions import ValidationError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_arg(value: str, option: str = "date") -> date:
    """Parse a YYYY-MM-DD command-line date.

    Args:
        value: Raw argument.
        option: Option name used in the error message.

    Returns:
        Parsed date.

    Raises:
        ValidationError: If the format is wrong or the day does not exist.
    """
    if not DATE_PATTERN.match(value):
        raise ValidationError(f"{option} must be in YYYY-MM-DD format, got '{value}'")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise ValidationError(f"{option} is not a real calendar date: '{value}'") from e


def current_month(today: date | None = None) -> tuple[date, date]:
    """First and last day of the current month."""
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def yesterday(today: date | None = None) -> tuple[date, date]:
    """Yesterday as a one-day range."""
    day = (today or date.today()) - timedelta(days=1)
    return day, day
