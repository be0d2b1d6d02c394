"""Tests for date range helpers."""

from datetime import date

import pytest

from harvest_kimai_sync.cli import resolve_date_range
from harvest_kimai_sync.exceptions import ValidationError
from harvest_kimai_sync.utils import current_month, parse_date_arg, yesterday


class TestParseDateArg:
    """Test parse_date_arg."""

    def test_valid_date(self) -> None:
        assert parse_date_arg("2025-03-10") == date(2025, 3, 10)

    @pytest.mark.parametrize("value", ["2025-3-10", "10.03.2025", "2025-03-10T00:00", ""])
    def test_wrong_format(self, value: str) -> None:
        with pytest.raises(ValidationError, match="YYYY-MM-DD"):
            parse_date_arg(value)

    def test_not_a_calendar_date(self) -> None:
        with pytest.raises(ValidationError, match="real calendar date"):
            parse_date_arg("2025-02-30", "From date")


class TestShortcuts:
    """Test current_month and yesterday."""

    def test_current_month(self) -> None:
        assert current_month(date(2024, 2, 15)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_current_month_december(self) -> None:
        assert current_month(date(2025, 12, 31)) == (date(2025, 12, 1), date(2025, 12, 31))

    def test_yesterday_crosses_month(self) -> None:
        assert yesterday(date(2025, 3, 1)) == (date(2025, 2, 28), date(2025, 2, 28))


class TestResolveDateRange:
    """Test the extract command's range resolution."""

    def test_from_only_uses_same_day(self) -> None:
        assert resolve_date_range("2025-03-10", None, False, False) == (date(2025, 3, 10), date(2025, 3, 10))

    def test_from_and_to(self) -> None:
        assert resolve_date_range("2025-03-01", "2025-03-15", False, False) == (date(2025, 3, 1), date(2025, 3, 15))

    def test_current_month_flag(self) -> None:
        today = date(2025, 4, 10)
        assert resolve_date_range(None, None, True, False, today=today) == (date(2025, 4, 1), date(2025, 4, 30))

    def test_yesterday_flag(self) -> None:
        today = date(2025, 4, 10)
        assert resolve_date_range(None, None, False, True, today=today) == (date(2025, 4, 9), date(2025, 4, 9))

    def test_nothing_given(self) -> None:
        with pytest.raises(ValidationError, match="must specify a date range"):
            resolve_date_range(None, None, False, False)

    def test_mutually_exclusive(self) -> None:
        with pytest.raises(ValidationError, match="mutually exclusive"):
            resolve_date_range("2025-03-10", None, True, False)

    def test_to_without_from(self) -> None:
        with pytest.raises(ValidationError, match="requires --from"):
            resolve_date_range(None, "2025-03-10", False, False)

    def test_reversed_range(self) -> None:
        with pytest.raises(ValidationError, match="before"):
            resolve_date_range("2025-03-10", "2025-03-01", False, False)
