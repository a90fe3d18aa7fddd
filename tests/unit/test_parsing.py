"""
Unit Tests - Cell Parsing
"""
from datetime import date

import pytest

from adgate.ingestion.errors import RowMappingError
from adgate.ingestion.parsing import (
    display_sku,
    match_key,
    month_to_range,
    parse_daily_date,
    parse_flexible_date,
    parse_period,
    to_bool,
    to_float,
    to_int,
    week_to_range,
)
from adgate.ingestion.rows import DEFAULT_ALIASES, RawRow


class TestDailyDate:
    """Tests for the D[D]MonYY format"""

    @pytest.mark.parametrize("value,expected", [
        ("1Jan'26", date(2026, 1, 1)),
        ("31Dec25", date(2025, 12, 31)),
        ("12feb'25", date(2025, 2, 12)),
    ])
    def test_valid(self, value, expected):
        assert parse_daily_date(value) == expected

    @pytest.mark.parametrize("value", ["Jan 2026", "2026-01-01", "1Foo'26", "31Feb26", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_daily_date(value)


class TestPeriodRanges:
    """Tests for week-of-month and whole-month periods"""

    def test_week_two_of_february(self):
        assert week_to_range("W2", "Feb", "2024") == (date(2024, 2, 8), date(2024, 2, 14))

    def test_week_five_capped_at_month_end(self):
        # 2024 is a leap year: W5 is just the 29th
        assert week_to_range("5", "February", "2024") == (date(2024, 2, 29), date(2024, 2, 29))

    def test_week_five_of_short_february_is_invalid(self):
        with pytest.raises(ValueError):
            week_to_range("W5", "Feb", "2023")

    def test_week_out_of_range(self):
        with pytest.raises(ValueError):
            week_to_range("W6", "Jan", "2024")

    def test_numeric_month_and_two_digit_year(self):
        assert week_to_range("W1", "3", "24") == (date(2024, 3, 1), date(2024, 3, 7))

    def test_month_range(self):
        assert month_to_range("April", "2025") == (date(2025, 4, 1), date(2025, 4, 30))

    def test_period_precedence_prefers_daily_date(self):
        row = RawRow({"Date": "3Mar'25", "Week": "W1", "Month": "Jan", "Year": "2025"})
        assert parse_period(row, DEFAULT_ALIASES) == (date(2025, 3, 3), date(2025, 3, 3))

    def test_period_uses_week_before_month(self):
        row = RawRow({"Week": "W3", "Month": "Jan", "Year": "2025"})
        assert parse_period(row, DEFAULT_ALIASES) == (date(2025, 1, 15), date(2025, 1, 21))

    def test_period_falls_back_to_month(self):
        row = RawRow({"Month": "Jan", "Year": "2025"})
        assert parse_period(row, DEFAULT_ALIASES) == (date(2025, 1, 1), date(2025, 1, 31))

    def test_unparseable_date_is_row_error(self):
        row = RawRow({"Date": "Jan 2026"})
        with pytest.raises(RowMappingError):
            parse_period(row, DEFAULT_ALIASES)

    def test_missing_date_is_row_error(self):
        with pytest.raises(RowMappingError):
            parse_period(RawRow({"Units Sold": "3"}), DEFAULT_ALIASES)

    def test_date_report_alias(self):
        row = RawRow({"Date Report": "9Jun'25"})
        assert parse_period(row, DEFAULT_ALIASES)[0] == date(2025, 6, 9)


class TestFlexibleDate:
    def test_iso_and_daily(self):
        assert parse_flexible_date("2025-07-01") == date(2025, 7, 1)
        assert parse_flexible_date("2025-07-01 00:00:00") == date(2025, 7, 1)
        assert parse_flexible_date("1Jul'25") == date(2025, 7, 1)

    def test_blank_is_none(self):
        assert parse_flexible_date("  ") is None
        assert parse_flexible_date(None) is None


class TestNumbersAndFlags:
    """Lenient numeric coercion and the Active flag policy"""

    @pytest.mark.parametrize("value,expected", [
        ("12", 12), ("", 0), (None, 0), ("n/a", 0), ("7.9", 7), (" 3 ", 3),
    ])
    def test_to_int(self, value, expected):
        assert to_int(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("12.50", 12.5), ("", 0.0), ("abc", 0.0), ("nan", 0.0),
    ])
    def test_to_float(self, value, expected):
        assert to_float(value) == expected

    def test_active_absent_is_true(self):
        assert to_bool(RawRow({"SKU": "A"}), ("Active",)) is True

    def test_active_blank_is_true(self):
        assert to_bool(RawRow({"Active": " "}), ("Active",)) is True

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "Y"])
    def test_active_truthy(self, value):
        assert to_bool(RawRow({"Active": value}), ("Active",)) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "inactive"])
    def test_active_other_values_are_false(self, value):
        assert to_bool(RawRow({"Active": value}), ("Active",)) is False


class TestSkuNormalization:
    def test_display_sku(self):
        assert display_sku("  ab   12-x ") == "AB 12-X"

    def test_match_key(self):
        assert match_key(" ab 12-x/") == "AB12X"

    def test_match_key_makes_variants_equal(self):
        assert match_key("sku-001") == match_key("SKU 001") == match_key("SKU001")
