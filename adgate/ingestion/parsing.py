"""
Value parsing for spreadsheet cells.

Dates come in three shapes (daily `1Jan'26`, week-of-month, whole month),
numbers are lenient (anything unparseable is 0) and SKUs are compared in
normalized form only.
"""

import calendar
import re
from datetime import date, datetime
from typing import Optional, Tuple

from adgate.ingestion.errors import RowMappingError
from adgate.ingestion.rows import ColumnAliases, RawRow

Period = Tuple[date, date]

_DAILY_RE = re.compile(r"^(\d{1,2})([A-Za-z]{3})'?(\d{2})$")
_WEEK_RE = re.compile(r"^[Ww]?(\d+)$")
_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")

_MONTHS = {
    name.lower(): i
    for i in range(1, 13)
    for name in (calendar.month_name[i], calendar.month_abbr[i])
}
_MONTHS["sept"] = 9

_TRUTHY = {"true", "1", "yes", "y"}


# =============================================================================
# SKU NORMALIZATION
# =============================================================================

def display_sku(value: Optional[str]) -> str:
    """Trim, collapse internal whitespace, upper-case."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip().upper()


def match_key(value: Optional[str]) -> str:
    """Upper-case, alphanumeric only. Used for every SKU comparison."""
    if value is None:
        return ""
    return _NON_ALNUM_RE.sub("", str(value).upper())


def fold_name(value: Optional[str]) -> str:
    """Case-folded, whitespace-collapsed name for platform/seller lookups."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip().casefold()


# =============================================================================
# DATES
# =============================================================================

def parse_daily_date(value: str) -> date:
    """
    Parse `D[D]MonYY` with an optional apostrophe before the year.

    >>> parse_daily_date("1Jan'26")
    datetime.date(2026, 1, 1)
    """
    match = _DAILY_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid date format: {value!r}")
    day, mon, yy = match.groups()
    month = _MONTHS.get(mon.lower())
    if month is None:
        raise ValueError(f"Invalid month in date: {value!r}")
    return date(2000 + int(yy), month, int(day))


def parse_month(value: str) -> int:
    """Month as full name, abbreviation or number 1-12."""
    text = value.strip()
    if text.isdigit():
        month = int(text)
        if 1 <= month <= 12:
            return month
        raise ValueError(f"Invalid month: {value!r}")
    month = _MONTHS.get(text.lower())
    if month is None:
        raise ValueError(f"Invalid month: {value!r}")
    return month


def parse_year(value: str) -> int:
    text = value.strip()
    if not text.isdigit():
        raise ValueError(f"Invalid year: {value!r}")
    year = int(text)
    return year + 2000 if year < 100 else year


def week_to_range(week: str, month: str, year: str) -> Period:
    """
    Week-of-month to a date range.

    Week n starts on day (n-1)*7+1 and ends six days later, capped at the
    month's last day. A start past the month's length is invalid.
    """
    match = _WEEK_RE.match(week.strip())
    if not match:
        raise ValueError(f"Invalid week: {week!r}")
    n = int(match.group(1))
    if not 1 <= n <= 5:
        raise ValueError(f"Week out of range: {week!r}")

    y, m = parse_year(year), parse_month(month)
    days_in_month = calendar.monthrange(y, m)[1]
    start_day = (n - 1) * 7 + 1
    if start_day > days_in_month:
        raise ValueError(
            f"Week {n} starts on day {start_day} but {calendar.month_name[m]} {y} has {days_in_month} days"
        )
    end_day = min(start_day + 6, days_in_month)
    return date(y, m, start_day), date(y, m, end_day)


def month_to_range(month: str, year: str) -> Period:
    y, m = parse_year(year), parse_month(month)
    return date(y, m, 1), date(y, m, calendar.monthrange(y, m)[1])


def parse_period(row: RawRow, aliases: ColumnAliases) -> Period:
    """
    Reporting period of a sales or ad row.

    Precedence: daily Date, then Week+Month+Year, then Month+Year.
    """
    daily = row.first(aliases.date)
    week = row.first(aliases.week)
    month = row.first(aliases.month)
    year = row.first(aliases.year)

    try:
        if daily:
            d = parse_daily_date(daily)
            return d, d
        if week and month and year:
            return week_to_range(week, month, year)
        if month and year:
            return month_to_range(month, year)
    except ValueError as e:
        raise RowMappingError(str(e), row) from None

    raise RowMappingError("Missing date: expected Date, Week+Month+Year or Month+Year", row)


def parse_flexible_date(value: Optional[str]) -> Optional[date]:
    """ISO `YYYY-MM-DD` or daily `D[D]MonYY`. Blank is None."""
    if value is None or not value.strip():
        return None
    text = value.strip()
    # Excel date cells arrive as "YYYY-MM-DD 00:00:00"
    for fmt in ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return parse_daily_date(text)


# =============================================================================
# NUMBERS AND FLAGS
# =============================================================================

def to_float(value: Optional[str]) -> float:
    """Blank, missing or non-numeric is 0.0."""
    if value is None:
        return 0.0
    try:
        number = float(value.strip())
    except ValueError:
        return 0.0
    # nan/inf never reach the store
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def to_int(value: Optional[str]) -> int:
    """Blank, missing or non-numeric is 0. Decimals truncate."""
    return int(to_float(value))


def to_bool(row: RawRow, aliases: Tuple[str, ...]) -> bool:
    """Absent or blank is True; otherwise only true/1/yes/y are True."""
    value = row.first(aliases)
    if value is None:
        return True
    return value.lower() in _TRUTHY
