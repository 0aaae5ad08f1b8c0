"""Date parsing and calendar-month helpers."""

from datetime import date, datetime, timedelta
from typing import Sequence

# Accepted patterns, tried in order; the first that parses wins.
#
# Slash- and dash-separated dates are day-first (DD/MM/YYYY). Bank exports
# handled here never use the US month-first layout.
DEFAULT_DATE_FORMATS = [
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
]

MONTH_LABEL_FORMAT = "%B %Y"


class InvalidDateError(ValueError):
    """Raised when a date token matches none of the accepted formats."""

    def __init__(self, raw_date: str, formats: Sequence[str]):
        self.raw_date = raw_date
        self.formats = list(formats)
        super().__init__(f"Cannot parse date '{raw_date}' (tried {', '.join(self.formats)})")


def parse_date(raw_date: str, formats: Sequence[str] | None = None) -> date:
    """Parse a raw date token into a date object.

    Args:
        raw_date: The raw date string.
        formats: strptime formats to try in order (default DEFAULT_DATE_FORMATS).

    Returns:
        Parsed date.

    Raises:
        InvalidDateError: If no format matches.
    """
    if formats is None:
        formats = DEFAULT_DATE_FORMATS

    date_str = (raw_date or "").strip().strip('"')
    if not date_str:
        raise InvalidDateError(raw_date or "", formats)

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    raise InvalidDateError(date_str, formats)


def month_start(d: date) -> date:
    """First day of the month containing d."""
    return d.replace(day=1)


def add_months(d: date, months: int) -> date:
    """Shift the first day of d's month by a number of months (may be negative)."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_end(d: date) -> date:
    """Last day of the month containing d."""
    return add_months(d, 1) - timedelta(days=1)


def month_label(year: int, month: int) -> str:
    """Human-readable month label, e.g. "March 2024"."""
    return date(year, month, 1).strftime(MONTH_LABEL_FORMAT)


def week_bounds(d: date) -> tuple[date, date]:
    """Monday and Sunday of the ISO week containing d."""
    start = d - timedelta(days=d.weekday())
    return start, start + timedelta(days=6)


def is_date_in_range(
    d: date,
    start_date: date | None = None,
    end_date: date | None = None,
) -> bool:
    """Check if a date is within a range.

    Args:
        d: Date to check.
        start_date: Start of range (inclusive). None means no lower bound.
        end_date: End of range (inclusive). None means no upper bound.

    Returns:
        True if date is within range.
    """
    if start_date is not None and d < start_date:
        return False
    if end_date is not None and d > end_date:
        return False
    return True


def generate_month_range(start: date, end: date) -> list[tuple[int, int]]:
    """Generate (year, month) tuples covering a date range, oldest first.

    Args:
        start: Start date.
        end: End date.

    Returns:
        List of (year, month) tuples covering the range.
    """
    months = []
    current_year = start.year
    current_month = start.month

    while (current_year, current_month) <= (end.year, end.month):
        months.append((current_year, current_month))
        current_month += 1
        if current_month > 12:
            current_month = 1
            current_year += 1

    return months


def trailing_months(as_of: date, count: int = 12) -> list[tuple[int, int]]:
    """The last `count` calendar months up to and including as_of's month, oldest first."""
    if count <= 0:
        return []
    start = add_months(as_of, -(count - 1))
    return generate_month_range(start, as_of)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end, 0 when end is not after start."""
    months = (end.year - start.year) * 12 + end.month - start.month
    if end.day < start.day:
        months -= 1
    return max(months, 0)
