"""Month and date helpers."""

import re
from datetime import date

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_month(month: str) -> tuple[int, int]:
    """
    Split a "YYYY-MM" month string into (year, month).

    Raises:
        ValueError: If the string is not a valid month
    """
    m = _MONTH_RE.match(month)
    if not m:
        raise ValueError(f"Invalid month format {month!r}, expected YYYY-MM")
    year, month_num = int(m.group(1)), int(m.group(2))
    if not 1 <= month_num <= 12:
        raise ValueError(f"Invalid month number in {month!r}")
    return year, month_num


def month_of(day: date) -> str:
    """Return the "YYYY-MM" month containing *day*."""
    return f"{day.year:04d}-{day.month:02d}"


def current_month() -> str:
    return month_of(date.today())
