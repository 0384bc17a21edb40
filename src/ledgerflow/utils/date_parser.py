"""Date parsing utilities."""

from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates and a few relative forms:
    - Absolute dates: "2024-06-01", "01/06/2024" (day first), "June 1, 2024"
    - Relative dates: "today", "yesterday", "N days ago", "last month"

    Bank statements in this domain write dates day-first, so ambiguous
    numeric dates such as "01/06/2024" parse as 1 June.

    Args:
        date_str: Date string in various formats
        today: Reference date for relative forms (defaults to date.today())

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = today or date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "this month": today.replace(day=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.endswith(" days ago"):
        count = date_str[: -len(" days ago")].strip()
        if count.isdigit():
            return today - timedelta(days=int(count))

    try:
        # ISO dates are unambiguous; everything else is read day-first
        if len(date_str) == 10 and date_str[4] == "-" and date_str[7] == "-":
            return date.fromisoformat(date_str)
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
