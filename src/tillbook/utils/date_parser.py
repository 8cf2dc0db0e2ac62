"""Date parsing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def _start_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Accepts absolute dates ("2024-01-15", "15 Jan 2024") and the relative
    forms "today", "yesterday", "this week|month|year" and
    "last week|month|year" (which resolve to the first day of that period).

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = date.today()

    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)

    starts = {
        "this week": _start_of_week(today),
        "this month": today.replace(day=1),
        "this year": today.replace(month=1, day=1),
        "last week": _start_of_week(today) - timedelta(days=7),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "last year": today.replace(month=1, day=1) - relativedelta(years=1),
    }
    if text in starts:
        return starts[text]

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str) -> tuple[date, date]:
    """Inclusive (start, end) for a named period.

    Supported: today, this-week, this-month, this-year, last-week,
    last-month, last-year. "this-*" periods end today.

    Raises:
        ValueError: If period string is not recognized
    """
    key = period.strip().lower()
    today = date.today()
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)
    week_start = _start_of_week(today)

    ranges = {
        "today": (today, today),
        "this-week": (week_start, today),
        "this-month": (month_start, today),
        "this-year": (year_start, today),
        "last-week": (week_start - timedelta(days=7), week_start - timedelta(days=1)),
        "last-month": (month_start - relativedelta(months=1), month_start - timedelta(days=1)),
        "last-year": (year_start - relativedelta(years=1), year_start - timedelta(days=1)),
    }
    if key not in ranges:
        raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(ranges)}")
    return ranges[key]
