"""
Calendar-day helpers.

Every value handled here is a plain ``datetime.date``: no time of day and no
timezone, so day counts cannot drift across daylight-saving transitions.
"""
from datetime import date, datetime, timedelta
from typing import Any, List, Optional


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Coerce a raw value into a calendar date.

    Accepts ``date``, ``datetime`` (time of day dropped), ``YYYY-MM-DD``
    strings and ISO datetime strings (only the date part is used).

    Args:
        value: Raw value

    Returns:
        The calendar date, or None if the value does not parse
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    # "2024-01-05T00:00:00Z" and "2024-01-05 08:30" keep only the date part
    if len(text) > 10 and text[10] in ("T", " "):
        text = text[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative if end is before start)."""
    return (end - start).days


def inclusive_day_count(start: date, end: date) -> int:
    """Number of calendar days covered by start..end, both ends included."""
    return days_between(start, end) + 1


def week_start(day: date) -> date:
    """Sunday on or before the given day."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_ticks(start: date, end: date) -> List[date]:
    """
    Week-start dates covering start..end, for timeline axis labels.

    Args:
        start: First day of the window
        end: Last day of the window

    Returns:
        Sundays from the week containing start up to end
    """
    ticks = []
    current = week_start(start)
    while current <= end:
        ticks.append(current)
        current += timedelta(weeks=1)
    return ticks
