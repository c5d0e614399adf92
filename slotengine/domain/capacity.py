"""
Calendar-week arithmetic for the weekly booking cap.
"""

from typing import Optional

import pendulum
from pendulum import DateTime

from .models import WEEKDAY_NAMES

DEFAULT_WEEK_START = "sunday"


def week_start_for(
    instant: DateTime,
    week_start: str = DEFAULT_WEEK_START,
    timezone: str = "UTC",
) -> DateTime:
    """
    Return local midnight of the first day of the week containing ``instant``.

    Args:
        instant: Any timezone-aware instant
        week_start: Weekday name the week begins on
        timezone: Reference timezone that decides the civil date

    Example:
        Wednesday 2024-11-27 10:00, week_start "sunday" -> 2024-11-24 00:00
    """
    first_weekday = WEEKDAY_NAMES.index(week_start.lower())
    local_date = pendulum.instance(instant).in_timezone(timezone).date()
    offset = (local_date.weekday() - first_weekday) % 7
    first_day = local_date.subtract(days=offset)

    return pendulum.datetime(first_day.year, first_day.month, first_day.day, tz=timezone)


def is_under_cap(active_count: int, max_sessions_per_week: Optional[int]) -> bool:
    """An absent cap means unbounded; otherwise the count must stay below it."""
    if max_sessions_per_week is None:
        return True
    return active_count < max_sessions_per_week
