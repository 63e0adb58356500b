from __future__ import annotations

from datetime import date, timedelta

from leavedesk.config import get_settings
from leavedesk.exceptions import ValidationError


def count_business_days(start_date: date, end_date: date, weekend_days: frozenset[int] | None = None) -> int:
    """Count working days in the inclusive range [start_date, end_date].

    ``weekend_days`` uses ``date.weekday()`` numbering (Monday is 0) and
    defaults to the configured ``weekend_days`` setting.
    """
    if end_date < start_date:
        msg = "end_date must be on or after start_date"
        raise ValidationError(msg)

    if weekend_days is None:
        weekend_days = frozenset(get_settings().weekend_days)

    total = 0
    current = start_date
    one_day = timedelta(days=1)
    while current <= end_date:
        if current.weekday() not in weekend_days:
            total += 1
        current += one_day
    return total


def calculate_duration(start_date: date, end_date: date) -> int:
    """Business-day duration of a leave request. Raises if the range holds no working day."""
    days = count_business_days(start_date, end_date)
    if days <= 0:
        msg = "Requested range covers no working days"
        raise ValidationError(msg)
    return days
