"""
Date helpers shared by the availability checks, dashboards and tasks.

All timestamps are stored as naive UTC datetimes.
"""

from datetime import date, datetime, time, timezone
from typing import Iterable, Optional, Tuple, Union


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return datetime.combine(value.date(), time.min)
    return datetime.combine(value, time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    """23:59:59.999 on the calendar day of ``value``."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time(23, 59, 59, 999000))


def event_day_range(event_date: datetime) -> Tuple[datetime, datetime]:
    """The span a center booking occupies: the event time through the end of that day."""
    return event_date, end_of_day(event_date)


def ranges_overlap(
    start: datetime,
    end: datetime,
    other_start: datetime,
    other_end: datetime,
) -> bool:
    """Inclusive overlap test between two closed ranges."""
    return start <= other_end and end >= other_start


def find_overlap(
    start: datetime,
    end: datetime,
    ranges: Iterable[Tuple[datetime, datetime]],
) -> Optional[Tuple[datetime, datetime]]:
    """Return the first range in ``ranges`` overlapping [start, end], if any."""
    for range_start, range_end in ranges:
        if ranges_overlap(start, end, range_start, range_end):
            return range_start, range_end
    return None

