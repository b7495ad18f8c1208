"""
Calendar-day helpers shared by both sync passes.
"""

from typing import Iterable, List, Optional, Tuple

from pendulum import DateTime

from .free_time import DEFAULT_QUANTIZE_MINUTES, round_up
from .models import RecruiterConfig


def is_quiet_hour(hour: int, start_hour: int, end_hour: int) -> bool:
    """
    Check whether an hour of the day falls into the quiet-hours window.

    The window may wrap past midnight (e.g. 22 -> 6). An empty window
    (start == end) contains no hour at all.
    """
    if start_hour == end_hour:
        return False
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def sync_days(now: DateTime, days_ahead: int, exclude_weekdays: Iterable[int]) -> List[DateTime]:
    """
    Start-of-day datetimes for today plus the next ``days_ahead`` days.

    Excluded weekdays (0=Monday, 6=Sunday) are skipped.
    """
    excluded = set(exclude_weekdays)
    today = now.start_of("day")
    days: List[DateTime] = []

    for offset in range(days_ahead + 1):
        day = today.add(days=offset)
        if day.weekday() in excluded:
            continue
        days.append(day)

    return days


def day_bounds(day: DateTime) -> Tuple[DateTime, DateTime]:
    start = day.start_of("day")
    return start, start.add(days=1)


def work_window(
    day: DateTime,
    recruiter: RecruiterConfig,
    not_before: Optional[DateTime] = None,
    grid_minutes: int = DEFAULT_QUANTIZE_MINUTES
) -> Tuple[DateTime, DateTime]:
    """
    The recruiter's work hours on a given day.

    ``not_before`` lifts the start so that nothing is offered in the past,
    rounded up onto the ``grid_minutes`` grid.
    The window may come back empty (start >= end); callers treat that as
    "no free time".
    """
    start = day.set(
        hour=recruiter.work_start.hour,
        minute=recruiter.work_start.minute,
        second=0,
        microsecond=0
    )
    end = day.set(
        hour=recruiter.work_end.hour,
        minute=recruiter.work_end.minute,
        second=0,
        microsecond=0
    )

    if not_before is not None:
        earliest = round_up(not_before, grid_minutes)
        if earliest > start:
            start = earliest

    return start, end


def days_spanned(start: DateTime, end: DateTime, candidates: Iterable[DateTime]) -> List[DateTime]:
    """Return the candidate days whose 24h bounds overlap ``[start, end)``."""
    spanned: List[DateTime] = []
    for day in candidates:
        day_start, day_end = day_bounds(day)
        if start < day_end and end > day_start:
            spanned.append(day)
    return spanned
