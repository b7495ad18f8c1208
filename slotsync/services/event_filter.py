"""
Decides which calendar events make a recruiter busy.
"""

from typing import Iterable, List

from ..config import EventFilterSettings
from ..domain.models import BusyInterval, CalendarEvent

ACCEPTED_RESPONSES = {"accepted", "organizer"}


def is_busy_event(event: CalendarEvent, policy: EventFilterSettings) -> bool:
    """
    Apply the busy policy to a single event.

    Order matters: out-of-office always counts, working-location markers
    never do, all-day entries only when they look like leave, and timed
    entries only when accepted or organised by the recruiter.
    """
    title = event.title.strip().lower()

    if title in {t.lower() for t in policy.out_of_office_titles}:
        return True

    if title in {t.lower() for t in policy.working_location_titles}:
        return False

    if event.is_all_day:
        return any(keyword.lower() in title for keyword in policy.leave_keywords)

    return event.is_organizer or event.response_status.lower() in ACCEPTED_RESPONSES


def filter_busy_events(events: Iterable[CalendarEvent], policy: EventFilterSettings) -> List[BusyInterval]:
    """Turn raw events into busy intervals, ordered by start."""
    intervals: List[BusyInterval] = []

    for event in events:
        if event.end <= event.start:
            continue
        if not is_busy_event(event, policy):
            continue
        intervals.append(
            BusyInterval(id=event.id, title=event.title, start=event.start, end=event.end)
        )

    return sorted(intervals, key=lambda i: (i.start, i.id))
