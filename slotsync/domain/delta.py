"""
Snapshot diffing for the frequent delta pass.

Events are compared by id and time only. A renamed event with unchanged
times produces no delta.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .models import BusyInterval, CalendarSnapshot, SnapshotEvent, interval_from_event, to_millis


@dataclass
class SnapshotDelta:
    """Changes between a cached snapshot and the current calendar state."""
    new_or_updated: List[BusyInterval] = field(default_factory=list)
    deleted: List[BusyInterval] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.new_or_updated and not self.deleted


def diff_snapshots(
    cached: CalendarSnapshot,
    current: CalendarSnapshot,
    timezone: str = "UTC"
) -> SnapshotDelta:
    """
    Compare two snapshots of the same recruiter's calendar.

    Args:
        cached: Snapshot written by the previous run
        current: Snapshot built from the calendar just now
        timezone: Timezone used for the returned intervals

    Returns:
        SnapshotDelta with new/changed busy time and time that became free
    """
    delta = SnapshotDelta()

    for event_id, event in current.events.items():
        previous = cached.events.get(event_id)
        if previous is None or _times_changed(previous, event):
            delta.new_or_updated.append(interval_from_event(event_id, event, timezone))

    for event_id, event in cached.events.items():
        if event_id not in current.events:
            delta.deleted.append(interval_from_event(event_id, event, timezone))

    delta.new_or_updated.sort(key=lambda i: (i.start, i.id))
    delta.deleted.sort(key=lambda i: (i.start, i.id))

    return delta


def apply_delta(previous: CalendarSnapshot, delta: SnapshotDelta) -> CalendarSnapshot:
    """Replay a delta on top of an older snapshot."""
    events: Dict[str, SnapshotEvent] = dict(previous.events)

    for interval in delta.deleted:
        events.pop(interval.id, None)

    for interval in delta.new_or_updated:
        events[interval.id] = SnapshotEvent(
            title=interval.title,
            start_millis=to_millis(interval.start),
            end_millis=to_millis(interval.end),
        )

    return CalendarSnapshot(recruiter_key=previous.recruiter_key, events=events)


def _times_changed(previous: SnapshotEvent, current: SnapshotEvent) -> bool:
    return previous.start_millis != current.start_millis or previous.end_millis != current.end_millis
