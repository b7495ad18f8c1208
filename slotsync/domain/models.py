"""
Domain models for time ranges, slots, calendar snapshots and recruiters.
"""

from dataclasses import dataclass, field
from datetime import time
from typing import Any, Dict, List, Tuple

import pendulum
from pendulum import DateTime


def to_millis(dt: DateTime) -> int:
    """Convert a datetime to integer epoch milliseconds."""
    return dt.int_timestamp * 1000 + dt.microsecond // 1000


def from_millis(millis: int, timezone: str = "UTC") -> DateTime:
    """Convert epoch milliseconds back to a datetime in the given timezone."""
    seconds, remainder = divmod(millis, 1000)
    return pendulum.from_timestamp(seconds, tz=timezone).set(microsecond=remainder * 1000)


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another (touching ranges do not)."""
        return self.start < other.end and self.end > other.start

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class BusyInterval:
    """
    A time range during which a recruiter is unavailable.

    Produced from filtered calendar events or from a cached snapshot.
    """
    id: str
    title: str
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Busy interval {self.id} ends before it starts")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def overlaps(self, start: DateTime, end: DateTime) -> bool:
        return self.start < end and self.end > start


@dataclass(frozen=True)
class CalendarEvent:
    """
    A calendar entry as returned by the calendar provider, before filtering.
    """
    id: str
    title: str
    start: DateTime
    end: DateTime
    is_all_day: bool = False
    is_organizer: bool = False
    response_status: str = ""
    organizer: str = ""


@dataclass(frozen=True)
class Slot:
    """
    A bookable (or already booked) interview slot held by the remote scheduler.
    """
    id: str
    start: DateTime
    end: DateTime
    booked_count: int = 0
    owner_id: str = ""

    @property
    def is_booked(self) -> bool:
        return self.booked_count > 0

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def overlaps(self, busy: BusyInterval) -> bool:
        """Half-open overlap test against a busy interval."""
        return self.start < busy.end and self.end > busy.start


@dataclass(frozen=True)
class RecruiterConfig:
    """
    Everything the engine needs to know about one recruiter.

    Stage ids are kept in configuration order without duplicates.
    """
    email: str
    external_user_id: str
    work_start: time
    work_end: time
    slot_length_minutes: int
    stage_ids: Tuple[str, ...]
    slot_title: str = ""

    @property
    def key(self) -> str:
        """Stable identifier used for snapshot caching."""
        return self.email.lower()

    @property
    def has_valid_hours(self) -> bool:
        return self.work_start < self.work_end


@dataclass(frozen=True)
class SnapshotEvent:
    """A single busy event as stored in a calendar snapshot."""
    title: str
    start_millis: int
    end_millis: int


@dataclass
class CalendarSnapshot:
    """
    Last-seen busy state of one recruiter's calendar.

    Times are stored as epoch milliseconds so that the serialised form is a
    plain mapping and comparisons never depend on timezone handling.
    """
    recruiter_key: str
    events: Dict[str, SnapshotEvent] = field(default_factory=dict)

    @classmethod
    def from_intervals(cls, recruiter_key: str, intervals: List[BusyInterval]) -> "CalendarSnapshot":
        events = {
            interval.id: SnapshotEvent(
                title=interval.title,
                start_millis=to_millis(interval.start),
                end_millis=to_millis(interval.end),
            )
            for interval in intervals
        }
        return cls(recruiter_key=recruiter_key, events=events)

    def to_intervals(self, timezone: str = "UTC") -> List[BusyInterval]:
        """Rehydrate the snapshot into busy intervals, ordered by start."""
        intervals = [
            interval_from_event(event_id, event, timezone)
            for event_id, event in self.events.items()
        ]
        return sorted(intervals, key=lambda i: (i.start, i.id))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recruiter_key": self.recruiter_key,
            "events": {
                event_id: {
                    "title": event.title,
                    "start": event.start_millis,
                    "end": event.end_millis,
                }
                for event_id, event in self.events.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarSnapshot":
        """
        Build a snapshot from its serialised form.

        Raises:
            ValueError: If the payload is not a valid snapshot
        """
        try:
            events = {
                str(event_id): SnapshotEvent(
                    title=str(raw.get("title", "")),
                    start_millis=int(raw["start"]),
                    end_millis=int(raw["end"]),
                )
                for event_id, raw in data["events"].items()
            }
            recruiter_key = str(data["recruiter_key"])
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise ValueError(f"Invalid calendar snapshot payload: {exc}") from exc

        broken = [event_id for event_id, event in events.items() if event.end_millis <= event.start_millis]
        if broken:
            raise ValueError(f"Snapshot events end before they start: {', '.join(sorted(broken))}")

        return cls(recruiter_key=recruiter_key, events=events)


def interval_from_event(event_id: str, event: SnapshotEvent, timezone: str = "UTC") -> BusyInterval:
    return BusyInterval(
        id=event_id,
        title=event.title,
        start=from_millis(event.start_millis, timezone),
        end=from_millis(event.end_millis, timezone),
    )
