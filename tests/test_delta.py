"""
Tests for snapshot diffing.
"""

import random

import pendulum

from slotsync.domain.delta import apply_delta, diff_snapshots
from slotsync.domain.models import CalendarSnapshot, SnapshotEvent, to_millis

TZ = "Europe/Berlin"


def millis(hhmm: str) -> int:
    return to_millis(pendulum.parse(f"2024-11-25 {hhmm}", tz=TZ))


def snapshot(**events) -> CalendarSnapshot:
    return CalendarSnapshot(
        recruiter_key="alice@example.com",
        events={
            event_id: SnapshotEvent(title=title, start_millis=millis(start), end_millis=millis(end))
            for event_id, (title, start, end) in events.items()
        },
    )


def times(snap: CalendarSnapshot):
    return {event_id: (e.start_millis, e.end_millis) for event_id, e in snap.events.items()}


class TestDiffSnapshots:
    """Tests for diff_snapshots."""

    def test_removed_event_is_reported_as_deleted(self):
        cached = snapshot(E1=("Interview", "09:00", "10:00"))
        current = snapshot()

        delta = diff_snapshots(cached, current, TZ)

        assert delta.new_or_updated == []
        assert [i.id for i in delta.deleted] == ["E1"]
        assert delta.deleted[0].start == pendulum.parse("2024-11-25 09:00", tz=TZ)
        assert delta.deleted[0].end == pendulum.parse("2024-11-25 10:00", tz=TZ)

    def test_new_and_moved_events_are_reported(self):
        cached = snapshot(E1=("Sync", "09:00", "10:00"), E2=("1:1", "11:00", "11:30"))
        current = snapshot(
            E1=("Sync", "09:00", "10:00"),
            E2=("1:1", "11:30", "12:00"),
            E3=("Lunch", "12:00", "13:00"),
        )

        delta = diff_snapshots(cached, current, TZ)

        assert [i.id for i in delta.new_or_updated] == ["E2", "E3"]
        assert delta.deleted == []

    def test_renamed_event_is_invisible(self):
        """Only busy/free state matters, so titles are not compared."""
        cached = snapshot(E1=("Old title", "09:00", "10:00"))
        current = snapshot(E1=("New title", "09:00", "10:00"))

        delta = diff_snapshots(cached, current, TZ)

        assert delta.is_empty

    def test_identical_snapshots_have_no_delta(self):
        snap = snapshot(E1=("Sync", "09:00", "10:00"))

        assert diff_snapshots(snap, snap, TZ).is_empty

    def test_apply_delta_reconstructs_current(self):
        """Replaying a diff on the older snapshot yields the newer one."""
        rng = random.Random(7)
        base = millis("00:00")

        for _ in range(100):
            def random_snapshot():
                events = {}
                for index in rng.sample(range(12), rng.randint(0, 8)):
                    start = base + rng.randint(0, 96) * 15 * 60 * 1000 + rng.randint(0, 999)
                    end = start + rng.randint(1, 8) * 15 * 60 * 1000
                    events[f"E{index}"] = SnapshotEvent(title=f"t{rng.randint(0, 3)}", start_millis=start, end_millis=end)
                return CalendarSnapshot(recruiter_key="alice@example.com", events=events)

            previous, current = random_snapshot(), random_snapshot()

            rebuilt = apply_delta(previous, diff_snapshots(previous, current, TZ))

            assert times(rebuilt) == times(current)
