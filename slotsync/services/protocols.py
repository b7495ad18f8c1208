"""
Protocols describing the collaborators the sync services depend on.

Dependency inversion toward these protocols makes it easy to plug in the
real adapters or simple stubs in tests.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.models import CalendarEvent, CalendarSnapshot, RecruiterConfig, Slot, TimeRange


class RecruiterProviderProtocol(Protocol):
    def load_recruiters(self) -> List[RecruiterConfig]:
        """Return validated recruiters; raise ConfigurationError if none can be read."""


class CalendarClientProtocol(Protocol):
    def list_busy_events(
        self,
        calendar_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[CalendarEvent]:
        """Return all calendar events overlapping the window."""


class SlotStoreProtocol(Protocol):
    def list_slots(self, stage_id: str, day: DateTime) -> List[Slot]:
        """Return every slot of a stage on a day; raise SlotStoreError on failure."""

    def create_slots(
        self,
        owner_id: str,
        window: TimeRange,
        stage_ids: Sequence[str],
        slot_length_minutes: int,
        title: str,
    ) -> bool:
        """Fill a free window with slots."""

    def delete_slot(self, slot_id: str) -> bool:
        """Delete a single slot."""


class SnapshotCacheProtocol(Protocol):
    def get(self, recruiter_key: str) -> Optional[CalendarSnapshot]:
        """Return the fresh snapshot or None."""

    def put(self, recruiter_key: str, snapshot: CalendarSnapshot, ttl_seconds: Optional[int] = None) -> None:
        """Store a snapshot."""


class SyncLockProtocol(Protocol):
    def try_acquire(self, timeout_seconds: float) -> bool:
        """Take the lock within the timeout."""

    def release(self) -> None:
        """Give the lock back."""


class BatchStoreProtocol(Protocol):
    def load_batch(self) -> Optional[int]:
        """Return the persisted batch number, if any."""

    def save_batch(self, batch: int) -> None:
        """Persist the batch number for the next run."""
