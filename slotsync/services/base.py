"""
Pieces shared by the full and the delta sync services.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from ..config import EventFilterSettings, SyncSettings
from ..domain.conflicts import ConflictResult
from ..domain.free_time import FreeTimeCalculator
from ..domain.models import BusyInterval, RecruiterConfig, Slot, TimeRange
from ..domain.schedule import is_quiet_hour, sync_days
from .event_filter import filter_busy_events
from .protocols import (
    CalendarClientProtocol,
    RecruiterProviderProtocol,
    SlotStoreProtocol,
    SnapshotCacheProtocol,
)
from .results import SyncResult

logger = logging.getLogger(__name__)


class BaseSyncService:
    """
    Holds the collaborators and the slot mutations both passes perform.
    """

    kind = "sync"

    def __init__(
        self,
        *,
        recruiter_provider: RecruiterProviderProtocol,
        calendar_client: CalendarClientProtocol,
        slot_store: SlotStoreProtocol,
        snapshot_cache: SnapshotCacheProtocol,
        settings: SyncSettings,
        event_filter: Optional[EventFilterSettings] = None,
        timezone: str = "Europe/Berlin",
        calculator: Optional[FreeTimeCalculator] = None,
        logger_: Optional[logging.Logger] = None,
    ) -> None:
        self._recruiters = recruiter_provider
        self._calendar = calendar_client
        self._slots = slot_store
        self._cache = snapshot_cache
        self._settings = settings
        self._event_filter = event_filter or EventFilterSettings()
        self._timezone = timezone
        self._calculator = calculator or FreeTimeCalculator(quantize_minutes=settings.quantize_minutes)
        self._log = logger_ or logger

    def _start(self, now: Optional[DateTime]) -> SyncResult:
        now = now.in_timezone(self._timezone) if now is not None else pendulum.now(self._timezone)
        return SyncResult(kind=self.kind, started_at=now)

    def _finish(self, result: SyncResult) -> SyncResult:
        result.finished_at = pendulum.now(self._timezone)
        self._log.info(result.summary())
        return result

    def _in_quiet_hours(self, now: DateTime) -> bool:
        return is_quiet_hour(now.hour, self._settings.quiet_hours_start, self._settings.quiet_hours_end)

    def _horizon(self, now: DateTime) -> Tuple[List[DateTime], DateTime, DateTime]:
        """Sync days plus the overall window they cover."""
        days = sync_days(now, self._settings.days_ahead, self._settings.exclude_days)
        start = now.start_of("day")
        end = start.add(days=self._settings.days_ahead + 1)
        return days, start, end

    def _fetch_busy(self, recruiter: RecruiterConfig, start: DateTime, end: DateTime) -> List[BusyInterval]:
        """Busy intervals of a recruiter; provider errors propagate to the caller."""
        events = self._calendar.list_busy_events(recruiter.email, start, end)
        busy = filter_busy_events(events, self._event_filter)
        self._log.debug(
            "%s: %d of %d calendar event(s) count as busy", recruiter.email, len(busy), len(events)
        )
        return busy

    @staticmethod
    def _own_slots(recruiter: RecruiterConfig, slots: Iterable[Slot]) -> List[Slot]:
        """Slots owned by the recruiter, de-duplicated across stages."""
        own: Dict[str, Slot] = {}
        for slot in slots:
            if slot.owner_id == recruiter.external_user_id and slot.id not in own:
                own[slot.id] = slot
        return list(own.values())

    def _delete_conflicts(self, recruiter: RecruiterConfig, conflicts: ConflictResult, result: SyncResult) -> None:
        for slot in conflicts.slots_to_delete:
            if self._slots.delete_slot(slot.id):
                result.slots_deleted += 1
                self._log.info(
                    "Deleted slot %s (%s) of %s: calendar of %s is busy",
                    slot.id, slot.time_range, recruiter.email, conflicts.organizer,
                )
            else:
                result.errors += 1

    def _open_block(self, recruiter: RecruiterConfig, block: TimeRange, result: SyncResult) -> None:
        created = self._slots.create_slots(
            recruiter.external_user_id,
            block,
            recruiter.stage_ids,
            recruiter.slot_length_minutes,
            recruiter.slot_title,
        )
        if created:
            result.slots_created += 1
            self._log.info("Opened %s for %s", block, recruiter.email)
        else:
            result.errors += 1
