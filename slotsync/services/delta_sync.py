"""
Delta sync: the frequent, cache-assisted pass between full syncs.

Only calendar changes since the last snapshot are acted on. Recruiters
without a fresh snapshot are left alone until the next full sync.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pendulum import DateTime

from ..domain.conflicts import detect_conflicts
from ..domain.delta import diff_snapshots
from ..domain.exceptions import SlotSyncError
from ..domain.models import BusyInterval, CalendarSnapshot, RecruiterConfig, Slot, TimeRange
from ..domain.schedule import days_spanned, work_window
from .base import BaseSyncService
from .results import SyncResult, SyncStatus


class DeltaSyncService(BaseSyncService):
    """Applies calendar deltas to the slot store, recruiter by recruiter."""

    kind = "delta sync"

    def run(self, now: Optional[DateTime] = None, force: bool = False) -> SyncResult:
        """
        Execute one delta-sync invocation.

        Args:
            now: Reference time (defaults to the current time)
            force: Run even inside quiet hours

        Returns:
            SyncResult describing what happened; never raises
        """
        result = self._start(now)

        if not force and self._in_quiet_hours(result.started_at):
            self._log.info("Inside quiet hours, leaving the calendar to the full sync")
            result.skip("inside quiet hours")
            return self._finish(result)

        try:
            recruiters = self._recruiters.load_recruiters()
            days, horizon_start, horizon_end = self._horizon(result.started_at)

            for recruiter in recruiters:
                try:
                    self._sync_recruiter(recruiter, days, horizon_start, horizon_end, result)
                except SlotSyncError as exc:
                    result.errors += 1
                    result.recruiters_skipped += 1
                    self._log.error("Skipping %s: %s", recruiter.email, exc)
        except Exception as exc:
            result.status = SyncStatus.FAILED
            result.reason = str(exc)
            self._log.exception("Delta sync aborted: %s", exc)

        return self._finish(result)

    def _sync_recruiter(
        self,
        recruiter: RecruiterConfig,
        days: List[DateTime],
        horizon_start: DateTime,
        horizon_end: DateTime,
        result: SyncResult,
    ) -> None:
        busy = self._fetch_busy(recruiter, horizon_start, horizon_end)
        current = CalendarSnapshot.from_intervals(recruiter.key, busy)

        cached = self._cache.get(recruiter.key)
        if cached is None:
            self._log.info("%s: no snapshot yet, waiting for the next full sync", recruiter.email)
            result.recruiters_skipped += 1
            return

        delta = diff_snapshots(cached, current, self._timezone)
        if delta.is_empty:
            self._log.debug("%s: calendar unchanged", recruiter.email)
        else:
            self._log.info(
                "%s: %d new/changed and %d removed event(s)",
                recruiter.email, len(delta.new_or_updated), len(delta.deleted),
            )
            self._retire_conflicting_slots(recruiter, delta.new_or_updated, days, result)
            self._open_freed_time(recruiter, delta.deleted, days, result)

        self._cache.put(recruiter.key, current, self._settings.cache_ttl_seconds)
        result.recruiters_processed += 1

    def _retire_conflicting_slots(
        self,
        recruiter: RecruiterConfig,
        intervals: List[BusyInterval],
        days: List[DateTime],
        result: SyncResult,
    ) -> None:
        """Delete unbooked slots that overlap new or moved busy time."""
        by_day: Dict[str, List[BusyInterval]] = {}
        day_lookup: Dict[str, DateTime] = {}

        for interval in intervals:
            for day in days_spanned(interval.start, interval.end, days):
                key = day.to_date_string()
                by_day.setdefault(key, []).append(interval)
                day_lookup[key] = day

        for key, day_intervals in by_day.items():
            day = day_lookup[key]
            try:
                slots = self._list_recruiter_slots(recruiter, day)
            except SlotSyncError as exc:
                result.errors += 1
                self._log.error("%s: cannot list slots on %s: %s", recruiter.email, key, exc)
                continue

            conflicts = detect_conflicts(recruiter.email, recruiter, slots, day_intervals)
            self._delete_conflicts(recruiter, conflicts, result)

    def _open_freed_time(
        self,
        recruiter: RecruiterConfig,
        intervals: List[BusyInterval],
        days: List[DateTime],
        result: SyncResult,
    ) -> None:
        """Open slots in time that a removed event used to block."""
        for interval in intervals:
            for day in days_spanned(interval.start, interval.end, days):
                window_start, window_end = work_window(
                    day, recruiter, not_before=result.started_at, grid_minutes=self._settings.quantize_minutes
                )
                start = max(interval.start, window_start)
                end = min(interval.end, window_end)

                if end <= start:
                    continue

                block = TimeRange(start=start, end=end)
                if block.duration_minutes() < recruiter.slot_length_minutes:
                    continue

                self._open_block(recruiter, block, result)

    def _list_recruiter_slots(self, recruiter: RecruiterConfig, day: DateTime) -> List[Slot]:
        slots: List[Slot] = []
        for stage_id in recruiter.stage_ids:
            slots.extend(self._slots.list_slots(stage_id, day))
        return self._own_slots(recruiter, slots)
