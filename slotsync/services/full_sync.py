"""
Full sync: the authoritative reconciliation of one recruiter batch.

Runs during quiet hours under a lock. For every sync day and every recruiter
in the batch it deletes slots the calendar contradicts, opens slots in the
remaining free time, and primes the snapshot cache for the delta pass.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

from pendulum import DateTime

from ..domain.batching import BatchCursor
from ..domain.conflicts import detect_conflicts
from ..domain.exceptions import SlotSyncError
from ..domain.models import BusyInterval, CalendarSnapshot, RecruiterConfig, Slot
from ..domain.schedule import day_bounds, work_window
from .base import BaseSyncService
from .protocols import BatchStoreProtocol, SyncLockProtocol
from .results import SyncResult, SyncStatus


class FullSyncService(BaseSyncService):
    """
    Lock -> quiet-hours gate -> load config -> select batch -> reconcile
    every day/recruiter -> prime cache -> advance batch -> unlock.
    """

    kind = "full sync"

    def __init__(self, *, lock: SyncLockProtocol, batch_store: BatchStoreProtocol, **kwargs) -> None:
        super().__init__(**kwargs)
        self._lock = lock
        self._batch_store = batch_store

    def run(self, now: Optional[DateTime] = None, force: bool = False) -> SyncResult:
        """
        Execute one full-sync invocation.

        Args:
            now: Reference time (defaults to the current time)
            force: Ignore the quiet-hours gate

        Returns:
            SyncResult describing what happened; never raises
        """
        result = self._start(now)

        try:
            acquired = self._lock.try_acquire(self._settings.lock_timeout_seconds)
        except Exception as exc:
            result.status = SyncStatus.FAILED
            result.reason = f"cannot take lock: {exc}"
            self._log.exception("Full sync aborted while taking the lock: %s", exc)
            return self._finish(result)

        if not acquired:
            result.status = SyncStatus.LOCKED
            result.reason = "another full sync holds the lock"
            self._log.warning("Full sync skipped: could not acquire lock")
            return self._finish(result)

        try:
            self._run_locked(result, force)
        except Exception as exc:
            result.status = SyncStatus.FAILED
            result.reason = str(exc)
            self._log.exception("Full sync aborted: %s", exc)
        finally:
            self._lock.release()

        return self._finish(result)

    def _run_locked(self, result: SyncResult, force: bool) -> None:
        now = result.started_at

        if not force and not self._in_quiet_hours(now):
            self._log.info(
                "Outside quiet hours (%02d-%02d), full sync not due",
                self._settings.quiet_hours_start, self._settings.quiet_hours_end,
            )
            result.skip("outside quiet hours")
            return

        recruiters = self._recruiters.load_recruiters()
        if not recruiters:
            self._log.warning("No valid recruiters configured")
            result.skip("no recruiters")
            return

        cursor = BatchCursor.resume(self._batch_store.load_batch(), len(recruiters), self._settings.batch_size)
        batch = cursor.select(recruiters)
        result.cursor_before = cursor.current_batch
        self._log.info(
            "Full sync batch %d/%d: %d recruiter(s)",
            cursor.current_batch, cursor.total_batches, len(batch),
        )

        days, horizon_start, horizon_end = self._horizon(now)
        busy_by_recruiter = self._fetch_batch_calendars(batch, horizon_start, horizon_end, result)

        for day in days:
            self._sync_day(day, now, batch, busy_by_recruiter, result)

        for recruiter in batch:
            busy = busy_by_recruiter.get(recruiter.key)
            if busy is None:
                continue
            self._cache.put(
                recruiter.key,
                CalendarSnapshot.from_intervals(recruiter.key, busy),
                self._settings.cache_ttl_seconds,
            )

        next_cursor = cursor.advanced()
        self._batch_store.save_batch(next_cursor.current_batch)
        result.cursor_after = next_cursor.current_batch

    def _fetch_batch_calendars(
        self,
        batch: List[RecruiterConfig],
        start: DateTime,
        end: DateTime,
        result: SyncResult,
    ) -> Dict[str, List[BusyInterval]]:
        """
        Busy intervals for the whole horizon, per recruiter key.

        Recruiters whose calendar cannot be read are left out and skipped
        for the whole run.
        """
        busy_by_recruiter: Dict[str, List[BusyInterval]] = {}

        for recruiter in batch:
            if not recruiter.has_valid_hours:
                self._log.warning(
                    "%s: work hours %s-%s are empty, no slots will be opened",
                    recruiter.email, recruiter.work_start, recruiter.work_end,
                )
            try:
                busy_by_recruiter[recruiter.key] = self._fetch_busy(recruiter, start, end)
            except SlotSyncError as exc:
                result.errors += 1
                result.recruiters_skipped += 1
                self._log.error("Skipping %s: %s", recruiter.email, exc)
                continue
            result.recruiters_processed += 1

        return busy_by_recruiter

    def _sync_day(
        self,
        day: DateTime,
        now: DateTime,
        batch: List[RecruiterConfig],
        busy_by_recruiter: Dict[str, List[BusyInterval]],
        result: SyncResult,
    ) -> None:
        stage_slots, failed_stages = self._load_stage_slots(day, batch, busy_by_recruiter, result)
        day_start, day_end = day_bounds(day)

        for recruiter in batch:
            busy_all = busy_by_recruiter.get(recruiter.key)
            if busy_all is None:
                continue

            broken = failed_stages.intersection(recruiter.stage_ids)
            if broken:
                self._log.warning(
                    "%s: skipping %s, slots of stage(s) %s unavailable",
                    recruiter.email, day.to_date_string(), ", ".join(sorted(broken)),
                )
                continue

            slots: List[Slot] = []
            for stage_id in recruiter.stage_ids:
                slots.extend(stage_slots.get(stage_id, []))
            own_slots = self._own_slots(recruiter, slots)
            busy = [b for b in busy_all if b.overlaps(day_start, day_end)]

            self._reconcile(recruiter, day, now, own_slots, busy, result)

    def _load_stage_slots(
        self,
        day: DateTime,
        batch: List[RecruiterConfig],
        busy_by_recruiter: Dict[str, List[BusyInterval]],
        result: SyncResult,
    ) -> Tuple[Dict[str, List[Slot]], Set[str]]:
        """List each stage once per day, shared by all recruiters using it."""
        stage_slots: Dict[str, List[Slot]] = {}
        failed: Set[str] = set()

        for recruiter in batch:
            if recruiter.key not in busy_by_recruiter:
                continue
            for stage_id in recruiter.stage_ids:
                if stage_id in stage_slots or stage_id in failed:
                    continue
                try:
                    stage_slots[stage_id] = self._slots.list_slots(stage_id, day)
                except SlotSyncError as exc:
                    failed.add(stage_id)
                    result.errors += 1
                    self._log.error("Listing stage %s on %s failed: %s", stage_id, day.to_date_string(), exc)

        return stage_slots, failed

    def _reconcile(
        self,
        recruiter: RecruiterConfig,
        day: DateTime,
        now: DateTime,
        own_slots: List[Slot],
        busy: List[BusyInterval],
        result: SyncResult,
    ) -> None:
        conflicts = detect_conflicts(recruiter.email, recruiter, own_slots, busy)
        self._delete_conflicts(recruiter, conflicts, result)

        occupied = [slot.time_range for slot in conflicts.safe_slots]
        occupied.extend(interval.time_range for interval in busy)

        window_start, window_end = work_window(
            day, recruiter, not_before=now, grid_minutes=self._settings.quantize_minutes
        )
        blocks = self._calculator.find_free_blocks(
            window_start, window_end, occupied, recruiter.slot_length_minutes
        )

        self._log.debug(
            "%s on %s: %d slot(s), %d busy, %d to delete, %d free block(s)",
            recruiter.email, day.to_date_string(), len(own_slots), len(busy),
            len(conflicts.slots_to_delete), len(blocks),
        )

        for block in blocks:
            self._open_block(recruiter, block, result)
