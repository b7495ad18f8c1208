"""
Core business logic for turning busy time into bookable free blocks.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

from typing import Iterable, List

from pendulum import DateTime

from .models import TimeRange

DEFAULT_QUANTIZE_MINUTES = 30


class FreeTimeCalculator:
    """
    Calculates free blocks inside a recruiter's work window.

    Algorithm:
    1. Start with the work window as the only free candidate
    2. Subtract each busy range (sorted by start) from every candidate it touches
    3. Optionally snap blocks onto the quantization grid
    4. Filter by minimum duration (the recruiter's slot length)
    """

    def __init__(self, quantize_minutes: int = DEFAULT_QUANTIZE_MINUTES):
        if quantize_minutes <= 0 or 60 % quantize_minutes != 0:
            raise ValueError(f"quantize_minutes must divide an hour evenly, got {quantize_minutes}")
        self.quantize_minutes = quantize_minutes

    def find_free_blocks(
        self,
        window_start: DateTime,
        window_end: DateTime,
        busy_ranges: Iterable[TimeRange],
        slot_length_minutes: int
    ) -> List[TimeRange]:
        """
        Find all free blocks in a work window.

        Args:
            window_start: Start of the recruiter's work hours on that day
            window_end: End of the recruiter's work hours on that day
            busy_ranges: Occupied time (busy events and slots that stay), unordered
            slot_length_minutes: Minimum duration a block needs to be useful

        Returns:
            Free blocks ordered by start time, all contained in the window
        """
        if window_start >= window_end:
            return []

        candidates: List[TimeRange] = [TimeRange(start=window_start, end=window_end)]

        for busy in sorted(busy_ranges, key=lambda r: r.start):
            next_candidates: List[TimeRange] = []
            for candidate in candidates:
                if candidate.overlaps(busy):
                    next_candidates.extend(self._subtract(candidate, busy))
                else:
                    next_candidates.append(candidate)
            candidates = next_candidates

            if not candidates:
                return []

        blocks: List[TimeRange] = []
        quantize = slot_length_minutes == self.quantize_minutes

        for candidate in candidates:
            start, end = candidate.start, candidate.end
            if quantize:
                start = round_up(start, self.quantize_minutes)
                end = round_down(end, self.quantize_minutes)

            if end <= start:
                continue

            block = TimeRange(start=start, end=end)
            if block.duration_minutes() < slot_length_minutes:
                continue

            blocks.append(block)

        return sorted(blocks, key=lambda r: r.start)

    @staticmethod
    def _subtract(candidate: TimeRange, busy: TimeRange) -> List[TimeRange]:
        """
        Remove a busy range from a free candidate.

        Example:
        Candidate: 09:00 - 17:00
        Busy: 10:00 - 11:00
        Result: [09:00-10:00, 11:00-17:00]
        """
        pieces: List[TimeRange] = []

        if candidate.start < busy.start:
            pieces.append(TimeRange(start=candidate.start, end=busy.start))

        if busy.end < candidate.end:
            pieces.append(TimeRange(start=busy.end, end=candidate.end))

        return pieces


def round_down(dt: DateTime, unit_minutes: int) -> DateTime:
    """Snap a datetime down onto the unit grid within its hour."""
    return dt.set(minute=dt.minute - dt.minute % unit_minutes, second=0, microsecond=0)


def round_up(dt: DateTime, unit_minutes: int) -> DateTime:
    """Snap a datetime up onto the unit grid within its hour."""
    floor = round_down(dt, unit_minutes)
    if floor == dt:
        return floor
    return floor.add(minutes=unit_minutes)
