"""
Conflict detection between existing slots and busy time.

Policy: booked slots are never touched, and any overlap with any busy
interval is enough to retire an unbooked slot.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from .models import BusyInterval, RecruiterConfig, Slot


@dataclass
class ConflictResult:
    """Partition of a recruiter's slots into the ones to delete and the ones to keep."""
    organizer: str
    slots_to_delete: List[Slot] = field(default_factory=list)
    safe_slots: List[Slot] = field(default_factory=list)


def detect_conflicts(
    organizer: str,
    recruiter: RecruiterConfig,
    slots: Iterable[Slot],
    busy_intervals: Iterable[BusyInterval]
) -> ConflictResult:
    """
    Decide which slots must be deleted because the recruiter is busy.

    Args:
        organizer: Identity of the calendar owner, carried for diagnostics
        recruiter: Recruiter the slots belong to
        slots: Existing slots for one recruiter on one day
        busy_intervals: Busy time for the same day

    Returns:
        ConflictResult whose two lists partition the slots (de-duplicated by id)
    """
    busy = list(busy_intervals)
    result = ConflictResult(organizer=organizer or recruiter.email)
    seen: Set[str] = set()

    for slot in slots:
        if slot.id in seen:
            continue
        seen.add(slot.id)

        if slot.is_booked:
            result.safe_slots.append(slot)
            continue

        if any(slot.overlaps(interval) for interval in busy):
            result.slots_to_delete.append(slot)
        else:
            result.safe_slots.append(slot)

    return result
