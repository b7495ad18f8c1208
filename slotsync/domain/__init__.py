"""
Domain layer - Pure business logic without external dependencies.
"""

from .batching import BatchCursor
from .conflicts import ConflictResult, detect_conflicts
from .delta import SnapshotDelta, apply_delta, diff_snapshots
from .free_time import FreeTimeCalculator
from .models import BusyInterval, CalendarSnapshot, RecruiterConfig, Slot, SnapshotEvent, TimeRange

__all__ = [
    "BatchCursor",
    "BusyInterval",
    "CalendarSnapshot",
    "ConflictResult",
    "FreeTimeCalculator",
    "RecruiterConfig",
    "Slot",
    "SnapshotDelta",
    "SnapshotEvent",
    "TimeRange",
    "apply_delta",
    "detect_conflicts",
    "diff_snapshots",
]
