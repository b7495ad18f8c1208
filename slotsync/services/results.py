"""
Outcome of a single sync invocation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pendulum import DateTime


class SyncStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    LOCKED = "locked"
    FAILED = "failed"


@dataclass
class SyncResult:
    """
    State handed back by a driver run instead of global counters.

    ``cursor_before``/``cursor_after`` are only set by the full sync.
    """
    kind: str
    started_at: DateTime
    status: SyncStatus = SyncStatus.COMPLETED
    reason: str = ""
    recruiters_processed: int = 0
    recruiters_skipped: int = 0
    slots_deleted: int = 0
    slots_created: int = 0
    errors: int = 0
    cursor_before: Optional[int] = None
    cursor_after: Optional[int] = None
    finished_at: Optional[DateTime] = None

    def skip(self, reason: str) -> "SyncResult":
        self.status = SyncStatus.SKIPPED
        self.reason = reason
        return self

    def summary(self) -> str:
        text = (
            f"{self.kind} {self.status.value}: {self.recruiters_processed} recruiter(s) processed, "
            f"{self.recruiters_skipped} skipped, {self.slots_deleted} slot(s) deleted, "
            f"{self.slots_created} block(s) opened, {self.errors} error(s)"
        )
        if self.reason:
            text += f" ({self.reason})"
        return text
