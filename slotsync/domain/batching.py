"""
Batch cursor that spreads the full sync over several invocations.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class BatchCursor:
    """
    Position of the next full-sync batch.

    Invariant: 1 <= current_batch <= max(total_batches, 1).
    """
    current_batch: int
    total_batches: int
    batch_size: int

    @classmethod
    def resume(cls, stored_batch: Optional[int], total_items: int, batch_size: int) -> "BatchCursor":
        """
        Build the cursor for this run from the persisted batch number.

        A missing, invalid or out-of-range stored value restarts at batch 1.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be greater than zero, got {batch_size}")

        total = math.ceil(total_items / batch_size)
        current = stored_batch if stored_batch and stored_batch >= 1 else 1
        if current > total:
            current = 1

        return cls(current_batch=current, total_batches=total, batch_size=batch_size)

    def select(self, items: Sequence[T]) -> List[T]:
        """Return the slice of items belonging to the current batch."""
        offset = (self.current_batch - 1) * self.batch_size
        return list(items[offset:offset + self.batch_size])

    def advanced(self) -> "BatchCursor":
        """Cursor for the next run, wrapping to 1 after the last batch."""
        next_batch = self.current_batch + 1
        if next_batch > self.total_batches:
            next_batch = 1
        return BatchCursor(
            current_batch=next_batch,
            total_batches=self.total_batches,
            batch_size=self.batch_size,
        )
