"""
Process-level mutual exclusion for the full sync.
"""

import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class FileSyncLock:
    """
    Named lock backed by ``flock`` on a lock file.

    The kernel drops the lock when the holding process exits, so a run that
    is killed mid-way never blocks the next one.
    """

    POLL_INTERVAL = 0.25

    def __init__(self, path: Path, sleep: Callable[[float], None] = time.sleep):
        self.path = path
        self._sleep = sleep
        self._fd: Optional[int] = None

    @property
    def is_held(self) -> bool:
        return self._fd is not None

    def try_acquire(self, timeout_seconds: float) -> bool:
        """
        Try to take the lock, waiting at most ``timeout_seconds``.

        Returns:
            True if the lock is now held by this instance
        """
        if self._fd is not None:
            return True

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        deadline = time.monotonic() + max(timeout_seconds, 0)

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    logger.debug("Lock %s still held after %.1fs", self.path, timeout_seconds)
                    return False
                self._sleep(self.POLL_INTERVAL)
                continue

            os.ftruncate(fd, 0)
            os.write(fd, str(os.getpid()).encode("ascii"))
            self._fd = fd
            return True

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
