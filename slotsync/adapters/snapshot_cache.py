"""
File-backed snapshot cache with a freshness window.
"""

import json
import logging
import re
import time
from pathlib import Path
from typing import Callable, Optional

from ..domain.models import CalendarSnapshot

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._@-]")


class FileSnapshotCache:
    """
    Stores one JSON document per recruiter.

    Entries older than their ttl are treated as absent, so a recruiter that
    missed a full sync falls back to "no baseline" instead of diffing
    against stale data.
    """

    def __init__(
        self,
        directory: Path,
        ttl_seconds: int = 23 * 3600,
        clock: Callable[[], float] = time.time
    ):
        self.directory = directory
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _path_for(self, recruiter_key: str) -> Path:
        return self.directory / f"{_UNSAFE_CHARS.sub('_', recruiter_key)}.json"

    def get(self, recruiter_key: str) -> Optional[CalendarSnapshot]:
        path = self._path_for(recruiter_key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
            expires_at = float(document["expires_at"])
            snapshot = CalendarSnapshot.from_dict(document["snapshot"])
        except (OSError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring unreadable snapshot for %s: %s", recruiter_key, exc)
            return None

        if expires_at <= self._clock():
            logger.debug("Snapshot for %s expired", recruiter_key)
            return None

        if snapshot.recruiter_key != recruiter_key:
            logger.warning("Snapshot file for %s belongs to %s", recruiter_key, snapshot.recruiter_key)
            return None

        return snapshot

    def put(self, recruiter_key: str, snapshot: CalendarSnapshot, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        now = self._clock()
        document = {
            "stored_at": now,
            "expires_at": now + ttl,
            "snapshot": snapshot.to_dict(),
        }

        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(recruiter_key)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f)
        tmp_path.replace(path)

    def age_seconds(self, recruiter_key: str) -> Optional[float]:
        """Seconds since the entry was written, or None if there is none."""
        path = self._path_for(recruiter_key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return self._clock() - float(json.load(f)["stored_at"])
        except (OSError, KeyError, TypeError, ValueError):
            return None
