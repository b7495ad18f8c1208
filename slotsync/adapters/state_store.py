"""
Tiny JSON property store for state that must survive between runs.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

BATCH_CURSOR_KEY = "full_sync.current_batch"


class JsonStateStore:
    """Key/value properties persisted as one JSON object."""

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("State file %s unreadable, starting fresh: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)

    def load_batch(self) -> Optional[int]:
        value = self.get(BATCH_CURSOR_KEY)
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid stored batch cursor %r", value)
            return None

    def save_batch(self, batch: int) -> None:
        self.set(BATCH_CURSOR_KEY, batch)
