"""
Recruiter configuration read from a CSV export of the recruiter sheet.

Each row describes one (recruiter, stage) pair. Rows are validated with
Pydantic at the boundary; the engine only ever sees ``RecruiterConfig``.
"""

import csv
import logging
import re
from datetime import time
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from ..domain.exceptions import ConfigurationError
from ..domain.models import RecruiterConfig

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = (
    "email",
    "external_user_id",
    "work_start",
    "work_end",
    "slot_length_minutes",
    "stage_ids",
)

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time_of_day(value: str) -> time:
    """
    Parse an ``HH:MM`` string.

    Raises:
        ValueError: If the value is not a valid time of day
    """
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Expected HH:MM, got '{value}'")
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Time of day out of range: '{value}'")
    return time(hour=hour, minute=minute)


class RecruiterRow(BaseModel):
    """One validated row of the recruiter sheet."""
    email: str
    external_user_id: str
    work_start: time
    work_end: time
    slot_length_minutes: int
    stage_ids: List[str]
    slot_title: str = ""

    @field_validator("email", "external_user_id")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("work_start", "work_end", mode="before")
    @classmethod
    def validate_time(cls, value):
        if isinstance(value, str):
            return parse_time_of_day(value)
        return value

    @field_validator("slot_length_minutes")
    @classmethod
    def validate_slot_length(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("slot_length_minutes must be greater than zero")
        return value

    @field_validator("stage_ids", mode="before")
    @classmethod
    def split_stage_ids(cls, value):
        """Accept ``"12, 13;14"`` style cells as well as lists."""
        if isinstance(value, str):
            value = re.split(r"[,;\s]+", value)
        stage_ids: List[str] = []
        for stage_id in value:
            stage_id = str(stage_id).strip()
            if stage_id and stage_id not in stage_ids:
                stage_ids.append(stage_id)
        if not stage_ids:
            raise ValueError("at least one stage id is required")
        return stage_ids


class RecruiterSheet:
    """
    Config provider backed by a CSV file.

    Header problems make the whole sheet unusable; row problems only drop
    the offending row.
    """

    def __init__(self, path: Path, logger_: Optional[logging.Logger] = None):
        self.path = path
        self._logger = logger_ or logger

    def load_recruiters(self) -> List[RecruiterConfig]:
        """
        Read, validate and merge all recruiter rows.

        Returns:
            Recruiters in sheet order, one entry per email

        Raises:
            ConfigurationError: If the sheet cannot be read or headers are missing
        """
        try:
            with open(self.path, "r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f)
                headers = [h.strip() for h in (reader.fieldnames or [])]
                missing = [h for h in REQUIRED_HEADERS if h not in headers]
                if missing:
                    raise ConfigurationError(
                        f"Recruiter sheet {self.path} is missing headers: {', '.join(missing)}"
                    )
                raw_rows = [
                    {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}
                    for row in reader
                ]
        except OSError as exc:
            raise ConfigurationError(f"Cannot read recruiter sheet {self.path}: {exc}") from exc
        except csv.Error as exc:
            raise ConfigurationError(f"Malformed recruiter sheet {self.path}: {exc}") from exc

        rows: List[RecruiterRow] = []
        # Row 1 is the header
        for line_number, raw in enumerate(raw_rows, start=2):
            try:
                rows.append(RecruiterRow(**raw))
            except ValidationError as exc:
                problems = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
                )
                self._logger.warning("Skipping recruiter row %d (%s): %s", line_number, raw.get("email", "?"), problems)

        return self._merge_rows(rows)

    def _merge_rows(self, rows: List[RecruiterRow]) -> List[RecruiterConfig]:
        merged: Dict[str, RecruiterConfig] = {}

        for row in rows:
            key = row.email.lower()
            existing = merged.get(key)

            if existing is None:
                merged[key] = RecruiterConfig(
                    email=row.email,
                    external_user_id=row.external_user_id,
                    work_start=row.work_start,
                    work_end=row.work_end,
                    slot_length_minutes=row.slot_length_minutes,
                    stage_ids=tuple(row.stage_ids),
                    slot_title=row.slot_title,
                )
                continue

            if (row.work_start, row.work_end, row.slot_length_minutes) != (
                existing.work_start, existing.work_end, existing.slot_length_minutes
            ):
                self._logger.warning(
                    "Recruiter %s has conflicting hours or slot length across rows; keeping the first row",
                    row.email,
                )

            stage_ids = list(existing.stage_ids)
            stage_ids.extend(s for s in row.stage_ids if s not in stage_ids)
            merged[key] = RecruiterConfig(
                email=existing.email,
                external_user_id=existing.external_user_id,
                work_start=existing.work_start,
                work_end=existing.work_end,
                slot_length_minutes=existing.slot_length_minutes,
                stage_ids=tuple(stage_ids),
                slot_title=existing.slot_title or row.slot_title,
            )

        return list(merged.values())
