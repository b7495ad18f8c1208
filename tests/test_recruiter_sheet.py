"""
Tests for reading recruiter rows from the CSV sheet.
"""

import logging
from datetime import time

import pytest

from slotsync.adapters.recruiter_sheet import RecruiterSheet, parse_time_of_day
from slotsync.domain.exceptions import ConfigurationError

HEADER = "email,external_user_id,work_start,work_end,slot_length_minutes,stage_ids,slot_title\n"


def write_sheet(tmp_path, body: str, header: str = HEADER):
    path = tmp_path / "recruiters.csv"
    path.write_text(header + body, encoding="utf-8")
    return path


class TestParseTimeOfDay:
    """Tests for parse_time_of_day."""

    def test_valid(self):
        assert parse_time_of_day("9:30") == time(9, 30)
        assert parse_time_of_day(" 17:00 ") == time(17, 0)

    @pytest.mark.parametrize("value", ["9am", "24:00", "12:60", "", "12"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_time_of_day(value)


class TestRecruiterSheet:
    """Tests for RecruiterSheet."""

    def test_loads_valid_rows(self, tmp_path):
        path = write_sheet(
            tmp_path,
            "alice@example.com,u-1,09:00,17:00,30,\"s1, s2\",Interview with Alice\n"
            "bob@example.com,u-2,10:00,16:30,45,s3,\n",
        )

        recruiters = RecruiterSheet(path).load_recruiters()

        assert [r.email for r in recruiters] == ["alice@example.com", "bob@example.com"]
        alice = recruiters[0]
        assert alice.external_user_id == "u-1"
        assert alice.work_start == time(9, 0)
        assert alice.work_end == time(17, 0)
        assert alice.slot_length_minutes == 30
        assert alice.stage_ids == ("s1", "s2")
        assert alice.slot_title == "Interview with Alice"
        assert recruiters[1].slot_length_minutes == 45

    def test_invalid_rows_are_skipped_with_warning(self, tmp_path, caplog):
        path = write_sheet(
            tmp_path,
            "bad-time@example.com,u-1,9am,17:00,30,s1,\n"
            "bad-length@example.com,u-2,09:00,17:00,0,s1,\n"
            "no-stage@example.com,u-3,09:00,17:00,30,,\n"
            ",u-4,09:00,17:00,30,s1,\n"
            "good@example.com,u-5,09:00,17:00,30,s1,\n",
        )

        with caplog.at_level(logging.WARNING):
            recruiters = RecruiterSheet(path).load_recruiters()

        assert [r.email for r in recruiters] == ["good@example.com"]
        assert caplog.text.count("Skipping recruiter row") == 4

    def test_rows_for_same_recruiter_are_merged(self, tmp_path, caplog):
        path = write_sheet(
            tmp_path,
            "alice@example.com,u-1,09:00,17:00,30,s1,Interview\n"
            "Alice@example.com,u-1,09:00,17:00,30,\"s2;s1\",\n"
            "alice@example.com,u-1,08:00,12:00,30,s3,\n",
        )

        with caplog.at_level(logging.WARNING):
            recruiters = RecruiterSheet(path).load_recruiters()

        assert len(recruiters) == 1
        assert recruiters[0].stage_ids == ("s1", "s2", "s3")
        assert recruiters[0].work_start == time(9, 0)
        assert "conflicting hours" in caplog.text

    def test_missing_headers_abort_loading(self, tmp_path):
        path = write_sheet(tmp_path, "alice@example.com,u-1\n", header="email,external_user_id\n")

        with pytest.raises(ConfigurationError, match="missing headers"):
            RecruiterSheet(path).load_recruiters()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            RecruiterSheet(tmp_path / "nope.csv").load_recruiters()

    def test_extra_columns_are_ignored(self, tmp_path):
        path = write_sheet(
            tmp_path,
            "alice@example.com,u-1,09:00,17:00,30,s1,Interview,ignored,also ignored\n",
        )

        recruiters = RecruiterSheet(path).load_recruiters()

        assert recruiters[0].slot_title == "Interview"
