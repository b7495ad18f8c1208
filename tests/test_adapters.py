"""
Tests for the local state adapters and the HTTP clients.
"""

from unittest.mock import MagicMock, patch

import pendulum
import pytest
import requests

from slotsync.adapters.graph_authenticator import GraphAuthenticator
from slotsync.adapters.graph_client import GraphCalendarClient
from slotsync.adapters.slot_store_client import SlotStoreClient
from slotsync.adapters.snapshot_cache import FileSnapshotCache
from slotsync.adapters.state_store import JsonStateStore
from slotsync.adapters.sync_lock import FileSyncLock
from slotsync.domain.exceptions import AuthenticationError, CalendarAPIError, SlotStoreError
from slotsync.domain.models import CalendarSnapshot, SnapshotEvent, TimeRange

TZ = "Europe/Berlin"


def make_response(payload=None, status_error=None):
    response = MagicMock()
    response.json.return_value = payload
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestFileSnapshotCache:
    """Tests for FileSnapshotCache."""

    snapshot = CalendarSnapshot(
        recruiter_key="alice@example.com",
        events={"E1": SnapshotEvent(title="Sync", start_millis=1_000, end_millis=2_000)},
    )

    def test_put_and_get(self, tmp_path):
        cache = FileSnapshotCache(tmp_path, ttl_seconds=60, clock=FakeClock())

        cache.put("alice@example.com", self.snapshot)

        assert cache.get("alice@example.com") == self.snapshot
        assert cache.get("bob@example.com") is None

    def test_expired_entries_are_absent(self, tmp_path):
        clock = FakeClock()
        cache = FileSnapshotCache(tmp_path, ttl_seconds=60, clock=clock)
        cache.put("alice@example.com", self.snapshot)

        clock.now += 61

        assert cache.get("alice@example.com") is None
        assert cache.age_seconds("alice@example.com") == 61

    def test_ttl_override(self, tmp_path):
        clock = FakeClock()
        cache = FileSnapshotCache(tmp_path, ttl_seconds=60, clock=clock)
        cache.put("alice@example.com", self.snapshot, ttl_seconds=3600)

        clock.now += 120

        assert cache.get("alice@example.com") == self.snapshot

    def test_corrupt_entry_is_absent(self, tmp_path):
        cache = FileSnapshotCache(tmp_path, clock=FakeClock())
        cache.put("alice@example.com", self.snapshot)
        for path in tmp_path.glob("*.json"):
            path.write_text("{not json", encoding="utf-8")

        assert cache.get("alice@example.com") is None


class TestFileSyncLock:
    """Tests for FileSyncLock."""

    def test_second_holder_is_refused_until_release(self, tmp_path):
        path = tmp_path / "sync.lock"
        first = FileSyncLock(path)
        second = FileSyncLock(path, sleep=lambda _: None)

        assert first.try_acquire(1)
        assert not second.try_acquire(0)

        first.release()

        assert second.try_acquire(0)
        assert second.is_held
        second.release()
        assert not second.is_held

    def test_release_without_acquire_is_harmless(self, tmp_path):
        FileSyncLock(tmp_path / "sync.lock").release()


class TestJsonStateStore:
    """Tests for JsonStateStore."""

    def test_batch_round_trip(self, tmp_path):
        store = JsonStateStore(tmp_path / "state.json")

        assert store.load_batch() is None
        store.save_batch(3)
        assert JsonStateStore(tmp_path / "state.json").load_batch() == 3

    def test_invalid_values_are_ignored(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text('{"full_sync.current_batch": "three"}', encoding="utf-8")

        assert JsonStateStore(path).load_batch() is None

    def test_unreadable_file_starts_fresh(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("garbage", encoding="utf-8")
        store = JsonStateStore(path)

        store.save_batch(2)

        assert store.load_batch() == 2


class TestSlotStoreClient:
    """Tests for SlotStoreClient."""

    def _client(self, session):
        return SlotStoreClient("https://scheduler.example.com/api/", "token", timezone=TZ, session=session)

    def test_list_slots_follows_pages(self):
        session = MagicMock()
        session.get.side_effect = [
            make_response({
                "slots": [{"id": 1, "start": "2024-11-25T08:00:00Z", "end": "2024-11-25T08:30:00Z",
                           "booked_count": 0, "owner_id": "u-1"}],
                "next_page": 2,
            }),
            make_response({
                "slots": [
                    {"id": "2", "start": "2024-11-25T09:00:00Z", "end": "2024-11-25T09:30:00Z",
                     "booked_count": 1, "owner_id": "u-1"},
                    {"id": "broken", "start": "not a date"},
                ],
                "next_page": None,
            }),
        ]

        slots = self._client(session).list_slots("s1", pendulum.parse("2024-11-25", tz=TZ))

        assert [s.id for s in slots] == ["1", "2"]
        assert slots[0].start == pendulum.parse("2024-11-25 09:00", tz=TZ)
        assert slots[1].is_booked
        first_call = session.get.call_args_list[0]
        assert first_call.args[0] == "https://scheduler.example.com/api/stages/s1/slots"
        assert first_call.kwargs["params"] == {"date": "2024-11-25", "page": 1}
        assert session.get.call_args_list[1].kwargs["params"]["page"] == 2

    def test_list_slots_failure_raises(self):
        session = MagicMock()
        session.get.return_value = make_response(status_error=requests.exceptions.HTTPError("502"))

        with pytest.raises(SlotStoreError):
            self._client(session).list_slots("s1", pendulum.parse("2024-11-25", tz=TZ))

    def test_create_slots_posts_window(self):
        session = MagicMock()
        session.post.return_value = make_response({})
        window = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz=TZ),
            end=pendulum.parse("2024-11-25 10:00", tz=TZ),
        )

        assert self._client(session).create_slots("u-1", window, ("s1", "s2"), 30, "Interview")

        payload = session.post.call_args.kwargs["json"]
        assert payload["owner_id"] == "u-1"
        assert payload["start"].startswith("2024-11-25T08:00:00")
        assert payload["end"].startswith("2024-11-25T09:00:00")
        assert payload["stage_ids"] == ["s1", "s2"]
        assert payload["slot_length_minutes"] == 30

    def test_create_and_delete_failures_are_reported(self):
        session = MagicMock()
        error = requests.exceptions.HTTPError("500")
        session.post.return_value = make_response(status_error=error)
        session.delete.return_value = make_response(status_error=error)
        client = self._client(session)
        window = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz=TZ),
            end=pendulum.parse("2024-11-25 10:00", tz=TZ),
        )

        assert not client.create_slots("u-1", window, ("s1",), 30, "")
        assert not client.delete_slot("slot-1")
        assert session.delete.call_args.args[0] == "https://scheduler.example.com/api/slots/slot-1"


class StubAuthenticator:
    def get_access_token(self) -> str:
        return "token"


class TestGraphCalendarClient:
    """Tests for GraphCalendarClient."""

    def test_lists_events_across_pages(self):
        session = MagicMock()
        next_link = "https://graph.microsoft.com/v1.0/users/alice/calendarView?$skiptoken=abc"
        session.get.side_effect = [
            make_response({
                "value": [{
                    "id": "E1",
                    "subject": "Interview",
                    "isAllDay": False,
                    "isOrganizer": True,
                    "responseStatus": {"response": "organizer"},
                    "organizer": {"emailAddress": {"address": "alice@example.com"}},
                    "start": {"dateTime": "2024-11-25T08:00:00.0000000", "timeZone": "UTC"},
                    "end": {"dateTime": "2024-11-25T09:00:00.0000000", "timeZone": "UTC"},
                }],
                "@odata.nextLink": next_link,
            }),
            make_response({
                "value": [
                    {
                        "id": "E2",
                        "subject": "Vacation",
                        "isAllDay": True,
                        "responseStatus": {"response": "none"},
                        "start": {"dateTime": "2024-11-26T00:00:00.0000000", "timeZone": "UTC"},
                        "end": {"dateTime": "2024-11-27T00:00:00.0000000", "timeZone": "UTC"},
                    },
                    {"id": "E3", "isCancelled": True},
                    {"id": "E4", "subject": "Broken"},
                ],
            }),
        ]
        client = GraphCalendarClient(StubAuthenticator(), timezone=TZ, session=session)

        events = client.list_busy_events(
            "alice@example.com",
            pendulum.parse("2024-11-25", tz=TZ),
            pendulum.parse("2024-11-28", tz=TZ),
        )

        assert [e.id for e in events] == ["E1", "E2"]
        timed, all_day = events
        assert timed.start == pendulum.parse("2024-11-25 09:00", tz=TZ)
        assert timed.is_organizer
        assert timed.organizer == "alice@example.com"
        assert all_day.is_all_day
        assert all_day.start == pendulum.parse("2024-11-26 00:00", tz=TZ)
        assert all_day.end == pendulum.parse("2024-11-27 00:00", tz=TZ)

        second_call = session.get.call_args_list[1]
        assert second_call.args[0] == next_link
        assert second_call.kwargs["params"] is None
        assert session.get.call_args_list[0].kwargs["headers"]["Authorization"] == "Bearer token"

    def test_http_error_raises(self):
        session = MagicMock()
        session.get.return_value = make_response(status_error=requests.exceptions.HTTPError("401"))
        client = GraphCalendarClient(StubAuthenticator(), timezone=TZ, session=session)

        with pytest.raises(CalendarAPIError):
            client.list_busy_events(
                "alice@example.com",
                pendulum.parse("2024-11-25", tz=TZ),
                pendulum.parse("2024-11-26", tz=TZ),
            )

    def test_unparsable_payload_raises(self):
        session = MagicMock()
        response = make_response()
        response.json.side_effect = ValueError("no json")
        session.get.return_value = response
        client = GraphCalendarClient(StubAuthenticator(), timezone=TZ, session=session)

        with pytest.raises(CalendarAPIError, match="Unparsable"):
            client.list_busy_events(
                "alice@example.com",
                pendulum.parse("2024-11-25", tz=TZ),
                pendulum.parse("2024-11-26", tz=TZ),
            )


class TestGraphAuthenticator:
    """Tests for GraphAuthenticator."""

    def test_missing_secret_is_rejected(self):
        with pytest.raises(AuthenticationError, match="client secret"):
            GraphAuthenticator("client", "tenant", "")

    @patch("slotsync.adapters.graph_authenticator.msal.ConfidentialClientApplication")
    def test_token_is_acquired_for_the_app(self, app_class, tmp_path):
        app_class.return_value.acquire_token_for_client.return_value = {"access_token": "tok"}
        authenticator = GraphAuthenticator("client", "tenant", "secret", cache_file=tmp_path / "cache.json")

        assert authenticator.get_access_token() == "tok"
        app_class.return_value.acquire_token_for_client.assert_called_once_with(
            scopes=["https://graph.microsoft.com/.default"]
        )
        assert app_class.call_args.kwargs["authority"] == "https://login.microsoftonline.com/tenant"

    @patch("slotsync.adapters.graph_authenticator.msal.ConfidentialClientApplication")
    def test_failed_acquisition_raises(self, app_class):
        app_class.return_value.acquire_token_for_client.return_value = {
            "error": "invalid_client",
            "error_description": "AADSTS7000215: Invalid client secret",
        }
        authenticator = GraphAuthenticator("client", "tenant", "wrong")

        with pytest.raises(AuthenticationError, match="AADSTS7000215"):
            authenticator.get_access_token()
