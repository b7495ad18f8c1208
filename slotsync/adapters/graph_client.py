"""
Microsoft Graph API client for fetching recruiter calendar events.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError
from ..domain.models import CalendarEvent

logger = logging.getLogger(__name__)

_FRACTION_OVERFLOW = re.compile(r"(\.\d{6})\d+")


class TokenProvider(Protocol):
    def get_access_token(self) -> str:
        """Return a bearer token for Graph."""


class GraphCalendarClient:
    """
    Client for Microsoft Graph calendar operations.

    Uses the /users/{id}/calendarView endpoint, which expands recurring
    series into single occurrences inside the requested window.
    """

    GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"
    PAGE_SIZE = 100

    def __init__(
        self,
        authenticator: TokenProvider,
        timezone: str = "Europe/Berlin",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Graph API client.

        Args:
            authenticator: Source of access tokens
            timezone: IANA timezone events are converted into
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.authenticator = authenticator
        self.timezone = timezone
        self.timeout = timeout
        self.session = session or requests.Session()

    def list_busy_events(
        self,
        calendar_id: str,
        start_time: DateTime,
        end_time: DateTime
    ) -> List[CalendarEvent]:
        """
        List all events of a calendar overlapping a time window.

        Follows ``@odata.nextLink`` until Graph reports no further page.

        Args:
            calendar_id: Mailbox (email or user id) whose calendar is read
            start_time: Start of the time window
            end_time: End of the time window

        Returns:
            Events (not yet filtered) in the configured timezone

        Raises:
            CalendarAPIError: If any page cannot be fetched or parsed
        """
        url: Optional[str] = f"{self.GRAPH_API_ENDPOINT}/users/{calendar_id}/calendarView"
        params: Optional[Dict[str, Any]] = {
            "startDateTime": start_time.in_timezone("UTC").to_iso8601_string(),
            "endDateTime": end_time.in_timezone("UTC").to_iso8601_string(),
            "$top": self.PAGE_SIZE,
            "$select": "id,subject,start,end,isAllDay,isCancelled,isOrganizer,organizer,responseStatus",
        }
        headers = {
            "Authorization": f"Bearer {self.authenticator.get_access_token()}",
            "Prefer": 'outlook.timezone="UTC"',
        }

        events: List[CalendarEvent] = []

        while url:
            try:
                response = self.session.get(url, headers=headers, params=params, timeout=self.timeout)
                response.raise_for_status()
                data = response.json()
            except requests.exceptions.RequestException as e:
                raise CalendarAPIError(f"Failed to fetch calendar of {calendar_id}: {e}") from e
            except ValueError as e:
                raise CalendarAPIError(f"Unparsable calendar response for {calendar_id}: {e}") from e

            for item in data.get("value", []):
                event = self._parse_event(item)
                if event is not None:
                    events.append(event)

            # nextLink already carries the query string
            url = data.get("@odata.nextLink")
            params = None

        return events

    def _parse_event(self, item: Dict[str, Any]) -> Optional[CalendarEvent]:
        """
        Parse one calendarView item into our domain model.

        Item format:
        {
            "id": "AAMk...",
            "subject": "Interview",
            "isAllDay": false,
            "isCancelled": false,
            "isOrganizer": true,
            "organizer": {"emailAddress": {"address": "..."}},
            "responseStatus": {"response": "organizer"},
            "start": {"dateTime": "2024-11-25T09:00:00.0000000", "timeZone": "UTC"},
            "end": {"dateTime": "2024-11-25T10:00:00.0000000", "timeZone": "UTC"}
        }
        """
        if item.get("isCancelled"):
            return None

        try:
            is_all_day = bool(item.get("isAllDay", False))
            if is_all_day:
                start = self._parse_date(item["start"]["dateTime"])
                end = self._parse_date(item["end"]["dateTime"])
            else:
                start = self._parse_datetime(item["start"]["dateTime"], item["start"].get("timeZone", "UTC"))
                end = self._parse_datetime(item["end"]["dateTime"], item["end"].get("timeZone", "UTC"))

            return CalendarEvent(
                id=item["id"],
                title=item.get("subject") or "",
                start=start,
                end=end,
                is_all_day=is_all_day,
                is_organizer=bool(item.get("isOrganizer", False)),
                response_status=(item.get("responseStatus") or {}).get("response", "") or "",
                organizer=((item.get("organizer") or {}).get("emailAddress") or {}).get("address", "") or "",
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Could not parse calendar event %s: %s", item.get("id", "?"), e)
            return None

    def _parse_datetime(self, datetime_str: str, source_timezone: str) -> DateTime:
        """
        Parse a Graph datetime string to a pendulum DateTime in the configured timezone.

        Graph sends seven fractional digits, more than ISO parsers accept.
        """
        dt = pendulum.parse(_FRACTION_OVERFLOW.sub(r"\1", datetime_str), tz=source_timezone)

        if isinstance(dt, DateTime):
            return dt.in_timezone(self.timezone)

        raise ValueError(f"Could not parse datetime: {datetime_str}")

    def _parse_date(self, datetime_str: str) -> DateTime:
        """All-day events are floating: keep the calendar date, local midnight."""
        dt = pendulum.parse(datetime_str[:10], tz=self.timezone)

        if isinstance(dt, DateTime):
            return dt.start_of("day")

        raise ValueError(f"Could not parse date: {datetime_str}")
