"""
REST client for the remote interview scheduler's availability slots.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import SlotStoreError
from ..domain.models import Slot, TimeRange

logger = logging.getLogger(__name__)


class SlotStoreClient:
    """
    Client for listing, creating and deleting interview slots.

    Listing is paginated: each response carries ``next_page`` until the last
    page, where it is null. Create and delete failures are logged and
    reported as ``False``; they are never retried here.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str,
        timezone: str = "Europe/Berlin",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timezone = timezone
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json"
        }

    def list_slots(self, stage_id: str, day: DateTime) -> List[Slot]:
        """
        List every slot (booked and unbooked) of a stage on one day.

        Raises:
            SlotStoreError: If a page cannot be fetched or parsed
        """
        url = f"{self.base_url}/stages/{stage_id}/slots"
        page: Optional[int] = 1
        slots: List[Slot] = []

        while page:
            params = {"date": day.format("YYYY-MM-DD"), "page": page}
            try:
                response = self.session.get(url, headers=self.headers, params=params, timeout=self.timeout)
                response.raise_for_status()
                data = response.json()
            except requests.exceptions.RequestException as e:
                raise SlotStoreError(f"Failed to list slots of stage {stage_id}: {e}") from e
            except ValueError as e:
                raise SlotStoreError(f"Unparsable slot listing for stage {stage_id}: {e}") from e

            for item in data.get("slots", []):
                slot = self._parse_slot(item)
                if slot is not None:
                    slots.append(slot)

            page = data.get("next_page")

        return slots

    def create_slots(
        self,
        owner_id: str,
        window: TimeRange,
        stage_ids: Sequence[str],
        slot_length_minutes: int,
        title: str
    ) -> bool:
        """
        Ask the scheduler to fill a free window with slots for the given stages.

        Returns:
            True if the scheduler accepted the request
        """
        payload = {
            "owner_id": owner_id,
            "start": window.start.in_timezone("UTC").to_iso8601_string(),
            "end": window.end.in_timezone("UTC").to_iso8601_string(),
            "stage_ids": list(stage_ids),
            "slot_length_minutes": slot_length_minutes,
            "title": title,
        }

        try:
            response = self.session.post(
                f"{self.base_url}/slots",
                headers=self.headers,
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("Creating slots %s for %s failed: %s", window, owner_id, e)
            return False

        return True

    def delete_slot(self, slot_id: str) -> bool:
        """
        Delete one slot.

        Returns:
            True if the scheduler confirmed the deletion
        """
        try:
            response = self.session.delete(
                f"{self.base_url}/slots/{slot_id}",
                headers=self.headers,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("Deleting slot %s failed: %s", slot_id, e)
            return False

        return True

    def _parse_slot(self, item: Dict[str, Any]) -> Optional[Slot]:
        """
        Parse one slot from a listing page.

        Item format:
        {"id": "s-1", "start": "...Z", "end": "...Z", "booked_count": 0, "owner_id": "u-7"}
        """
        try:
            slot = Slot(
                id=str(item["id"]),
                start=pendulum.parse(item["start"]).in_timezone(self.timezone),
                end=pendulum.parse(item["end"]).in_timezone(self.timezone),
                booked_count=int(item.get("booked_count") or 0),
                owner_id=str(item.get("owner_id") or ""),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Could not parse slot %s: %s", item.get("id", "?"), e)
            return None

        if slot.end <= slot.start:
            logger.warning("Ignoring slot %s with non-positive duration", slot.id)
            return None

        return slot
