"""
Google Calendar Connector
Free/busy lookup and event management against the Google Calendar API.

Access tokens are obtained by the frontend OAuth flow and stored through
the calendar token endpoint; this connector only consumes them.
"""
import logging
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone

import httpx

from dialdesk.domain.models.calendar import BusyInterval
from dialdesk.infrastructure.connectors.base import ConnectorFactory
from dialdesk.infrastructure.connectors.calendar.base import CalendarProvider, CalendarEvent
from dialdesk.infrastructure.upstream import raise_for_upstream, timeout_error, transport_error
from dialdesk.utils.time_utils import parse_iso_datetime, to_iso_z

logger = logging.getLogger(__name__)

SYSTEM = "calendar"


def _parse_event_time(value: Dict[str, Any]) -> Optional[datetime]:
    """Timed events carry dateTime; all-day events carry date."""
    if "dateTime" in value:
        return parse_iso_datetime(value["dateTime"])
    if "date" in value:
        try:
            return datetime.fromisoformat(value["date"]).replace(tzinfo=timezone.utc)
        except ValueError:
            return None
    return None


class GoogleCalendarConnector(CalendarProvider):
    """
    Google Calendar integration using a stored OAuth access token.

    All operations target the owner's primary calendar.
    """

    API_BASE_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(self, owner: str, api_base_url: Optional[str] = None, **kwargs):
        super().__init__(owner=owner, **kwargs)
        self.api_base_url = (api_base_url or self.API_BASE_URL).rstrip("/")

    @property
    def provider_name(self) -> str:
        return "google"

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {**self._get_auth_headers(), "Content-Type": "application/json"}
        async with self._http_client() as client:
            try:
                response = await client.request(
                    method,
                    f"{self.api_base_url}{path}",
                    headers=headers,
                    **kwargs
                )
            except httpx.TimeoutException as e:
                raise timeout_error(SYSTEM, e)
            except httpx.HTTPError as e:
                raise transport_error(SYSTEM, e)

            raise_for_upstream(response, SYSTEM)
            return response.json()

    async def query_free_busy(
        self,
        time_min: datetime,
        time_max: datetime
    ) -> List[BusyInterval]:
        """Busy intervals on the primary calendar."""
        body = {
            "timeMin": to_iso_z(time_min),
            "timeMax": to_iso_z(time_max),
            "items": [{"id": "primary"}]
        }
        data = await self._request("POST", "/freeBusy", json=body)

        busy = []
        for item in data.get("calendars", {}).get("primary", {}).get("busy", []):
            start = parse_iso_datetime(item.get("start"))
            end = parse_iso_datetime(item.get("end"))
            if start and end:
                busy.append(BusyInterval(start_utc=start, end_utc=end))

        logger.debug(f"Free/busy returned {len(busy)} busy interval(s)")
        return busy

    async def create_event(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: Optional[str] = None,
        attendees: Optional[List[str]] = None
    ) -> CalendarEvent:
        """Create a Google Calendar event."""
        event_body = {
            "summary": title,
            "start": {"dateTime": to_iso_z(start_time)},
            "end": {"dateTime": to_iso_z(end_time)}
        }

        if description:
            event_body["description"] = description

        if attendees:
            event_body["attendees"] = [{"email": email} for email in attendees]

        data = await self._request("POST", "/calendars/primary/events", json=event_body)

        return CalendarEvent(
            id=data["id"],
            title=data.get("summary", title),
            description=data.get("description"),
            start_time=_parse_event_time(data.get("start", {})) or start_time,
            end_time=_parse_event_time(data.get("end", {})) or end_time,
            attendees=[a["email"] for a in data.get("attendees", []) if "email" in a],
            metadata={"htmlLink": data.get("htmlLink")}
        )

    async def list_events(
        self,
        start_time: datetime,
        max_results: int = 10
    ) -> List[CalendarEvent]:
        """Upcoming single events ordered by start time."""
        params = {
            "timeMin": to_iso_z(start_time),
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime"
        }
        data = await self._request("GET", "/calendars/primary/events", params=params)

        events = []
        for item in data.get("items", []):
            start = item.get("start", {})
            events.append(CalendarEvent(
                id=item.get("id"),
                title=item.get("summary", ""),
                description=item.get("description"),
                start_time=_parse_event_time(start),
                end_time=_parse_event_time(item.get("end", {})),
                all_day="dateTime" not in start,
                attendees=[a["email"] for a in item.get("attendees", []) if "email" in a],
                metadata={"htmlLink": item.get("htmlLink")}
            ))

        return events


# Register with factory
ConnectorFactory.register("google", GoogleCalendarConnector)
