"""
Calendar Provider Base Class
Abstract interface for calendar integrations.
"""
from abc import abstractmethod
from typing import List, Dict, Any, Optional
from datetime import datetime

from dialdesk.domain.models.calendar import BusyInterval
from dialdesk.infrastructure.connectors.base import BaseConnector, ConnectorCapability
from dialdesk.utils.time_utils import to_iso_z


class CalendarEvent:
    """Represents a calendar event."""

    def __init__(
        self,
        id: Optional[str] = None,
        title: str = "",
        description: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        all_day: bool = False,
        attendees: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.id = id
        self.title = title
        self.description = description
        self.start_time = start_time
        self.end_time = end_time
        self.all_day = all_day
        self.attendees = attendees or []
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_time": to_iso_z(self.start_time) if self.start_time else None,
            "end_time": to_iso_z(self.end_time) if self.end_time else None,
            "all_day": self.all_day,
            "attendees": self.attendees,
            "metadata": self.metadata
        }


class CalendarProvider(BaseConnector):
    """
    Abstract base class for calendar providers.

    Extends BaseConnector with calendar-specific methods.
    """

    @property
    def connector_type(self) -> str:
        return "calendar"

    @property
    def capabilities(self) -> List[ConnectorCapability]:
        return [
            ConnectorCapability.CREATE_EVENT,
            ConnectorCapability.LIST_EVENTS,
            ConnectorCapability.GET_AVAILABILITY
        ]

    @abstractmethod
    async def query_free_busy(
        self,
        time_min: datetime,
        time_max: datetime
    ) -> List[BusyInterval]:
        """Busy intervals of the primary calendar within [time_min, time_max]."""
        pass

    @abstractmethod
    async def create_event(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: Optional[str] = None,
        attendees: Optional[List[str]] = None
    ) -> CalendarEvent:
        """
        Create a calendar event.

        Returns:
            Created CalendarEvent with provider's event ID
        """
        pass

    @abstractmethod
    async def list_events(
        self,
        start_time: datetime,
        max_results: int = 10
    ) -> List[CalendarEvent]:
        """Upcoming events starting from start_time, ordered by start."""
        pass
