"""
Calendar Provider Package
"""
from dialdesk.infrastructure.connectors.calendar.base import CalendarProvider, CalendarEvent
from dialdesk.infrastructure.connectors.calendar.google_calendar import GoogleCalendarConnector

__all__ = ["CalendarProvider", "CalendarEvent", "GoogleCalendarConnector"]
