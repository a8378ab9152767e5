"""
Calendar Service
Availability checks and meeting booking on a user's connected calendar.

Used by the voice agent's tool calls during a live conversation, so busy
intervals are always fetched fresh.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import httpx

# Importing the package registers the calendar connectors with the factory
from dialdesk.infrastructure.connectors.calendar import CalendarProvider
from dialdesk.domain.errors import (
    CalendarNotConnectedError,
    CredentialExpired,
    UpstreamError,
    ValidationCode,
    ValidationError,
)
from dialdesk.domain.models.calendar import CalendarAccount
from dialdesk.domain.services.slot_finder import find_earliest_slot, parse_time_ranges
from dialdesk.infrastructure.connectors.base import ConnectorFactory
from dialdesk.infrastructure.connectors.encryption import TokenEncryptionError, TokenEncryptionService
from dialdesk.infrastructure.storage.repositories import CalendarAccountRepository
from dialdesk.utils.time_utils import parse_iso_datetime, utc_now

logger = logging.getLogger(__name__)


class CalendarService:
    """Calendar operations keyed by the account owner's email."""

    def __init__(
        self,
        accounts: CalendarAccountRepository,
        encryption: TokenEncryptionService,
        provider: str = "google",
        api_base_url: Optional[str] = None,
        slot_duration_minutes: int = 30,
        meeting_title: str = "Discovery call",
        events_limit: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.accounts = accounts
        self.encryption = encryption
        self.provider = provider
        self.api_base_url = api_base_url
        self.slot_duration = timedelta(minutes=slot_duration_minutes)
        self.meeting_title = meeting_title
        self.events_limit = events_limit
        self._transport = transport
        self._clock = clock

    async def _connect(self, email: str) -> CalendarProvider:
        """Connector primed with the stored token. Fails fast on expiry."""
        if not email:
            raise ValidationError(ValidationCode.INVALID_REQUEST, "email is required")

        row = await self.accounts.get(email, self.provider)
        if row is None:
            raise CalendarNotConnectedError()

        try:
            token = self.encryption.decrypt(row.get("access_token_encrypted", ""))
        except TokenEncryptionError:
            logger.warning("Stored calendar token could not be decrypted; reconnect required")
            raise CredentialExpired()

        connector = ConnectorFactory.create(
            self.provider,
            owner=email,
            api_base_url=self.api_base_url,
            transport=self._transport
        )
        connector.set_access_token(token, parse_iso_datetime(row.get("expiry_date")))

        if connector.is_token_expired(self._clock()):
            raise CredentialExpired()
        return connector

    @staticmethod
    def _translate(error: UpstreamError) -> Exception:
        if error.status == 401:
            return CredentialExpired()
        return error

    async def check_availability(self, email: str, ranges: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Earliest free slot across the caller's ranges plus the busy intervals seen."""
        valid_ranges = parse_time_ranges(ranges)
        connector = await self._connect(email)

        overall_start = min(r.start_utc for r in valid_ranges)
        overall_end = max(r.end_utc for r in valid_ranges)
        try:
            busy = await connector.query_free_busy(overall_start, overall_end)
        except UpstreamError as e:
            raise self._translate(e)

        slot = find_earliest_slot(valid_ranges, busy, self.slot_duration)
        busy_slots = [interval.to_dict() for interval in busy]

        if slot is None:
            minutes = int(self.slot_duration.total_seconds() // 60)
            return {
                "available": False,
                "message": f"No {minutes}-minute slots available in provided ranges",
                "busySlots": busy_slots
            }

        return {"available": True, "slot": slot.to_dict(), "busySlots": busy_slots}

    async def book(self, email: str, start_time: str, end_time: str) -> Dict[str, Any]:
        """Create the meeting. The credential is re-validated first."""
        start = parse_iso_datetime(start_time)
        end = parse_iso_datetime(end_time)
        if start is None or end is None or start >= end:
            raise ValidationError(
                ValidationCode.INVALID_REQUEST,
                "startTime and endTime must be ISO-8601 timestamps with startTime before endTime"
            )

        connector = await self._connect(email)
        try:
            event = await connector.create_event(self.meeting_title, start, end)
        except UpstreamError as e:
            raise self._translate(e)

        logger.info(f"Booked meeting {event.id}")
        return {"success": True, "eventId": event.id}

    async def save_tokens(
        self,
        provider: str,
        access_token: str,
        expires_in: Optional[int],
        token_type: Optional[str],
        email: str
    ) -> CalendarAccount:
        """Store (or replace) the access token for an (email, provider) pair."""
        if provider != "google":
            raise ValidationError(ValidationCode.INVALID_REQUEST, "Only Google Calendar is supported")
        if not access_token or not email:
            raise ValidationError(ValidationCode.INVALID_REQUEST, "access_token and email are required")

        expiry = self._clock() + timedelta(seconds=expires_in) if expires_in else None
        account = CalendarAccount(
            email=email,
            provider=provider,
            access_token=access_token,
            token_type=token_type or "Bearer",
            expiry_date=expiry
        )

        await self.accounts.upsert({
            "email": account.email,
            "provider": account.provider,
            "access_token_encrypted": self.encryption.encrypt(access_token),
            "token_type": account.token_type,
            "expiry_date": expiry.isoformat() if expiry else None,
        })
        logger.info(f"Calendar tokens saved for provider {provider}")
        return account

    async def list_events(self, email: str) -> List[Dict[str, Any]]:
        """Next upcoming events on the primary calendar."""
        connector = await self._connect(email)
        try:
            events = await connector.list_events(self._clock(), max_results=self.events_limit)
        except UpstreamError as e:
            raise self._translate(e)
        return [event.to_dict() for event in events]
