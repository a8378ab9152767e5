"""
Supabase Repositories
Local system-of-record access for calls, campaigns, phones and calendar accounts.

Every write is independent; there are no multi-row transactions. Any
driver failure surfaces as LocalStoreError.
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from dialdesk.domain.errors import LocalStoreError
from dialdesk.domain.models.call import CallRecord
from dialdesk.domain.models.campaign import Campaign
from dialdesk.domain.models.phone import PhoneNumber, PhoneState

logger = logging.getLogger(__name__)


class SupabaseRepository:
    """Shared table access and error translation."""

    table_name: str = ""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _table(self):
        return self.supabase.table(self.table_name)

    def _fail(self, action: str, error: Exception) -> LocalStoreError:
        logger.error(f"{self.table_name}: {action} failed: {error}")
        return LocalStoreError(f"Failed to {action} {self.table_name}")


class CallRepository(SupabaseRepository):
    table_name = "calls"

    async def insert(self, record: CallRecord) -> Dict[str, Any]:
        try:
            response = self._table().insert(record.to_row()).execute()
        except Exception as e:
            raise self._fail("insert into", e)
        return response.data[0] if response.data else record.to_row()

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            response = self._table().select("*").eq(
                "user_id", user_id
            ).order("timestamp", desc=True).execute()
        except Exception as e:
            raise self._fail("read", e)
        return response.data or []


class CampaignRepository(SupabaseRepository):
    table_name = "campaigns"

    async def insert(self, campaign: Campaign) -> Campaign:
        try:
            response = self._table().insert(campaign.to_row()).execute()
        except Exception as e:
            raise self._fail("insert into", e)
        if not response.data:
            return campaign
        return Campaign.from_row(response.data[0])

    async def update(self, campaign: Campaign) -> Campaign:
        try:
            response = self._table().update(campaign.to_row()).eq(
                "id", campaign.id
            ).execute()
        except Exception as e:
            raise self._fail("update", e)
        if not response.data:
            return campaign
        return Campaign.from_row(response.data[0])

    async def list_for_user(self, user_id: str) -> List[Campaign]:
        try:
            response = self._table().select("*").eq(
                "user_id", user_id
            ).order("created_at", desc=True).execute()
        except Exception as e:
            raise self._fail("read", e)
        return [Campaign.from_row(row) for row in response.data or []]

    async def get_for_user(self, user_id: str, campaign_id: str) -> Optional[Campaign]:
        try:
            response = self._table().select("*").eq(
                "user_id", user_id
            ).eq("id", campaign_id).execute()
        except Exception as e:
            raise self._fail("read", e)
        if not response.data:
            return None
        return Campaign.from_row(response.data[0])


class PhoneRepository(SupabaseRepository):
    table_name = "phones"

    async def insert(self, phone: PhoneNumber) -> PhoneNumber:
        try:
            response = self._table().insert(phone.to_row()).execute()
        except Exception as e:
            raise self._fail("insert into", e)
        if not response.data:
            return phone
        return PhoneNumber.from_row(response.data[0])

    async def list_for_user(self, user_id: str) -> List[PhoneNumber]:
        try:
            response = self._table().select("*").eq(
                "user_id", user_id
            ).order("created_at", desc=True).execute()
        except Exception as e:
            raise self._fail("read", e)
        return [PhoneNumber.from_row(row) for row in response.data or []]

    async def get_for_user(self, user_id: str, phone_ref: str) -> Optional[PhoneNumber]:
        """Look a phone up by platform phone id first, then by local row id."""
        try:
            response = self._table().select("*").eq(
                "user_id", user_id
            ).eq("phone_id", phone_ref).execute()
            if not response.data:
                response = self._table().select("*").eq(
                    "user_id", user_id
                ).eq("id", phone_ref).execute()
        except Exception as e:
            raise self._fail("read", e)
        if not response.data:
            return None
        return PhoneNumber.from_row(response.data[0])

    async def find_by_number(self, user_id: str, number: str) -> Optional[PhoneNumber]:
        try:
            response = self._table().select("*").eq(
                "user_id", user_id
            ).eq("number", number).execute()
        except Exception as e:
            raise self._fail("read", e)
        if not response.data:
            return None
        return PhoneNumber.from_row(response.data[0])

    async def mark_state(self, row_id: str, state: PhoneState, **fields: Any) -> Optional[PhoneNumber]:
        """Move a row to a new state. Returns None if the row no longer exists."""
        update = {**fields, "state": state.value}
        try:
            response = self._table().update(update).eq("id", row_id).execute()
        except Exception as e:
            raise self._fail("update", e)
        if not response.data:
            return None
        return PhoneNumber.from_row(response.data[0])

    async def mark_configured(self, row_id: str, phone_id: str, number: str) -> PhoneNumber:
        """Complete an orphaned row once the platform import succeeded."""
        phone = await self.mark_state(
            row_id, PhoneState.CONFIGURED, phone_id=phone_id, number=number
        )
        if phone is None:
            raise LocalStoreError(f"Phone row {row_id} disappeared during update")
        return phone

    async def set_fallback_number(self, row_id: str, fallback_number: str) -> None:
        try:
            self._table().update(
                {"fallback_number": fallback_number}
            ).eq("id", row_id).execute()
        except Exception as e:
            raise self._fail("update", e)

    async def delete(self, user_id: str, row_id: str) -> bool:
        try:
            response = self._table().delete().eq(
                "user_id", user_id
            ).eq("id", row_id).execute()
        except Exception as e:
            raise self._fail("delete from", e)
        return bool(response.data)


class CalendarAccountRepository(SupabaseRepository):
    """
    Stored calendar credentials, unique per (email, provider).

    Rows hold the encrypted token; callers decrypt.
    """
    table_name = "calendar_accounts"

    async def upsert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._table().upsert(row, on_conflict="email,provider").execute()
        except Exception as e:
            raise self._fail("upsert into", e)
        return response.data[0] if response.data else row

    async def get(self, email: str, provider: str = "google") -> Optional[Dict[str, Any]]:
        try:
            response = self._table().select("*").eq(
                "email", email
            ).eq("provider", provider).execute()
        except Exception as e:
            raise self._fail("read", e)
        return response.data[0] if response.data else None
