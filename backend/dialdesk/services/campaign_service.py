"""
Campaign Service
Bulk outbound calling, either fanned out here (one platform call per lead)
or handed to the platform as a native campaign.

Client-side fan-out flow:
1. Check the caller's phone is configured and usable
2. Dispatch every lead through the DispatchPool (bounded, rate limited)
3. Persist each successful call as soon as it completes
4. Derive one aggregate status from per-lead outcomes
"""
import logging
from typing import Any, Dict, List, Optional

from dialdesk.domain.errors import (
    CampaignNotFoundError,
    PhoneNotFoundError,
    PhoneNotReadyError,
    UpstreamError,
    ValidationCode,
    ValidationError,
)
from dialdesk.domain.models.call import CallAttempt, CallRecord, ProviderCall
from dialdesk.domain.models.campaign import Campaign, CampaignRunResult
from dialdesk.domain.models.lead import Lead
from dialdesk.domain.models.schedule import ScheduleWindow
from dialdesk.domain.services.dispatch_pool import DispatchPool
from dialdesk.domain.services.entity_locks import EntityLockRegistry
from dialdesk.infrastructure.storage.repositories import (
    CallRepository,
    CampaignRepository,
    PhoneRepository,
)
from dialdesk.services.call_dispatcher import CallDispatcher
from dialdesk.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class CampaignService:
    """Orchestrates campaign runs and single calls for a user."""

    def __init__(
        self,
        dispatcher: CallDispatcher,
        calls: CallRepository,
        campaigns: CampaignRepository,
        phones: PhoneRepository,
        pool: DispatchPool,
        locks: EntityLockRegistry
    ):
        self.dispatcher = dispatcher
        self.calls = calls
        self.campaigns = campaigns
        self.phones = phones
        self.pool = pool
        self.locks = locks

    async def _require_usable_phone(self, user_id: str, phone_id: str) -> None:
        phone = await self.phones.get_for_user(user_id, phone_id)
        if phone is None:
            raise PhoneNotFoundError()
        if not phone.is_usable_for_calling():
            raise PhoneNotReadyError(
                f"Phone {phone.number or phone_id} is not ready for calling (state={phone.state.value})"
            )

    async def default_phone_id(self, user_id: str) -> str:
        """Platform id of the user's most recently added usable phone."""
        for phone in await self.phones.list_for_user(user_id):
            if phone.is_usable_for_calling():
                return phone.phone_id
        raise PhoneNotFoundError("No configured phone number found for user")

    async def _record_call(
        self,
        user_id: str,
        lead: Lead,
        call: ProviderCall,
        assistant_id: Optional[str] = None,
        campaign_id: Optional[str] = None
    ) -> None:
        await self.calls.insert(CallRecord(
            user_id=user_id,
            assistant_id=assistant_id,
            call_id=call.id,
            campaign_id=campaign_id,
            name=lead.name,
            email=lead.email,
            phone=lead.phone_e164,
            status=call.status,
            cost=call.cost,
            timestamp=utc_now()
        ))

    async def run(
        self,
        user_id: str,
        assistant_id: str,
        phone_id: str,
        leads: List[Lead],
        schedule: Optional[ScheduleWindow] = None
    ) -> CampaignRunResult:
        """
        Call every lead and report per-lead outcomes.

        A rejected lead never aborts the run. A local store failure does.
        """
        if not leads:
            raise ValidationError(ValidationCode.EMPTY_LEAD_SET, "No valid leads found")

        await self._require_usable_phone(user_id, phone_id)

        async def _attempt(lead: Lead) -> CallAttempt:
            try:
                call = await self.dispatcher.dispatch_one(assistant_id, phone_id, lead, schedule)
            except UpstreamError as e:
                logger.warning(f"Call to {lead.phone_e164} failed with {e.status}")
                return CallAttempt.failed(lead, e.provider_body or e.message, e.status)

            await self._record_call(user_id, lead, call, assistant_id=assistant_id)
            return CallAttempt.called(lead, call)

        async with self.locks.hold(f"campaign:{user_id}:{phone_id}"):
            logger.info(f"Dispatching {len(leads)} lead(s) via phone {phone_id}")
            attempts = await self.pool.run(leads, _attempt)

        result = CampaignRunResult.from_attempts(attempts)
        logger.info(
            f"Campaign run finished: {result.status.value} "
            f"({result.called} called, {result.failed} failed)"
        )
        return result

    async def place_call(
        self,
        user_id: str,
        assistant_id: str,
        phone_id: str,
        customer: Lead,
        schedule: Optional[ScheduleWindow] = None
    ) -> ProviderCall:
        """Single outbound call. Provider errors propagate to the caller."""
        await self._require_usable_phone(user_id, phone_id)
        call = await self.dispatcher.dispatch_one(assistant_id, phone_id, customer, schedule)
        await self._record_call(user_id, customer, call, assistant_id=assistant_id)
        return call

    async def create_campaign(
        self,
        user_id: str,
        name: str,
        phone_id: str,
        customers: List[Lead],
        assistant_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
        schedule: Optional[ScheduleWindow] = None
    ) -> Campaign:
        """Create a platform-side campaign and mirror it locally."""
        if bool(assistant_id) == bool(workflow_id):
            raise ValidationError(
                ValidationCode.INVALID_REQUEST,
                "Provide exactly one of assistantId or workflowId"
            )
        if not customers:
            raise ValidationError(ValidationCode.EMPTY_LEAD_SET, "No valid customers provided")

        await self._require_usable_phone(user_id, phone_id)

        provider = await self.dispatcher.dispatch_many(
            name=name,
            phone_id=phone_id,
            customers=customers,
            assistant_id=assistant_id,
            workflow_id=workflow_id,
            schedule=schedule
        )

        campaign = await self.campaigns.insert(Campaign(
            user_id=user_id,
            provider_campaign_id=provider.id,
            name=name,
            phone_number_id=phone_id,
            assistant_id=assistant_id,
            workflow_id=workflow_id,
            schedule_plan=schedule.to_schedule_plan() if schedule else provider.schedule_plan,
            calls=provider.calls,
            provider_status=provider.status,
            total_leads=len(customers)
        ))

        await self._record_campaign_calls(user_id, campaign, customers, provider.calls)

        logger.info(
            f"Campaign '{name}' stored: {campaign.status} "
            f"({campaign.called}/{campaign.total_leads} call(s) created)"
        )
        return campaign

    async def _record_campaign_calls(
        self,
        user_id: str,
        campaign: Campaign,
        customers: List[Lead],
        calls: Dict[str, str]
    ) -> None:
        by_number = {lead.phone_e164: lead for lead in customers}
        for call_id, number in calls.items():
            lead = by_number.get(number)
            await self.calls.insert(CallRecord(
                user_id=user_id,
                assistant_id=campaign.assistant_id,
                call_id=call_id,
                campaign_id=campaign.id,
                name=lead.name if lead else None,
                email=lead.email if lead else None,
                phone=number or None,
                status="queued",
                timestamp=utc_now()
            ))

    async def list_campaigns(self, user_id: str) -> List[Campaign]:
        return await self.campaigns.list_for_user(user_id)

    async def get_campaign(self, user_id: str, campaign_id: str) -> Dict[str, Any]:
        """
        Local campaign merged with a live platform refresh when available.

        A successful refresh is written back, so the stored status settles
        once the platform reports the campaign ended.
        """
        campaign = await self.campaigns.get_for_user(user_id, campaign_id)
        if campaign is None:
            raise CampaignNotFoundError()

        live = None
        if campaign.provider_campaign_id:
            try:
                refreshed = await self.dispatcher.fetch_campaign(campaign.provider_campaign_id)
            except UpstreamError as e:
                logger.warning(
                    f"Live refresh of campaign {campaign.provider_campaign_id} failed: {e.status}"
                )
            else:
                live = refreshed.raw
                previous_status = campaign.provider_status
                new_calls = campaign.refresh_from(refreshed)
                if new_calls or campaign.provider_status != previous_status:
                    campaign = await self.campaigns.update(campaign)
                    await self._record_campaign_calls(user_id, campaign, [], new_calls)

        return {"campaign": campaign.to_response(), "live": live}
