"""
Call Dispatcher
Issues call-creation requests to the voice platform, one call at a time
or as a platform-side campaign.
"""
import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, TypeVar, Union

from dialdesk.domain.errors import UpstreamError
from dialdesk.domain.models.call import ProviderCall
from dialdesk.domain.models.campaign import ProviderCampaign
from dialdesk.domain.models.lead import Lead
from dialdesk.domain.models.schedule import ScheduleWindow
from dialdesk.infrastructure.voice.vapi_client import VoicePlatformClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

Customer = Union[Lead, Dict[str, Any]]


def _customer_payload(customer: Customer) -> Dict[str, Any]:
    if isinstance(customer, Lead):
        return customer.to_customer()
    return dict(customer)


class CallDispatcher:
    """
    Every request is bounded by ``call_timeout_seconds``; expiry surfaces as
    UpstreamError(504). Provider errors propagate unchanged.
    """

    def __init__(self, client: VoicePlatformClient, call_timeout_seconds: float = 30.0):
        self.client = client
        self.call_timeout_seconds = call_timeout_seconds

    async def _bounded(self, operation: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self.call_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Voice platform request exceeded {self.call_timeout_seconds}s")
            raise UpstreamError(
                status=504,
                provider_body={"error": "timeout"},
                message="Voice platform request timed out"
            )

    async def dispatch_one(
        self,
        assistant_id: str,
        phone_id: str,
        customer: Customer,
        schedule: Optional[ScheduleWindow] = None
    ) -> ProviderCall:
        """Create a single outbound call (immediate, or scheduled within the window)."""
        payload: Dict[str, Any] = {
            "assistantId": assistant_id,
            "phoneNumberId": phone_id,
            "customer": _customer_payload(customer),
        }
        if schedule:
            payload["schedulePlan"] = schedule.to_schedule_plan()

        call = await self._bounded(self.client.create_call(payload))
        logger.info(f"Call {call.id} created (status={call.status})")
        return call

    async def dispatch_many(
        self,
        name: str,
        phone_id: str,
        customers: List[Customer],
        assistant_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
        schedule: Optional[ScheduleWindow] = None
    ) -> ProviderCampaign:
        """Hand a whole customer list to the platform, which fans out itself."""
        payload: Dict[str, Any] = {
            "name": name,
            "phoneNumberId": phone_id,
            "customers": [_customer_payload(c) for c in customers],
        }
        if assistant_id:
            payload["assistantId"] = assistant_id
        if workflow_id:
            payload["workflowId"] = workflow_id
        if schedule:
            payload["schedulePlan"] = schedule.to_schedule_plan()

        campaign = await self._bounded(self.client.create_campaign(payload))
        logger.info(
            f"Campaign {campaign.id} created with {len(campaign.calls)} call(s) "
            f"for {len(customers)} customer(s)"
        )
        return campaign

    async def fetch_campaign(self, campaign_id: str) -> ProviderCampaign:
        return await self._bounded(self.client.get_campaign(campaign_id))
