"""
Voice Platform Client
Async HTTP client for the Vapi voice-call platform.

Only the fields the orchestration core depends on are translated into
domain models. Every non-2xx response becomes an UpstreamError carrying
the provider status and body verbatim.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from dialdesk.domain.models.call import ProviderCall
from dialdesk.domain.models.campaign import ProviderCampaign
from dialdesk.domain.models.phone import PlatformPhone
from dialdesk.infrastructure.upstream import raise_for_upstream, timeout_error, transport_error

logger = logging.getLogger(__name__)

SYSTEM = "voice_platform"


class VoicePlatformClient:
    """
    Thin wrapper around the platform REST API.

    One AsyncClient is shared for the process lifetime; call close() on
    shutdown.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.vapi.ai",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not api_key:
            logger.warning("VAPI_API_KEY not set - voice platform calls will be rejected")
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise timeout_error(SYSTEM, e)
        except httpx.HTTPError as e:
            raise transport_error(SYSTEM, e)

        raise_for_upstream(response, SYSTEM)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Calls

    async def create_call(self, payload: Dict[str, Any]) -> ProviderCall:
        data = await self._request("POST", "/call", json=payload)
        return ProviderCall.from_payload(data)

    # Campaigns

    async def create_campaign(self, payload: Dict[str, Any]) -> ProviderCampaign:
        data = await self._request("POST", "/campaign", json=payload)
        return ProviderCampaign.from_payload(data)

    async def get_campaign(self, campaign_id: str) -> ProviderCampaign:
        data = await self._request("GET", f"/campaign/{campaign_id}")
        return ProviderCampaign.from_payload(data)

    # Phone numbers

    async def import_twilio_number(
        self,
        number: str,
        twilio_account_sid: str,
        twilio_auth_token: str,
        assistant_id: Optional[str] = None
    ) -> PlatformPhone:
        """Register a Twilio-owned number with the platform."""
        payload = {
            "provider": "twilio",
            "number": number,
            "twilioAccountSid": twilio_account_sid,
            "twilioAuthToken": twilio_auth_token,
        }
        if assistant_id:
            payload["assistantId"] = assistant_id

        logger.info(f"Importing number {number} into voice platform")
        data = await self._request("POST", "/phone-number", json=payload)
        return PlatformPhone.from_payload(data)

    async def get_phone_number(self, phone_id: str) -> PlatformPhone:
        data = await self._request("GET", f"/phone-number/{phone_id}")
        return PlatformPhone.from_payload(data)

    async def update_phone_number(self, phone_id: str, payload: Dict[str, Any]) -> PlatformPhone:
        data = await self._request("PATCH", f"/phone-number/{phone_id}", json=payload)
        return PlatformPhone.from_payload(data)

    async def delete_phone_number(self, phone_id: str) -> None:
        await self._request("DELETE", f"/phone-number/{phone_id}")

    async def close(self) -> None:
        await self._client.aclose()
