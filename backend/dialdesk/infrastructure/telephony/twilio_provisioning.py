"""
Twilio Provisioning Client
Number search, purchase and lookup through the Twilio SDK.

The SDK is blocking, so every call runs in the default executor.
"""
import asyncio
import logging
from typing import Any, Callable, List, Optional

import requests
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from dialdesk.domain.errors import UpstreamError
from dialdesk.domain.models.phone import ProviderNumber
from dialdesk.infrastructure.upstream import timeout_error, transport_error

logger = logging.getLogger(__name__)

SYSTEM = "telephony"

# Twilio pages available numbers; one page is enough to choose from
SEARCH_LIMIT = 50


def _to_provider_number(record: Any) -> ProviderNumber:
    """ProviderNumber from an available or incoming phone number instance."""
    raw = {
        "sid": getattr(record, "sid", None),
        "phone_number": record.phone_number,
        "friendly_name": getattr(record, "friendly_name", None),
        "region": getattr(record, "region", None),
    }
    return ProviderNumber.from_payload(raw)


class TwilioProvisioningClient:
    """
    Telephony provider account operations.

    Requirements:
    - TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN environment variables
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        timeout: float = 30.0,
        client: Optional[Client] = None
    ):
        self.account_sid = account_sid or ""
        self.auth_token = auth_token or ""
        self._client = client
        if self._client is None and self.account_sid and self.auth_token:
            self._client = Client(
                self.account_sid,
                self.auth_token,
                http_client=TwilioHttpClient(timeout=timeout)
            )
        if self._client is None:
            logger.warning("Twilio credentials not configured - provisioning calls will fail")

    async def _call(self, description: str, operation: Callable[[Client], Any]) -> Any:
        if self._client is None:
            raise UpstreamError(
                status=503,
                provider_body={"error": "credentials not configured"},
                system=SYSTEM,
                message="Twilio credentials not configured"
            )

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, operation, self._client)
        except TwilioRestException as e:
            logger.error(f"Twilio {description} failed with {e.status}: {e.msg}")
            raise UpstreamError(
                status=e.status,
                provider_body={"code": e.code, "message": e.msg},
                system=SYSTEM
            )
        except requests.Timeout as e:
            raise timeout_error(SYSTEM, e)
        except (requests.RequestException, TwilioException) as e:
            raise transport_error(SYSTEM, e)

    async def search_available(self, country: str = "US") -> List[ProviderNumber]:
        """Local numbers available for purchase in a country."""
        records = await self._call(
            "available number search",
            lambda client: client.available_phone_numbers(country.upper()).local.list(limit=SEARCH_LIMIT)
        )
        return [_to_provider_number(record) for record in records]

    async def list_incoming(self) -> List[ProviderNumber]:
        """Numbers already owned by the account."""
        records = await self._call(
            "incoming number listing",
            lambda client: client.incoming_phone_numbers.list()
        )
        return [_to_provider_number(record) for record in records]

    async def find_incoming(self, number: str) -> Optional[ProviderNumber]:
        """Owned number matching ``number`` exactly, or None."""
        records = await self._call(
            "incoming number lookup",
            lambda client: client.incoming_phone_numbers.list(phone_number=number)
        )
        for record in records:
            if record.phone_number == number:
                return _to_provider_number(record)
        return None

    async def provision(self, number: str) -> ProviderNumber:
        """Purchase ``number`` into the account."""
        logger.info(f"Provisioning number {number}")
        record = await self._call(
            "number purchase",
            lambda client: client.incoming_phone_numbers.create(phone_number=number)
        )
        return _to_provider_number(record)
