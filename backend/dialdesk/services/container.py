"""
Service Container
Process-wide wiring of clients, repositories and services.

Built once in the application lifespan and closed on shutdown.
"""
import logging
from dataclasses import dataclass

from supabase import Client

from dialdesk.core.config import ConfigManager, Settings
from dialdesk.domain.services.dispatch_pool import DispatchPool
from dialdesk.domain.services.entity_locks import EntityLockRegistry
from dialdesk.domain.services.schedule_window import ScheduleWindowCalculator
from dialdesk.infrastructure.connectors.encryption import TokenEncryptionService
from dialdesk.infrastructure.storage.repositories import (
    CalendarAccountRepository,
    CallRepository,
    CampaignRepository,
    PhoneRepository,
)
from dialdesk.infrastructure.telephony.twilio_provisioning import TwilioProvisioningClient
from dialdesk.infrastructure.voice.vapi_client import VoicePlatformClient
from dialdesk.services.calendar_service import CalendarService
from dialdesk.services.call_dispatcher import CallDispatcher
from dialdesk.services.campaign_service import CampaignService
from dialdesk.services.phone_reconciler import PhoneReconciler

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    supabase: Client
    schedule: ScheduleWindowCalculator
    calls: CallRepository
    campaigns: CampaignService
    phones: PhoneReconciler
    calendar: CalendarService
    voice_client: VoicePlatformClient
    twilio_client: TwilioProvisioningClient

    @classmethod
    def build(cls, settings: Settings, config: ConfigManager, supabase: Client) -> "ServiceContainer":
        policy = config.get_dispatch_policy()
        locks = EntityLockRegistry()

        voice_client = VoicePlatformClient(
            api_key=settings.vapi_api_key,
            base_url=settings.vapi_base_url,
            timeout=policy.call_timeout_seconds
        )
        twilio_client = TwilioProvisioningClient(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token
        )

        call_repo = CallRepository(supabase)
        phone_repo = PhoneRepository(supabase)

        campaigns = CampaignService(
            dispatcher=CallDispatcher(voice_client, policy.call_timeout_seconds),
            calls=call_repo,
            campaigns=CampaignRepository(supabase),
            phones=phone_repo,
            pool=DispatchPool(
                max_concurrency=policy.max_concurrency,
                rate_limit_per_minute=policy.rate_limit_per_minute
            ),
            locks=locks
        )
        phones = PhoneReconciler(
            voice=voice_client,
            twilio=twilio_client,
            phones=phone_repo,
            locks=locks
        )
        calendar = CalendarService(
            accounts=CalendarAccountRepository(supabase),
            encryption=TokenEncryptionService(
                settings.connector_encryption_key,
                settings.old_encryption_keys
            ),
            provider=config.get("calendar.provider", "google"),
            api_base_url=settings.google_calendar_api_url,
            slot_duration_minutes=int(config.get("calendar.slot_duration_minutes", 30)),
            meeting_title=config.get("calendar.meeting_title", "Discovery call"),
            events_limit=int(config.get("calendar.upcoming_events_limit", 10))
        )

        logger.info(
            f"Services wired (dispatch concurrency={policy.max_concurrency}, "
            f"rate limit={policy.rate_limit_per_minute}/min)"
        )
        return cls(
            settings=settings,
            supabase=supabase,
            schedule=ScheduleWindowCalculator(
                int(config.get("scheduling.max_window_minutes", 60))
            ),
            calls=call_repo,
            campaigns=campaigns,
            phones=phones,
            calendar=calendar,
            voice_client=voice_client,
            twilio_client=twilio_client
        )

    async def close(self) -> None:
        await self.voice_client.close()
