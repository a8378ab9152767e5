"""
Phone State Reconciler
Keeps a phone number consistent across the telephony provider, the voice
platform and the local store.

Step order is fixed for every multi-store operation:
    purchase: record (provisioning) -> provision -> import -> configure
    import:   lookup -> import -> insert
    delete:   mark deleting -> platform delete (best effort) -> local delete
    inbound:  platform update -> local upsert

The local store is the source of truth for which numbers a user owns.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from dialdesk.domain.errors import (
    LocalStoreError,
    PhoneNotFoundError,
    PhoneNotReadyError,
    ReconciliationInconsistency,
    UpstreamError,
    UpstreamUpdateFailed,
    ValidationCode,
    ValidationError,
)
from dialdesk.domain.models.phone import (
    DeletionResult,
    InboundSettings,
    PhoneNumber,
    PhoneState,
    PlatformPhone,
    ProviderNumber,
)
from dialdesk.domain.services.entity_locks import EntityLockRegistry
from dialdesk.infrastructure.storage.repositories import PhoneRepository
from dialdesk.infrastructure.telephony.twilio_provisioning import TwilioProvisioningClient
from dialdesk.infrastructure.voice.vapi_client import VoicePlatformClient
from dialdesk.utils.phone_numbers import normalize_phone_number

logger = logging.getLogger(__name__)


def _require_e164(number: Optional[str], field: str = "phoneNumber") -> str:
    if not number:
        raise ValidationError(ValidationCode.INVALID_REQUEST, f"{field} is required")
    try:
        return normalize_phone_number(number)
    except ValueError as e:
        raise ValidationError(ValidationCode.INVALID_PHONE, f"Invalid {field}: {e}")


def _number_key(number: str) -> str:
    return f"phone:{number}"


def _platform_key(phone_id: str) -> str:
    return f"platform:{phone_id}"


class PhoneReconciler:
    """Phone lifecycle operations for a user."""

    def __init__(
        self,
        voice: VoicePlatformClient,
        twilio: TwilioProvisioningClient,
        phones: PhoneRepository,
        locks: EntityLockRegistry
    ):
        self.voice = voice
        self.twilio = twilio
        self.phones = phones
        self.locks = locks

    # Listing

    async def list_phones(self, user_id: str) -> List[Dict[str, Any]]:
        """Local rows merged with live platform details, fetched concurrently."""
        rows = await self.phones.list_for_user(user_id)
        return list(await asyncio.gather(*[self._with_live_details(row) for row in rows]))

    async def _with_live_details(self, phone: PhoneNumber) -> Dict[str, Any]:
        entry = phone.model_dump(mode="json")
        entry.update({
            "display_number": phone.number or phone.phone_id,
            "vapi_details": None,
            "assistant_id": None,
            "usable": False,
        })

        if phone.state != PhoneState.CONFIGURED or not phone.phone_id:
            entry["status"] = phone.state.value
            return entry

        try:
            live = await self.voice.get_phone_number(phone.phone_id)
        except UpstreamError as e:
            logger.warning(f"Live details for phone {phone.phone_id} unavailable ({e.status})")
            entry["status"] = "unknown"
            return entry

        entry.update({
            "display_number": live.number or entry["display_number"],
            "vapi_details": live.raw,
            "status": live.status or "unknown",
            "assistant_id": live.assistant_id,
            "usable": phone.is_usable_for_calling(live.number),
        })
        return entry

    async def search_available(self, country: str = "US") -> List[ProviderNumber]:
        return await self.twilio.search_available(country)

    async def list_existing(self) -> List[ProviderNumber]:
        return await self.twilio.list_incoming()

    # Creation

    async def _ensure_not_local(self, user_id: str, number: str) -> None:
        existing = await self.phones.find_by_number(user_id, number)
        if existing is not None:
            raise ValidationError(
                ValidationCode.INVALID_REQUEST,
                f"Phone number {number} is already added (state={existing.state.value})"
            )

    async def _import(self, number: str) -> PlatformPhone:
        try:
            return await self.voice.import_twilio_number(
                number,
                twilio_account_sid=self.twilio.account_sid,
                twilio_auth_token=self.twilio.auth_token
            )
        except UpstreamError as e:
            raise e.with_step("import")

    def _unrecorded(
        self,
        phone: PhoneNumber,
        step: str,
        error: LocalStoreError,
        **fields: Any
    ) -> ReconciliationInconsistency:
        """Report a number that exists upstream but whose latest state could not be stored."""
        reported = phone.model_copy(update=fields)
        logger.error(
            f"{reported.number}: {reported.state.value} upstream "
            f"(sid={reported.provider_sid}, platform={reported.phone_id}) "
            f"but the local row could not be written: {error}"
        )
        return ReconciliationInconsistency(
            step=step,
            message=f"Number is {reported.state.value} but could not be recorded locally.",
            provider_sid=reported.provider_sid,
            phone=reported.model_dump(mode="json")
        )

    async def purchase(self, user_id: str, number: str) -> Dict[str, Any]:
        """
        Buy a number, import it into the voice platform and record it.

        The local row is written before the purchase and advanced after each
        step, so a bought number is never left without a trace.

        Raises:
            UpstreamError: step="provision" if the purchase itself failed
            ReconciliationInconsistency: the number was bought but could not
                be imported or recorded; the row is kept for retry_import
        """
        number = _require_e164(number)

        async with self.locks.hold(_number_key(number)):
            await self._ensure_not_local(user_id, number)

            pending = await self.phones.insert(PhoneNumber(
                user_id=user_id,
                number=number,
                state=PhoneState.PROVISIONING
            ))

            logger.info(f"Purchase {number}: provisioning (row {pending.id})")
            try:
                provisioned = await self.twilio.provision(number)
            except UpstreamError as e:
                await self.phones.delete(user_id, pending.id)
                raise e.with_step("provision")

            logger.info(f"Purchase {number}: provisioned as {provisioned.sid}, importing")
            try:
                orphan = await self.phones.mark_state(
                    pending.id, PhoneState.PROVISIONED_NOT_IMPORTED, provider_sid=provisioned.sid
                )
                if orphan is None:
                    raise LocalStoreError(f"Phone row {pending.id} disappeared during update")
            except LocalStoreError as e:
                raise self._unrecorded(
                    pending, "record", e,
                    provider_sid=provisioned.sid,
                    state=PhoneState.PROVISIONED_NOT_IMPORTED
                )

            try:
                platform = await self._import(number)
            except UpstreamError as e:
                logger.warning(
                    f"Purchase {number}: import failed ({e.status}); "
                    f"orphan row {orphan.id} kept for retry"
                )
                raise ReconciliationInconsistency(
                    step="import",
                    message="Number purchased but not imported into the voice platform. Retry the import.",
                    provider_sid=provisioned.sid,
                    phone=orphan.model_dump(mode="json"),
                    cause=e
                )

            if platform.number and platform.number != number:
                try:
                    held = await self.phones.mark_state(
                        orphan.id, PhoneState.PROVISIONED_NOT_IMPORTED, phone_id=platform.id
                    )
                except LocalStoreError as e:
                    raise self._unrecorded(orphan, "verify", e, phone_id=platform.id)
                held = held or orphan.model_copy(update={"phone_id": platform.id})
                logger.warning(
                    f"Purchase {number}: platform reports {platform.number}; "
                    f"row {held.id} held back from calling"
                )
                raise ReconciliationInconsistency(
                    step="verify",
                    message=f"Voice platform registered {platform.number} instead of {number}.",
                    provider_sid=provisioned.sid,
                    phone=held.model_dump(mode="json")
                )

            try:
                phone = await self.phones.mark_configured(orphan.id, platform.id, number)
            except LocalStoreError as e:
                raise self._unrecorded(
                    orphan, "record", e,
                    phone_id=platform.id,
                    state=PhoneState.IMPORTED_NOT_LOCAL
                )
            logger.info(f"Purchase {number}: configured as {platform.id}")

        return {
            "phone": phone.model_dump(mode="json"),
            "provisionedNumber": provisioned.to_response(),
            "vapiPhone": platform.raw,
        }

    async def retry_import(self, user_id: str, phone_ref: str) -> PhoneNumber:
        """Resume a purchase that stopped after provisioning."""
        phone = await self.phones.get_for_user(user_id, phone_ref)
        if phone is None:
            raise PhoneNotFoundError()
        if phone.state != PhoneState.PROVISIONED_NOT_IMPORTED:
            raise ValidationError(
                ValidationCode.INVALID_REQUEST,
                f"Phone is {phone.state.value}; only numbers awaiting import can be retried"
            )

        async with self.locks.hold(_number_key(phone.number)):
            if phone.phone_id:
                try:
                    platform = await self.voice.get_phone_number(phone.phone_id)
                except UpstreamError as e:
                    raise e.with_step("fetch")
            else:
                platform = await self._import(phone.number)

            if platform.number and platform.number != phone.number:
                raise ReconciliationInconsistency(
                    step="verify",
                    message=f"Voice platform registered {platform.number} instead of {phone.number}.",
                    provider_sid=phone.provider_sid,
                    phone=phone.model_dump(mode="json")
                )

            try:
                updated = await self.phones.mark_configured(phone.id, platform.id, phone.number)
            except LocalStoreError as e:
                raise self._unrecorded(
                    phone, "record", e,
                    phone_id=platform.id,
                    state=PhoneState.IMPORTED_NOT_LOCAL
                )
            logger.info(f"Retry import {phone.number}: configured as {platform.id}")
            return updated

    async def import_existing(self, user_id: str, number: str) -> Dict[str, Any]:
        """Import a number the telephony account already owns."""
        number = _require_e164(number)

        async with self.locks.hold(_number_key(number)):
            await self._ensure_not_local(user_id, number)

            try:
                owned = await self.twilio.find_incoming(number)
            except UpstreamError as e:
                raise e.with_step("lookup")
            if owned is None:
                raise PhoneNotFoundError(f"{number} is not owned by the telephony account")

            platform = await self._import(number)
            imported = PhoneNumber(
                user_id=user_id,
                phone_id=platform.id,
                provider_sid=owned.sid,
                number=platform.number or number,
                state=PhoneState.CONFIGURED
            )
            try:
                phone = await self.phones.insert(imported)
            except LocalStoreError as e:
                raise self._unrecorded(imported, "record", e, state=PhoneState.IMPORTED_NOT_LOCAL)
            logger.info(f"Imported existing number {number} as {platform.id}")

        return {"phone": phone.model_dump(mode="json"), "vapiPhone": platform.raw}

    async def link(self, user_id: str, platform_phone_id: str) -> PhoneNumber:
        """Record a number that already exists on the voice platform."""
        if not platform_phone_id:
            raise ValidationError(ValidationCode.INVALID_REQUEST, "Phone ID is required")

        async with self.locks.hold(_platform_key(platform_phone_id)):
            existing = await self.phones.get_for_user(user_id, platform_phone_id)
            if existing is not None:
                return existing

            try:
                platform = await self.voice.get_phone_number(platform_phone_id)
            except UpstreamError as e:
                raise e.with_step("fetch")

            provider_sid = None
            if platform.number:
                try:
                    owned = await self.twilio.find_incoming(platform.number)
                except UpstreamError as e:
                    raise e.with_step("lookup")
                provider_sid = owned.sid if owned else None

            phone = await self.phones.insert(PhoneNumber(
                user_id=user_id,
                phone_id=platform.id,
                provider_sid=provider_sid,
                number=platform.number,
                state=PhoneState.CONFIGURED
            ))
            logger.info(f"Linked platform phone {platform.id}")
            return phone

    # Changes

    async def delete(self, user_id: str, phone_ref: str) -> DeletionResult:
        """
        Remove a number from the platform (best effort) and the local store.

        A platform failure never keeps the number in the user's list.
        """
        phone = await self.phones.get_for_user(user_id, phone_ref)
        if phone is None:
            raise PhoneNotFoundError()

        keys = [
            _number_key(phone.number) if phone.number else None,
            _platform_key(phone.phone_id) if phone.phone_id else None,
        ]
        async with self.locks.hold(*keys):
            if await self.phones.mark_state(phone.id, PhoneState.DELETING) is None:
                return DeletionResult(deleted=False, vapi_deleted=False)

            vapi_deleted = True
            if phone.phone_id:
                try:
                    await self.voice.delete_phone_number(phone.phone_id)
                except UpstreamError as e:
                    vapi_deleted = False
                    logger.warning(
                        f"Platform delete of {phone.phone_id} failed ({e.status}); "
                        f"removing local row anyway"
                    )

            deleted = await self.phones.delete(user_id, phone.id)

        logger.info(f"Deleted phone {phone.id} (platform={vapi_deleted})")
        return DeletionResult(deleted=deleted, vapi_deleted=vapi_deleted)

    async def update_inbound(
        self,
        user_id: str,
        phone_ref: str,
        settings: InboundSettings
    ) -> Dict[str, Any]:
        """Push inbound routing to the platform, then store the fallback locally."""
        if settings.is_empty():
            raise ValidationError(ValidationCode.NOTHING_TO_UPDATE, "Nothing to update")
        if settings.fallback_number:
            settings = settings.model_copy(update={
                "fallback_number": _require_e164(settings.fallback_number, "fallbackNumber")
            })

        phone = await self.phones.get_for_user(user_id, phone_ref)
        if phone is None:
            raise PhoneNotFoundError()
        if not phone.phone_id:
            raise PhoneNotReadyError("Phone is not imported into the voice platform yet")

        async with self.locks.hold(_platform_key(phone.phone_id)):
            try:
                platform = await self.voice.update_phone_number(
                    phone.phone_id,
                    settings.to_platform_payload()
                )
            except UpstreamError as e:
                raise UpstreamUpdateFailed(
                    status=e.status,
                    provider_body=e.provider_body,
                    system=e.system,
                    step="update_inbound",
                    message="Failed to update inbound settings"
                )

            if settings.fallback_number:
                await self.phones.set_fallback_number(phone.id, settings.fallback_number)

        logger.info(f"Inbound settings updated for {phone.phone_id}")
        return {
            "phone_id": phone.phone_id,
            "assistant_id": platform.assistant_id,
            "workflow_id": platform.workflow_id,
            "fallback_number": settings.fallback_number or phone.fallback_number,
        }
