"""
Unit Tests for Campaign Service
Client-side fan-out, platform campaigns and phone readiness checks.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from dialdesk.domain.errors import (
    CampaignNotFoundError,
    LocalStoreError,
    PhoneNotFoundError,
    PhoneNotReadyError,
    UpstreamError,
    ValidationCode,
    ValidationError,
)
from dialdesk.domain.models.call import AttemptOutcome, ProviderCall
from dialdesk.domain.models.campaign import AggregateStatus, Campaign, ProviderCampaign
from dialdesk.domain.models.lead import Lead
from dialdesk.domain.models.phone import PhoneNumber, PhoneState
from dialdesk.domain.services import lead_set_builder
from dialdesk.domain.services.dispatch_pool import DispatchPool
from dialdesk.domain.services.entity_locks import EntityLockRegistry
from dialdesk.services.campaign_service import CampaignService

USER = "user-1"

READY_PHONE = PhoneNumber(
    id="row-1",
    user_id=USER,
    phone_id="ph-1",
    provider_sid="PN1",
    number="+15550000000",
    state=PhoneState.CONFIGURED
)


def make_service(dispatcher=None, phone=READY_PHONE, max_concurrency=1):
    dispatcher = dispatcher or MagicMock()
    calls = MagicMock()
    calls.insert = AsyncMock(return_value={})
    campaigns = MagicMock()
    campaigns.insert = AsyncMock(side_effect=lambda c: c.model_copy(update={"id": "camp-row-1"}))
    campaigns.list_for_user = AsyncMock(return_value=[])
    campaigns.get_for_user = AsyncMock(return_value=None)
    campaigns.update = AsyncMock(side_effect=lambda c: c)
    phones = MagicMock()
    phones.get_for_user = AsyncMock(return_value=phone)
    phones.list_for_user = AsyncMock(return_value=[phone] if phone else [])

    service = CampaignService(
        dispatcher=dispatcher,
        calls=calls,
        campaigns=campaigns,
        phones=phones,
        pool=DispatchPool(max_concurrency=max_concurrency),
        locks=EntityLockRegistry()
    )
    return service, calls, campaigns, phones


def dispatcher_failing_for(*failing_numbers):
    async def dispatch_one(assistant_id, phone_id, customer, schedule=None):
        if customer.phone_e164 in failing_numbers:
            raise UpstreamError(status=400, provider_body={"message": "Invalid customer"})
        return ProviderCall(id=f"call-{customer.name}", status="queued", cost=0.05)

    dispatcher = MagicMock()
    dispatcher.dispatch_one = AsyncMock(side_effect=dispatch_one)
    return dispatcher


class TestRun:
    """Tests for CampaignService.run."""

    @pytest.mark.asyncio
    async def test_partial_success_with_dropped_lead(self):
        """Test Ana called, Bo dropped at build, Cy rejected by the platform."""
        leads = lead_set_builder.build([
            {"name": "Ana", "phone": "+15551234567", "email": "a@x.com"},
            {"name": "Bo", "phone": "bad-phone", "email": "b@x.com"},
            {"name": "Cy", "phone": "+15557654321", "email": "c@x.com"},
        ])
        service, calls, _, _ = make_service(dispatcher_failing_for("+15557654321"))

        result = await service.run(USER, "asst-1", "ph-1", leads)

        assert result.status == AggregateStatus.PARTIAL_SUCCESS
        assert result.total_leads == 2
        assert result.called == 1
        assert result.failed == 1

        response = result.to_response()
        assert response["status"] == "partial_success"
        assert response["results"][0]["status"] == "called"
        assert response["results"][1] == {
            "phone": "+15557654321",
            "name": "Cy",
            "status": "failed",
            "error": {"message": "Invalid customer"},
        }

        # Only the successful call is persisted
        calls.insert.assert_awaited_once()
        record = calls.insert.await_args.args[0]
        assert record.call_id == "call-Ana"
        assert record.phone == "+15551234567"
        assert record.assistant_id == "asst-1"

    @pytest.mark.asyncio
    async def test_all_called_is_success(self):
        """Test every lead accepted gives success."""
        leads = [Lead(name="A", phone_e164="+15551110001"), Lead(name="B", phone_e164="+15551110002")]
        service, calls, _, _ = make_service(dispatcher_failing_for(), max_concurrency=2)

        result = await service.run(USER, "asst-1", "ph-1", leads)

        assert result.status == AggregateStatus.SUCCESS
        assert [a.provider_call_id for a in result.results] == ["call-A", "call-B"]
        assert calls.insert.await_count == 2

    @pytest.mark.asyncio
    async def test_all_failed_is_failed(self):
        """Test no accepted lead gives failed."""
        leads = [Lead(name="A", phone_e164="+15551110001")]
        service, calls, _, _ = make_service(dispatcher_failing_for("+15551110001"))

        result = await service.run(USER, "asst-1", "ph-1", leads)

        assert result.status == AggregateStatus.FAILED
        assert result.results[0].outcome == AttemptOutcome.FAILED
        assert result.results[0].error_status == 400
        calls.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_leads_rejected_before_dispatch(self):
        """Test that an empty set never reaches the platform."""
        dispatcher = dispatcher_failing_for()
        service, _, _, phones = make_service(dispatcher)

        with pytest.raises(ValidationError) as exc_info:
            await service.run(USER, "asst-1", "ph-1", [])

        assert exc_info.value.code == ValidationCode.EMPTY_LEAD_SET
        dispatcher.dispatch_one.assert_not_awaited()
        phones.get_for_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_phone(self):
        """Test that a phone the user does not own is rejected."""
        service, _, _, _ = make_service(dispatcher_failing_for(), phone=None)

        with pytest.raises(PhoneNotFoundError):
            await service.run(USER, "asst-1", "ph-x", [Lead(phone_e164="+15551110001")])

    @pytest.mark.asyncio
    async def test_phone_not_ready(self):
        """Test that an orphaned phone cannot place calls."""
        orphan = READY_PHONE.model_copy(update={"state": PhoneState.PROVISIONED_NOT_IMPORTED})
        dispatcher = dispatcher_failing_for()
        service, _, _, _ = make_service(dispatcher, phone=orphan)

        with pytest.raises(PhoneNotReadyError):
            await service.run(USER, "asst-1", "ph-1", [Lead(phone_e164="+15551110001")])
        dispatcher.dispatch_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_local_store_failure_aborts(self):
        """Test that a failed call-row write is fatal for the run."""
        service, calls, _, _ = make_service(dispatcher_failing_for())
        calls.insert.side_effect = LocalStoreError("Failed to insert into calls")

        with pytest.raises(LocalStoreError):
            await service.run(USER, "asst-1", "ph-1", [Lead(phone_e164="+15551110001")])


class TestPlaceCall:
    """Tests for CampaignService.place_call."""

    @pytest.mark.asyncio
    async def test_records_call(self):
        """Test a single call is persisted."""
        service, calls, _, _ = make_service(dispatcher_failing_for())

        call = await service.place_call(USER, "asst-1", "ph-1", Lead(name="Ana", phone_e164="+15551234567"))

        assert call.id == "call-Ana"
        calls.insert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        """Test single-call provider errors reach the caller."""
        service, calls, _, _ = make_service(dispatcher_failing_for("+15551234567"))

        with pytest.raises(UpstreamError):
            await service.place_call(USER, "asst-1", "ph-1", Lead(phone_e164="+15551234567"))
        calls.insert.assert_not_awaited()


class TestCreateCampaign:
    """Tests for CampaignService.create_campaign."""

    def _dispatcher(self, calls=None):
        dispatcher = MagicMock()
        dispatcher.dispatch_many = AsyncMock(return_value=ProviderCampaign(
            id="vapi-camp-1",
            status="scheduled",
            calls=calls if calls is not None else {}
        ))
        return dispatcher

    @pytest.mark.asyncio
    async def test_scheduled_campaign_is_not_failed(self):
        """Test a scheduled campaign with no calls yet reports the platform status."""
        dispatcher = self._dispatcher()
        service, calls, campaigns, _ = make_service(dispatcher)
        customers = [
            Lead(name="Ana", phone_e164="+15551234567"),
            Lead(name="Cy", phone_e164="+15557654321"),
        ]

        campaign = await service.create_campaign(
            USER, "Spring", "ph-1", customers, assistant_id="asst-1"
        )

        assert campaign.id == "camp-row-1"
        assert campaign.provider_campaign_id == "vapi-camp-1"
        assert campaign.total_leads == 2
        assert campaign.failed == 0
        assert campaign.to_response()["status"] == "scheduled"

        row = campaigns.insert.await_args.args[0].to_row()
        assert row["aggregate_status"] is None
        assert row["failed"] == 0
        calls.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stores_call_rows_for_created_calls(self):
        """Test calls already created by the platform are mirrored locally."""
        dispatcher = self._dispatcher({"call-a": "+15551234567"})
        service, calls, _, _ = make_service(dispatcher)
        customers = [Lead(name="Ana", phone_e164="+15551234567")]

        await service.create_campaign(USER, "Spring", "ph-1", customers, assistant_id="asst-1")

        record = calls.insert.await_args.args[0]
        assert record.call_id == "call-a"
        assert record.campaign_id == "camp-row-1"
        assert record.name == "Ana"
        assert record.assistant_id == "asst-1"
        assert record.status == "queued"

    @pytest.mark.asyncio
    async def test_customers_sharing_a_number_each_get_a_call_row(self):
        """Test two calls to the same number are both recorded."""
        dispatcher = self._dispatcher({
            "call-1": "+15551234567",
            "call-2": "+15551234567",
        })
        service, calls, _, _ = make_service(dispatcher)
        customers = [
            Lead(name="Ana", phone_e164="+15551234567"),
            Lead(name="Ana (work)", phone_e164="+15551234567"),
        ]

        campaign = await service.create_campaign(
            USER, "Spring", "ph-1", customers, assistant_id="asst-1"
        )

        assert campaign.called == 2
        recorded = [c.args[0].call_id for c in calls.insert.await_args_list]
        assert recorded == ["call-1", "call-2"]

    @pytest.mark.asyncio
    async def test_requires_exactly_one_target(self):
        """Test both or neither of assistant/workflow is rejected."""
        service, _, _, _ = make_service(self._dispatcher())
        customers = [Lead(phone_e164="+15551234567")]

        with pytest.raises(ValidationError):
            await service.create_campaign(USER, "x", "ph-1", customers)
        with pytest.raises(ValidationError):
            await service.create_campaign(
                USER, "x", "ph-1", customers, assistant_id="a", workflow_id="w"
            )

    @pytest.mark.asyncio
    async def test_empty_customers(self):
        """Test that no customers is rejected."""
        service, _, _, _ = make_service(self._dispatcher())

        with pytest.raises(ValidationError) as exc_info:
            await service.create_campaign(USER, "x", "ph-1", [], assistant_id="a")
        assert exc_info.value.code == ValidationCode.EMPTY_LEAD_SET


class TestQueries:
    """Tests for campaign lookups and the default phone."""

    @pytest.mark.asyncio
    async def test_get_campaign_missing(self):
        """Test that an unknown campaign raises."""
        service, _, _, _ = make_service()

        with pytest.raises(CampaignNotFoundError):
            await service.get_campaign(USER, "nope")

    @pytest.mark.asyncio
    async def test_get_campaign_live_refresh_failure_is_soft(self):
        """Test that the stored campaign is returned when the refresh fails."""
        dispatcher = MagicMock()
        dispatcher.fetch_campaign = AsyncMock(side_effect=UpstreamError(status=500))
        service, _, campaigns, _ = make_service(dispatcher)
        campaigns.get_for_user.return_value = Campaign(
            id="c1",
            user_id=USER,
            provider_campaign_id="vapi-1",
            name="Spring",
            phone_number_id="ph-1",
            assistant_id="asst-1",
            total_leads=1,
            calls={"call-a": "+15551234567"},
            provider_status="scheduled"
        )

        detail = await service.get_campaign(USER, "c1")

        assert detail["campaign"]["status"] == "scheduled"
        assert detail["live"] is None
        campaigns.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_campaign_settles_after_platform_ends(self):
        """Test an ended campaign is re-aggregated and written back."""
        dispatcher = MagicMock()
        dispatcher.fetch_campaign = AsyncMock(return_value=ProviderCampaign(
            id="vapi-1",
            status="ended",
            calls={"call-a": "+15551234567"},
            raw={"id": "vapi-1", "status": "ended"}
        ))
        service, calls, campaigns, _ = make_service(dispatcher)
        campaigns.get_for_user.return_value = Campaign(
            id="c1",
            user_id=USER,
            provider_campaign_id="vapi-1",
            name="Spring",
            phone_number_id="ph-1",
            assistant_id="asst-1",
            total_leads=2,
            calls={},
            provider_status="scheduled"
        )

        detail = await service.get_campaign(USER, "c1")

        assert detail["campaign"]["status"] == "partial_success"
        assert detail["campaign"]["called"] == 1
        assert detail["campaign"]["failed"] == 1
        assert detail["live"] == {"id": "vapi-1", "status": "ended"}
        stored = campaigns.update.await_args.args[0]
        assert stored.to_row()["aggregate_status"] == "partial_success"
        record = calls.insert.await_args.args[0]
        assert record.call_id == "call-a"
        assert record.campaign_id == "c1"

    @pytest.mark.asyncio
    async def test_default_phone_id(self):
        """Test that the most recent usable phone is chosen."""
        service, _, _, phones = make_service()
        orphan = PhoneNumber(
            id="row-2", user_id=USER, provider_sid="PN2", number="+15550000001",
            state=PhoneState.PROVISIONED_NOT_IMPORTED
        )
        phones.list_for_user.return_value = [orphan, READY_PHONE]

        assert await service.default_phone_id(USER) == "ph-1"

    @pytest.mark.asyncio
    async def test_default_phone_id_none_usable(self):
        """Test that a user with no usable phone gets PhoneNotFoundError."""
        service, _, _, phones = make_service(phone=None)

        with pytest.raises(PhoneNotFoundError):
            await service.default_phone_id(USER)
