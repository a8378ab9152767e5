"""
Integration Tests for Calls API
Single calls, bulk runs and CSV uploads through TestClient.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from dialdesk.main import app
from dialdesk.api.v1.dependencies import CurrentUser, get_current_user, get_supabase
from dialdesk.domain.errors import LocalStoreError, PhoneNotFoundError, UpstreamError
from dialdesk.domain.models.call import CallAttempt, ProviderCall
from dialdesk.domain.models.campaign import CampaignRunResult
from dialdesk.domain.models.lead import Lead
from dialdesk.domain.services.schedule_window import ScheduleWindowCalculator

USER_ID = "user-123"
ANA = Lead(name="Ana", phone_e164="+15551234567", email="a@x.com")
CY = Lead(name="Cy", phone_e164="+15557654321", email="c@x.com")
CALL = ProviderCall(id="call-1", status="queued", raw={"id": "call-1", "status": "queued"})

PARTIAL = CampaignRunResult.from_attempts([
    CallAttempt.called(ANA, CALL),
    CallAttempt.failed(CY, {"message": "Invalid customer"}, 400),
])
SUCCESS = CampaignRunResult.from_attempts([CallAttempt.called(ANA, CALL)])


@pytest.fixture
def api():
    container = MagicMock()
    container.schedule = ScheduleWindowCalculator()
    container.campaigns.run = AsyncMock(return_value=PARTIAL)
    container.campaigns.place_call = AsyncMock(return_value=CALL)
    container.campaigns.default_phone_id = AsyncMock(return_value="ph-default")
    container.calls.list_for_user = AsyncMock(return_value=[{"call_id": "call-1"}])

    app.state.container = container
    app.dependency_overrides[get_supabase] = lambda: MagicMock()
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=USER_ID)

    yield TestClient(app), container

    app.dependency_overrides.clear()
    app.state.container = None


class TestBulkCalls:
    """Tests for POST /api/v1/calls/bulk."""

    def test_partial_success_is_207(self, api):
        """Test the mixed-outcome run reports per-lead results."""
        client, container = api

        response = client.post("/api/v1/calls/bulk", json={
            "assistantId": "asst-1",
            "phoneNumberId": "ph-1",
            "leads": [
                {"name": "Ana", "phone": "+15551234567", "email": "a@x.com"},
                {"name": "Bo", "phone": "bad-phone", "email": "b@x.com"},
                {"name": "Cy", "phone": "+15557654321", "email": "c@x.com"},
            ],
        })

        assert response.status_code == 207
        data = response.json()
        assert data["status"] == "partial_success"
        assert data["totalLeads"] == 2
        assert data["called"] == 1
        assert data["failed"] == 1
        assert data["results"][1]["error"] == {"message": "Invalid customer"}

        kwargs = container.campaigns.run.await_args.kwargs
        assert [lead.name for lead in kwargs["leads"]] == ["Ana", "Cy"]
        assert kwargs["schedule"] is None

    def test_full_success_is_200(self, api):
        """Test every lead called gives 200."""
        client, container = api
        container.campaigns.run.return_value = SUCCESS

        response = client.post("/api/v1/calls/bulk", json={
            "assistantId": "asst-1",
            "phoneNumberId": "ph-1",
            "leads": [{"name": "Ana", "phone": "+15551234567"}],
        })

        assert response.status_code == 200
        assert response.json()["status"] == "success"

    def test_empty_lead_set(self, api):
        """Test no valid leads is a 400 and no run happens."""
        client, container = api

        response = client.post("/api/v1/calls/bulk", json={
            "assistantId": "asst-1",
            "phoneNumberId": "ph-1",
            "leads": [{"name": "Bo", "phone": "bad-phone"}],
        })

        assert response.status_code == 400
        assert response.json()["code"] == "empty_lead_set"
        container.campaigns.run.assert_not_awaited()

    def test_schedule_plan_passed(self, api):
        """Test an explicit schedulePlan is validated and forwarded."""
        client, container = api

        response = client.post("/api/v1/calls/bulk", json={
            "assistantId": "asst-1",
            "phoneNumberId": "ph-1",
            "leads": [{"phone": "+15551234567"}],
            "schedulePlan": {"earliestAt": "2030-05-01T15:00:00Z"},
        })

        assert response.status_code == 207
        window = container.campaigns.run.await_args.kwargs["schedule"]
        assert window.to_schedule_plan() == {
            "earliestAt": "2030-05-01T15:00:00.000Z",
            "latestAt": "2030-05-01T16:00:00.000Z",
        }

    def test_local_store_failure_is_500(self, api):
        """Test a store failure mid-run is fatal."""
        client, container = api
        container.campaigns.run.side_effect = LocalStoreError("Failed to insert into calls")

        response = client.post("/api/v1/calls/bulk", json={
            "assistantId": "asst-1",
            "phoneNumberId": "ph-1",
            "leads": [{"phone": "+15551234567"}],
        })

        assert response.status_code == 500


class TestCreateCall:
    """Tests for POST /api/v1/calls/."""

    def test_single_customer(self, api):
        """Test a single customer places one call."""
        client, container = api

        response = client.post("/api/v1/calls/", json={
            "assistantId": "asst-1",
            "phoneNumberId": "ph-1",
            "customer": {"number": "+15551234567", "name": "Ana"},
        })

        assert response.status_code == 201
        assert response.json() == {"call": {"id": "call-1", "status": "queued"}}
        assert container.campaigns.place_call.await_args.kwargs["customer"].name == "Ana"

    def test_customer_required(self, api):
        """Test that a body with no customers is rejected."""
        client, _ = api

        response = client.post("/api/v1/calls/", json={"assistantId": "asst-1", "phoneNumberId": "ph-1"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"

    def test_provider_error_passes_through(self, api):
        """Test the platform status and body reach the caller verbatim."""
        client, container = api
        container.campaigns.place_call.side_effect = UpstreamError(
            status=400, provider_body={"message": ["customer.number must be a valid phone number"]}
        )

        response = client.post("/api/v1/calls/", json={
            "assistantId": "asst-1",
            "phoneNumberId": "ph-1",
            "customer": {"number": "+15551234567"},
        })

        assert response.status_code == 400
        assert response.json() == {"message": ["customer.number must be a valid phone number"]}


class TestUpload:
    """Tests for POST /api/v1/calls/upload."""

    def test_csv_upload_uses_default_phone(self, api):
        """Test a CSV without phoneNumberId falls back to the user's phone."""
        client, container = api
        csv_bytes = b"name,phone,email\nAna,+15551234567,a@x.com\nBo,bad-phone,b@x.com\n"

        response = client.post(
            "/api/v1/calls/upload",
            files={"data": ("leads.csv", csv_bytes, "text/csv")},
            data={"assistantId": "asst-1"}
        )

        assert response.status_code == 207
        container.campaigns.default_phone_id.assert_awaited_once_with(USER_ID)
        kwargs = container.campaigns.run.await_args.kwargs
        assert kwargs["phone_id"] == "ph-default"
        assert len(kwargs["leads"]) == 1

    def test_non_csv_rejected(self, api):
        """Test other file types are refused."""
        client, _ = api

        response = client.post(
            "/api/v1/calls/upload",
            files={"data": ("leads.xlsx", b"binary", "application/octet-stream")},
            data={"assistantId": "asst-1"}
        )

        assert response.status_code == 400

    def test_no_usable_phone(self, api):
        """Test a user without a configured phone gets 404."""
        client, container = api
        container.campaigns.default_phone_id.side_effect = PhoneNotFoundError()

        response = client.post(
            "/api/v1/calls/upload",
            files={"data": ("leads.csv", b"phone\n+15551234567\n", "text/csv")},
            data={"assistantId": "asst-1"}
        )

        assert response.status_code == 404


class TestCallHistory:
    """Tests for GET /api/v1/calls/."""

    def test_list_calls(self, api):
        """Test call history for the caller."""
        client, container = api

        response = client.get("/api/v1/calls/")

        assert response.status_code == 200
        assert response.json() == {"calls": [{"call_id": "call-1"}]}
        container.calls.list_for_user.assert_awaited_once_with(USER_ID)
