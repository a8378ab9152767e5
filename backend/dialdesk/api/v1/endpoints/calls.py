"""
Calls API
Single calls, client-side bulk runs (JSON or CSV upload) and call history
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dialdesk.api.v1.dependencies import get_current_user, get_container, CurrentUser
from dialdesk.api.v1.error_responses import error_response
from dialdesk.api.v1.schemas import (
    CustomerIn,
    LocalScheduleRequest,
    customers_to_leads,
    resolve_schedule,
)
from dialdesk.domain.errors import DialdeskError, ValidationCode, ValidationError
from dialdesk.domain.models.campaign import AggregateStatus, CampaignRunResult
from dialdesk.domain.services import lead_set_builder
from dialdesk.services.container import ServiceContainer
from dialdesk.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calls", tags=["calls"])


class CallCreateRequest(BaseModel):
    """One customer (single call) or many (platform-side batch)"""
    assistant_id: str = Field(..., alias="assistantId")
    phone_number_id: str = Field(..., alias="phoneNumberId")
    customer: Optional[CustomerIn] = None
    customers: Optional[List[CustomerIn]] = None
    schedule_plan: Optional[Dict[str, Any]] = Field(None, alias="schedulePlan")
    schedule: Optional[LocalScheduleRequest] = None

    model_config = {"populate_by_name": True}


class BulkCallRequest(BaseModel):
    """Raw lead rows dispatched one call per lead"""
    assistant_id: str = Field(..., alias="assistantId")
    phone_number_id: str = Field(..., alias="phoneNumberId")
    leads: List[Dict[str, Any]]
    schedule_plan: Optional[Dict[str, Any]] = Field(None, alias="schedulePlan")
    schedule: Optional[LocalScheduleRequest] = None

    model_config = {"populate_by_name": True}


def run_response(result: CampaignRunResult) -> JSONResponse:
    """200 when every lead was called, 207 otherwise."""
    status_code = 200 if result.status == AggregateStatus.SUCCESS else 207
    return JSONResponse(status_code=status_code, content=result.to_response())


@router.post("/", status_code=201)
async def create_call(
    body: CallCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Place one call, or hand a customer list to the platform as a campaign"""
    try:
        if not body.customer and not body.customers:
            raise ValidationError(
                ValidationCode.INVALID_REQUEST,
                "Either customer or customers is required"
            )

        window = resolve_schedule(container.schedule, body.schedule_plan, body.schedule)

        if body.customer:
            lead = customers_to_leads([body.customer])[0]
            call = await container.campaigns.place_call(
                user_id=current_user.id,
                assistant_id=body.assistant_id,
                phone_id=body.phone_number_id,
                customer=lead,
                schedule=window
            )
            return {"call": call.raw}

        campaign = await container.campaigns.create_campaign(
            user_id=current_user.id,
            name=f"Batch call {utc_now().strftime('%Y-%m-%d %H:%M:%S')}",
            phone_id=body.phone_number_id,
            customers=customers_to_leads(body.customers),
            assistant_id=body.assistant_id,
            schedule=window
        )
        return {"campaign": campaign.to_response()}
    except HTTPException:
        raise
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Create call failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to create call")


@router.post("/bulk")
async def bulk_call(
    body: BulkCallRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Dispatch one call per lead and report per-lead outcomes"""
    try:
        leads = lead_set_builder.build(body.leads)
        window = resolve_schedule(container.schedule, body.schedule_plan, body.schedule)
        result = await container.campaigns.run(
            user_id=current_user.id,
            assistant_id=body.assistant_id,
            phone_id=body.phone_number_id,
            leads=leads,
            schedule=window
        )
        return run_response(result)
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Bulk call failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to process leads")


@router.post("/upload")
async def upload_leads(
    data: UploadFile = File(...),
    assistant_id: str = Form(..., alias="assistantId"),
    phone_number_id: Optional[str] = Form(None, alias="phoneNumberId"),
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """CSV upload variant of /calls/bulk"""
    if data.filename and not data.filename.lower().endswith('.csv'):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    try:
        leads = lead_set_builder.build(lead_set_builder.parse_csv(await data.read()))
        phone_id = phone_number_id or await container.campaigns.default_phone_id(current_user.id)
        result = await container.campaigns.run(
            user_id=current_user.id,
            assistant_id=assistant_id,
            phone_id=phone_id,
            leads=leads
        )
        return run_response(result)
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Lead upload failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to process uploaded leads")


@router.get("/")
async def list_calls(
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Call history for the caller"""
    try:
        return {"calls": await container.calls.list_for_user(current_user.id)}
    except DialdeskError as e:
        return error_response(e)
