"""
Campaigns API
Platform-side campaigns plus a schedule window preview
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field

from dialdesk.api.v1.dependencies import get_current_user, get_container, CurrentUser
from dialdesk.api.v1.error_responses import error_response
from dialdesk.api.v1.schemas import (
    CustomerIn,
    LocalScheduleRequest,
    customers_to_leads,
    resolve_schedule,
)
from dialdesk.domain.errors import DialdeskError
from dialdesk.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


class CampaignCreateRequest(BaseModel):
    """Request body for creating a platform-side campaign"""
    name: str = Field(..., min_length=1)
    phone_number_id: str = Field(..., alias="phoneNumberId")
    assistant_id: Optional[str] = Field(None, alias="assistantId")
    workflow_id: Optional[str] = Field(None, alias="workflowId")
    customers: List[CustomerIn]
    schedule_plan: Optional[Dict[str, Any]] = Field(None, alias="schedulePlan")
    schedule: Optional[LocalScheduleRequest] = None

    model_config = {"populate_by_name": True}


@router.post("/", status_code=201)
async def create_campaign(
    body: CampaignCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Create a campaign on the voice platform and store it locally"""
    try:
        window = resolve_schedule(container.schedule, body.schedule_plan, body.schedule)
        campaign = await container.campaigns.create_campaign(
            user_id=current_user.id,
            name=body.name,
            phone_id=body.phone_number_id,
            customers=customers_to_leads(body.customers),
            assistant_id=body.assistant_id,
            workflow_id=body.workflow_id,
            schedule=window
        )
        return campaign.to_response()
    except HTTPException:
        raise
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Create campaign failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to create campaign")


@router.get("/")
async def list_campaigns(
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """List the caller's campaigns"""
    try:
        campaigns = await container.campaigns.list_campaigns(current_user.id)
        return {"campaigns": [c.to_response() for c in campaigns]}
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"List campaigns failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch campaigns")


@router.post("/schedule-window")
async def preview_schedule_window(
    body: LocalScheduleRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Show the UTC window a wall-clock schedule resolves to"""
    try:
        window = body.to_window(container.schedule)
        return {**window.to_schedule_plan(), "timezone": body.timezone}
    except DialdeskError as e:
        return error_response(e)


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Campaign details with a live refresh from the voice platform"""
    try:
        return await container.campaigns.get_campaign(current_user.id, campaign_id)
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Get campaign failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch campaign")
