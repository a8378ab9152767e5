"""
Tools API
Endpoints invoked by the voice agent during a call (calendar lookups and booking)
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field

from dialdesk.api.v1.dependencies import get_container, verify_tools_secret
from dialdesk.api.v1.error_responses import error_response
from dialdesk.domain.errors import DialdeskError
from dialdesk.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tools",
    tags=["tools"],
    dependencies=[Depends(verify_tools_secret)]
)


class AvailabilityRequest(BaseModel):
    email: str = Field(..., min_length=1)
    available_slots: List[Dict[str, Any]] = Field(..., alias="availableSlots", min_length=1)

    model_config = {"populate_by_name": True}


class BookMeetingRequest(BaseModel):
    email: str = Field(..., min_length=1)
    start_time: str = Field(..., alias="startTime")
    end_time: str = Field(..., alias="endTime")

    model_config = {"populate_by_name": True}


@router.post("/check-calendar-availability")
async def check_calendar_availability(
    body: AvailabilityRequest,
    container: ServiceContainer = Depends(get_container)
):
    """Earliest free slot within the offered ranges"""
    try:
        return await container.calendar.check_availability(body.email, body.available_slots)
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Availability check error: {e}")
        raise HTTPException(status_code=500, detail="Failed to check calendar availability")


@router.post("/book-meeting")
async def book_meeting(
    body: BookMeetingRequest,
    container: ServiceContainer = Depends(get_container)
):
    """Create the meeting on the owner's calendar"""
    try:
        return await container.calendar.book(body.email, body.start_time, body.end_time)
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Meeting booking error: {e}")
        raise HTTPException(status_code=500, detail="Failed to book meeting")
