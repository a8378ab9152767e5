"""
Calendar API
Stores calendar access tokens obtained by the dashboard and lists upcoming events
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import BaseModel, Field

from dialdesk.api.v1.dependencies import get_container
from dialdesk.api.v1.error_responses import error_response
from dialdesk.domain.errors import DialdeskError
from dialdesk.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])


class SaveTokensRequest(BaseModel):
    provider: str
    access_token: str = Field(..., min_length=1)
    expires_in: Optional[int] = Field(None, ge=0)
    token_type: Optional[str] = None
    email: str = Field(..., min_length=1)


@router.post("/save-calendar-tokens")
async def save_calendar_tokens(
    body: SaveTokensRequest,
    container: ServiceContainer = Depends(get_container)
):
    """Store (or replace) the calendar token for an account"""
    try:
        account = await container.calendar.save_tokens(
            provider=body.provider,
            access_token=body.access_token,
            expires_in=body.expires_in,
            token_type=body.token_type,
            email=body.email
        )
        return {"message": "Calendar tokens saved successfully", "account": account.to_public_dict()}
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error saving calendar tokens: {e}")
        raise HTTPException(status_code=500, detail="Failed to save tokens")


@router.get("/events")
async def list_calendar_events(
    email: str = Query(..., min_length=1),
    container: ServiceContainer = Depends(get_container)
):
    """Upcoming events on the account's primary calendar"""
    try:
        return {"events": await container.calendar.list_events(email)}
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error fetching calendar events: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch events")
