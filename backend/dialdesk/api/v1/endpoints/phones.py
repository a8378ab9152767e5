"""
Phones API
Number search, purchase, import, deletion and inbound routing
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import BaseModel, Field

from dialdesk.api.v1.dependencies import get_current_user, get_container, CurrentUser
from dialdesk.api.v1.error_responses import error_response
from dialdesk.domain.errors import DialdeskError
from dialdesk.domain.models.phone import InboundSettings
from dialdesk.services.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/phones", tags=["phones"])


class PhoneLinkRequest(BaseModel):
    """Link a number that already exists on the voice platform"""
    phone_id: str = Field(..., min_length=1)


class PhoneNumberRequest(BaseModel):
    phone_number: str = Field(..., alias="phoneNumber")

    model_config = {"populate_by_name": True}


class InboundSettingsRequest(BaseModel):
    assistant_id: Optional[str] = Field(None, alias="assistantId")
    workflow_id: Optional[str] = Field(None, alias="workflowId")
    fallback_number: Optional[str] = Field(None, alias="fallbackNumber")

    model_config = {"populate_by_name": True}


@router.get("/")
async def list_phones(
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """The caller's numbers with live platform status"""
    try:
        return {"phones": await container.phones.list_phones(current_user.id)}
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Get phones failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch phones")


@router.get("/available")
async def list_available_numbers(
    country: str = Query("US", min_length=2, max_length=2),
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Numbers available for purchase"""
    try:
        numbers = await container.phones.search_available(country)
        return {"availableNumbers": [n.to_response() for n in numbers]}
    except DialdeskError as e:
        return error_response(e)


@router.get("/existing")
async def list_existing_numbers(
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Numbers already owned by the telephony account"""
    try:
        numbers = await container.phones.list_existing()
        return {"existingNumbers": [n.to_response() for n in numbers]}
    except DialdeskError as e:
        return error_response(e)


@router.post("/", status_code=201)
async def link_phone(
    body: PhoneLinkRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Record a platform phone for the caller"""
    try:
        phone = await container.phones.link(current_user.id, body.phone_id)
        return {"phone": phone.model_dump(mode="json")}
    except DialdeskError as e:
        return error_response(e)


@router.post("/purchase", status_code=201)
async def purchase_phone(
    body: PhoneNumberRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Buy a number, import it into the voice platform and record it"""
    try:
        return await container.phones.purchase(current_user.id, body.phone_number)
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Purchase phone failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to purchase phone number")


@router.post("/import", status_code=201)
async def import_phone(
    body: PhoneNumberRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Import a number the telephony account already owns"""
    try:
        return await container.phones.import_existing(current_user.id, body.phone_number)
    except DialdeskError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Import phone failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to import existing phone number")


@router.post("/{phone_id}/retry-import")
async def retry_import(
    phone_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Finish a purchase that stopped after provisioning"""
    try:
        phone = await container.phones.retry_import(current_user.id, phone_id)
        return {"phone": phone.model_dump(mode="json")}
    except DialdeskError as e:
        return error_response(e)


@router.delete("/{phone_id}")
async def delete_phone(
    phone_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Delete a number from the voice platform and the local store"""
    try:
        result = await container.phones.delete(current_user.id, phone_id)
    except DialdeskError as e:
        return error_response(e)

    if not result.deleted:
        raise HTTPException(status_code=404, detail="Phone not found")

    message = "Phone deleted successfully"
    if not result.vapi_deleted:
        message += " (voice platform deletion failed, but removed from database)"

    return {"message": message, **result.model_dump()}


@router.patch("/{phone_id}/inbound")
async def update_inbound_settings(
    phone_id: str,
    body: InboundSettingsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Change which assistant answers and where unanswered calls go"""
    try:
        settings = InboundSettings(**body.model_dump())
        updated = await container.phones.update_inbound(current_user.id, phone_id, settings)
        return {"message": "Inbound settings updated", "settings": updated}
    except DialdeskError as e:
        return error_response(e)
