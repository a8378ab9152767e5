"""
Phone Number Domain Models

A phone number lives in three systems at once: the telephony provider
(provider SID), the voice platform (platform phone id) and the local store
(row id). PhoneState tracks how far the three have been reconciled.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class PhoneState(str, Enum):
    """Reconciliation state of a phone number"""
    PROVISIONING = "provisioning"
    PROVISIONED_NOT_IMPORTED = "provisioned_not_imported"
    IMPORTED_NOT_LOCAL = "imported_not_local"
    CONFIGURED = "configured"
    DELETING = "deleting"


class PhoneNumber(BaseModel):
    """Local phone row (phones table)"""
    id: Optional[str] = None
    user_id: str
    phone_id: Optional[str] = None
    provider_sid: Optional[str] = None
    number: Optional[str] = None
    state: PhoneState = PhoneState.CONFIGURED
    fallback_number: Optional[str] = None
    created_at: Optional[datetime] = None

    def is_usable_for_calling(self, platform_number: Optional[str] = None) -> bool:
        """
        True iff all three identities exist, the row is configured and the
        number the platform reports matches the local one.
        """
        if not (self.id and self.phone_id and self.provider_sid and self.number):
            return False
        if self.state != PhoneState.CONFIGURED:
            return False
        if platform_number is not None and platform_number != self.number:
            return False
        return True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PhoneNumber":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            user_id=row["user_id"],
            phone_id=row.get("phone_id"),
            provider_sid=row.get("provider_sid"),
            number=row.get("number"),
            # Rows written before state tracking existed are configured
            state=row.get("state") or PhoneState.CONFIGURED,
            fallback_number=row.get("fallback_number"),
            created_at=row.get("created_at")
        )

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(exclude={"id", "created_at"}, exclude_none=True)
        row["state"] = self.state.value
        return row


class ProviderNumber(BaseModel):
    """Number resource from the telephony provider"""
    sid: Optional[str] = None
    phone_number: str
    friendly_name: Optional[str] = None
    region: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ProviderNumber":
        return cls(
            sid=data.get("sid"),
            phone_number=data["phone_number"],
            friendly_name=data.get("friendly_name"),
            region=data.get("region"),
            raw=data
        )

    def to_response(self) -> Dict[str, Any]:
        return {
            "sid": self.sid,
            "phoneNumber": self.phone_number,
            "friendlyName": self.friendly_name,
            "region": self.region,
        }


class PlatformPhone(BaseModel):
    """Phone number resource from the voice platform"""
    id: str
    number: Optional[str] = None
    status: Optional[str] = None
    provider: Optional[str] = None
    assistant_id: Optional[str] = None
    workflow_id: Optional[str] = None
    fallback_number: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "PlatformPhone":
        fallback = data.get("fallbackDestination") or {}
        return cls(
            id=str(data["id"]),
            number=data.get("number"),
            status=data.get("status"),
            provider=data.get("provider"),
            assistant_id=data.get("assistantId"),
            workflow_id=data.get("workflowId"),
            fallback_number=fallback.get("number"),
            raw=data
        )


class InboundSettings(BaseModel):
    """Requested change to how a number answers inbound calls"""
    assistant_id: Optional[str] = None
    workflow_id: Optional[str] = None
    fallback_number: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.assistant_id or self.workflow_id or self.fallback_number)

    def to_platform_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.assistant_id:
            payload["assistantId"] = self.assistant_id
        if self.workflow_id:
            payload["workflowId"] = self.workflow_id
        if self.fallback_number:
            payload["fallbackDestination"] = {
                "type": "number",
                "number": self.fallback_number
            }
        return payload


class DeletionResult(BaseModel):
    """Outcome of deleting a phone from the platform and the local store"""
    deleted: bool
    vapi_deleted: bool
