"""
Call Domain Models
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

from dialdesk.domain.models.lead import Lead


class AttemptOutcome(str, Enum):
    """Outcome of one call-creation request"""
    CALLED = "called"
    FAILED = "failed"


class ProviderCall(BaseModel):
    """Call resource returned by the voice platform"""
    id: str
    status: Optional[str] = None
    cost: Optional[float] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ProviderCall":
        """Translate the platform's call JSON at the boundary."""
        cost = data.get("cost")
        return cls(
            id=str(data["id"]),
            status=data.get("status"),
            cost=float(cost) if isinstance(cost, (int, float)) else None,
            raw=data
        )


class CallAttempt(BaseModel):
    """
    Result of dispatching one lead.

    Created once per lead per dispatch and never mutated.
    """
    lead: Lead
    outcome: AttemptOutcome
    provider_call_id: Optional[str] = None
    cost: Optional[float] = None
    provider_payload: Optional[Dict[str, Any]] = None
    error: Optional[Any] = None
    error_status: Optional[int] = None

    model_config = {"frozen": True}

    @classmethod
    def called(cls, lead: Lead, call: ProviderCall) -> "CallAttempt":
        return cls(
            lead=lead,
            outcome=AttemptOutcome.CALLED,
            provider_call_id=call.id,
            cost=call.cost,
            provider_payload=call.raw
        )

    @classmethod
    def failed(cls, lead: Lead, error: Any, status: Optional[int] = None) -> "CallAttempt":
        return cls(
            lead=lead,
            outcome=AttemptOutcome.FAILED,
            error=error,
            error_status=status
        )

    def to_result(self) -> Dict[str, Any]:
        """Per-lead entry of a campaign run response."""
        result = {
            "phone": self.lead.phone_e164,
            "name": self.lead.name,
            "status": self.outcome.value,
        }
        if self.outcome == AttemptOutcome.CALLED:
            result["call"] = self.provider_payload
        else:
            result["error"] = self.error
        return result


class CallRecord(BaseModel):
    """Local call row (calls table)"""
    id: Optional[str] = None
    user_id: str
    assistant_id: Optional[str] = None
    call_id: str
    campaign_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    cost: Optional[float] = None
    timestamp: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(exclude_none=True)
        if self.timestamp:
            row["timestamp"] = self.timestamp.isoformat()
        return row
