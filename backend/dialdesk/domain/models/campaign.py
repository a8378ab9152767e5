"""
Campaign Domain Models
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from dialdesk.domain.models.call import CallAttempt, AttemptOutcome


class AggregateStatus(str, Enum):
    """Overall outcome of a bulk send"""
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


# Platform campaign statuses after which no further calls are created
SETTLED_PROVIDER_STATUSES = {"ended"}


def derive_aggregate_status(called: int, failed: int) -> AggregateStatus:
    """success iff nothing failed, failed iff nothing was called."""
    if failed == 0:
        return AggregateStatus.SUCCESS
    if called == 0:
        return AggregateStatus.FAILED
    return AggregateStatus.PARTIAL_SUCCESS


def _calls_from_payload(calls: Any) -> Dict[str, str]:
    """
    Map platform call id to the customer number it dials.

    The platform reports campaign calls either as an object keyed by call id
    or as a list of call resources. Several calls may share one number.
    """
    mapping: Dict[str, str] = {}
    if isinstance(calls, dict):
        items = [(call_id, info) for call_id, info in calls.items()]
    elif isinstance(calls, list):
        items = [(item.get("id"), item) for item in calls if isinstance(item, dict)]
    else:
        return mapping

    for call_id, info in items:
        if not call_id:
            continue
        number = None
        if isinstance(info, dict):
            number = (info.get("customer") or {}).get("number")
        mapping[str(call_id)] = number or ""
    return mapping


class ProviderCampaign(BaseModel):
    """Campaign resource returned by the voice platform"""
    id: str
    name: Optional[str] = None
    phone_number_id: Optional[str] = None
    assistant_id: Optional[str] = None
    workflow_id: Optional[str] = None
    status: Optional[str] = None
    schedule_plan: Optional[Dict[str, Any]] = None
    calls: Dict[str, str] = Field(default_factory=dict)
    customer_count: int = 0
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ProviderCampaign":
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            phone_number_id=data.get("phoneNumberId"),
            assistant_id=data.get("assistantId"),
            workflow_id=data.get("workflowId"),
            status=data.get("status"),
            schedule_plan=data.get("schedulePlan"),
            calls=_calls_from_payload(data.get("calls")),
            customer_count=len(data.get("customers") or []),
            raw=data
        )


class Campaign(BaseModel):
    """Locally persisted campaign (campaigns table)"""
    id: Optional[str] = None
    user_id: str
    provider_campaign_id: Optional[str] = None
    name: str
    phone_number_id: str
    assistant_id: Optional[str] = None
    workflow_id: Optional[str] = None
    schedule_plan: Optional[Dict[str, Any]] = None
    calls: Dict[str, str] = Field(default_factory=dict)
    provider_status: Optional[str] = None
    total_leads: int = 0
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_target(self) -> "Campaign":
        if bool(self.assistant_id) == bool(self.workflow_id):
            raise ValueError("Exactly one of assistant_id or workflow_id is required")
        return self

    @property
    def is_settled(self) -> bool:
        """True once the platform will create no more calls for this campaign."""
        return self.provider_status in SETTLED_PROVIDER_STATUSES

    @property
    def called(self) -> int:
        return len(self.calls)

    @property
    def failed(self) -> int:
        # Leads without a call only count as failed after the campaign ends
        if not self.is_settled:
            return 0
        return max(self.total_leads - self.called, 0)

    @property
    def aggregate_status(self) -> Optional[AggregateStatus]:
        if not self.is_settled:
            return None
        return derive_aggregate_status(self.called, self.failed)

    @property
    def status(self) -> str:
        """Aggregate outcome once settled, the platform status before that."""
        if self.aggregate_status is not None:
            return self.aggregate_status.value
        return self.provider_status or "queued"

    def refresh_from(self, provider: "ProviderCampaign") -> Dict[str, str]:
        """
        Take the platform's current status and calls.

        Returns the calls not seen before, keyed by call id.
        """
        new_calls = {
            call_id: number for call_id, number in provider.calls.items()
            if call_id not in self.calls
        }
        self.calls = {**self.calls, **provider.calls}
        if provider.status:
            self.provider_status = provider.status
        return new_calls

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(exclude={"id", "created_at"}, exclude_none=True)
        row["aggregate_status"] = self.aggregate_status.value if self.aggregate_status else None
        row["called"] = self.called
        row["failed"] = self.failed
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Campaign":
        fields = {key: row.get(key) for key in cls.model_fields if row.get(key) is not None}
        if fields.get("id") is not None:
            fields["id"] = str(fields["id"])
        return cls(**fields)

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "providerCampaignId": self.provider_campaign_id,
            "name": self.name,
            "phoneNumberId": self.phone_number_id,
            "assistantId": self.assistant_id,
            "workflowId": self.workflow_id,
            "schedulePlan": self.schedule_plan,
            "calls": self.calls,
            "status": self.status,
            "providerStatus": self.provider_status,
            "totalLeads": self.total_leads,
            "called": self.called,
            "failed": self.failed,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class CampaignRunResult(BaseModel):
    """Outcome of a client-side bulk send"""
    status: AggregateStatus
    total_leads: int
    called: int
    failed: int
    results: List[CallAttempt]

    @classmethod
    def from_attempts(cls, attempts: List[CallAttempt]) -> "CampaignRunResult":
        called = sum(1 for a in attempts if a.outcome == AttemptOutcome.CALLED)
        failed = len(attempts) - called
        return cls(
            status=derive_aggregate_status(called, failed),
            total_leads=len(attempts),
            called=called,
            failed=failed,
            results=attempts
        )

    def to_response(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "totalLeads": self.total_leads,
            "called": self.called,
            "failed": self.failed,
            "results": [attempt.to_result() for attempt in self.results],
        }
