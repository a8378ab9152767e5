"""Domain models"""

from .lead import Lead

from .call import (
    AttemptOutcome,
    ProviderCall,
    CallAttempt,
    CallRecord,
)

from .schedule import ScheduleWindow

from .campaign import (
    AggregateStatus,
    derive_aggregate_status,
    ProviderCampaign,
    Campaign,
    CampaignRunResult,
)

from .phone import (
    PhoneState,
    PhoneNumber,
    ProviderNumber,
    PlatformPhone,
    InboundSettings,
    DeletionResult,
)

from .calendar import (
    TimeRange,
    BusyInterval,
    CandidateSlot,
    CalendarAccount,
)

__all__ = [
    "Lead",
    "AttemptOutcome",
    "ProviderCall",
    "CallAttempt",
    "CallRecord",
    "ScheduleWindow",
    "AggregateStatus",
    "derive_aggregate_status",
    "ProviderCampaign",
    "Campaign",
    "CampaignRunResult",
    "PhoneState",
    "PhoneNumber",
    "ProviderNumber",
    "PlatformPhone",
    "InboundSettings",
    "DeletionResult",
    "TimeRange",
    "BusyInterval",
    "CandidateSlot",
    "CalendarAccount",
]
