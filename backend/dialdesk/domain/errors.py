"""
Domain Errors
Error taxonomy shared by the orchestration services.

- ValidationError: caller input is malformed (400, never retried)
- UpstreamError: a third-party system rejected or failed the call
  (status and body passed through to the caller)
- ReconciliationInconsistency: a multi-step phone operation only partially
  completed (softened success with a warning)
- LocalStoreError: the local datastore failed (always fatal, 500)
"""
from enum import Enum
from typing import Any, Optional


class ValidationCode(str, Enum):
    """Reasons a request is rejected before any external call is made"""
    EMPTY_LEAD_SET = "empty_lead_set"
    PAST_SCHEDULE = "past_schedule"
    INVALID_SCHEDULE = "invalid_schedule"
    NO_VALID_RANGES = "no_valid_ranges"
    INVALID_REQUEST = "invalid_request"
    NOTHING_TO_UPDATE = "nothing_to_update"
    INVALID_PHONE = "invalid_phone"


class DialdeskError(Exception):
    """Base class for all domain errors. Carries a user-facing message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(DialdeskError):
    """Caller input is malformed."""

    def __init__(self, code: ValidationCode, message: str):
        self.code = code
        super().__init__(message)


class UpstreamError(DialdeskError):
    """
    An external system rejected or failed a request.

    Attributes:
        status: HTTP status reported by the provider (504 on timeout)
        provider_body: Parsed provider response body, passed through verbatim
        system: Which external system failed (voice_platform, telephony, calendar)
        step: Which step of a multi-step operation failed, if any
    """

    def __init__(
        self,
        status: int,
        provider_body: Any = None,
        system: str = "voice_platform",
        step: Optional[str] = None,
        message: Optional[str] = None
    ):
        self.status = status
        self.provider_body = provider_body
        self.system = system
        self.step = step
        super().__init__(message or f"{system} request failed with status {status}")

    def with_step(self, step: str) -> "UpstreamError":
        """Return a copy of this error tagged with the failing step."""
        return self.__class__(
            status=self.status,
            provider_body=self.provider_body,
            system=self.system,
            step=step,
            message=self.message
        )

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "system": self.system,
            "step": self.step,
            "status": self.status,
            "provider_body": self.provider_body
        }


class UpstreamUpdateFailed(UpstreamError):
    """The voice platform rejected an inbound settings update."""
    pass


class ReconciliationInconsistency(DialdeskError):
    """
    A multi-store phone operation partially completed.

    The number exists upstream (and is billed) but the voice platform or the
    local store does not agree yet. ``phone`` carries the state the number
    is actually in, ``provisioned_not_imported`` or ``imported_not_local``,
    so the operator can retry the import or repair the row.
    """

    def __init__(
        self,
        step: str,
        message: str,
        provider_sid: Optional[str] = None,
        phone: Optional[dict] = None,
        cause: Optional[UpstreamError] = None
    ):
        self.step = step
        self.provider_sid = provider_sid
        self.phone = phone
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "warning": self.message,
            "cleanup_required": True,
            "step": self.step,
            "provider_sid": self.provider_sid,
            "phone": self.phone,
            "upstream": self.cause.to_dict() if self.cause else None
        }


class PhoneNotFoundError(DialdeskError):
    """The phone does not exist or does not belong to the caller."""

    def __init__(self, message: str = "Phone not found"):
        super().__init__(message)


class CampaignNotFoundError(DialdeskError):
    """The campaign does not exist or does not belong to the caller."""

    def __init__(self, message: str = "Campaign not found"):
        super().__init__(message)


class PhoneNotReadyError(DialdeskError):
    """The phone exists locally but is not usable for calling yet."""
    pass


class CalendarNotConnectedError(DialdeskError):
    """Raised when a calendar operation is attempted without a stored credential."""

    def __init__(self, message: str = "No connected Google Calendar found for user"):
        super().__init__(message)


class CredentialExpired(DialdeskError):
    """The stored calendar credential has expired and must be reconnected."""

    def __init__(self, message: str = "Google Calendar token expired. Please reconnect."):
        super().__init__(message)


class LocalStoreError(DialdeskError):
    """The local datastore failed a read or write."""
    pass
