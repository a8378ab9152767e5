"""
Error Responses
Maps domain errors onto HTTP responses.
"""
import logging

from fastapi.responses import JSONResponse

from dialdesk.domain.errors import (
    CalendarNotConnectedError,
    CampaignNotFoundError,
    CredentialExpired,
    DialdeskError,
    LocalStoreError,
    PhoneNotFoundError,
    PhoneNotReadyError,
    ReconciliationInconsistency,
    UpstreamError,
    UpstreamUpdateFailed,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_TYPE = (
    (PhoneNotFoundError, 404),
    (CampaignNotFoundError, 404),
    (CalendarNotConnectedError, 404),
    (PhoneNotReadyError, 409),
    (CredentialExpired, 401),
    (LocalStoreError, 500),
)


def error_response(error: DialdeskError) -> JSONResponse:
    """JSON response for a domain error raised by a service."""
    if isinstance(error, ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": error.message, "code": error.code.value}
        )

    if isinstance(error, UpstreamUpdateFailed):
        return JSONResponse(status_code=400, content=error.to_dict())

    if isinstance(error, UpstreamError):
        # Provider body passes through untouched unless a step needs reporting
        if isinstance(error.provider_body, dict) and not error.step:
            return JSONResponse(status_code=error.status, content=error.provider_body)
        return JSONResponse(status_code=error.status, content=error.to_dict())

    if isinstance(error, ReconciliationInconsistency):
        return JSONResponse(status_code=202, content=error.to_dict())

    for error_type, status_code in _STATUS_BY_TYPE:
        if isinstance(error, error_type):
            return JSONResponse(status_code=status_code, content={"error": error.message})

    logger.error(f"Unmapped domain error {type(error).__name__}: {error.message}")
    return JSONResponse(status_code=500, content={"error": error.message})
