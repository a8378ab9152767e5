"""
Upstream Response Handling
Shared translation of provider HTTP failures into UpstreamError.
"""
import logging
from typing import Any

import httpx

from dialdesk.domain.errors import UpstreamError

logger = logging.getLogger(__name__)

TIMEOUT_STATUS = 504


def response_body(response: httpx.Response) -> Any:
    """Parsed JSON body, or the raw text when the body is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def raise_for_upstream(response: httpx.Response, system: str) -> None:
    """Raise UpstreamError carrying the provider status and body on non-2xx."""
    if response.is_success:
        return
    body = response_body(response)
    logger.error(
        f"{system} {response.request.method} {response.request.url.path} "
        f"failed with {response.status_code}"
    )
    raise UpstreamError(status=response.status_code, provider_body=body, system=system)


def timeout_error(system: str, exc: Exception) -> UpstreamError:
    logger.error(f"{system} request timed out: {exc}")
    return UpstreamError(
        status=TIMEOUT_STATUS,
        provider_body={"error": "timeout"},
        system=system,
        message=f"{system} request timed out"
    )


def transport_error(system: str, exc: Exception) -> UpstreamError:
    logger.error(f"{system} request failed: {exc}")
    return UpstreamError(
        status=502,
        provider_body={"error": str(exc)},
        system=system,
        message=f"{system} unreachable"
    )
