"""
API Dependencies
Shared dependencies for authentication, Supabase access and service lookup
"""
import os
from typing import Optional
from fastapi import Depends, HTTPException, Request, status, Header
from supabase import create_client, Client
from pydantic import BaseModel
from dotenv import load_dotenv

from dialdesk.services.container import ServiceContainer

load_dotenv()


class CurrentUser(BaseModel):
    """Current authenticated user model"""
    id: str
    email: Optional[str] = None


def create_supabase_client() -> Client:
    """
    Build the process-wide Supabase client with validation.

    Raises:
        RuntimeError: If Supabase URL or SERVICE_KEY is not configured
    """
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_KEY")

    if not url:
        raise RuntimeError(
            "SUPABASE_URL is not configured. "
            "Set SUPABASE_URL environment variable."
        )
    if not key:
        raise RuntimeError(
            "SUPABASE_SERVICE_KEY is not configured. "
            "Set SUPABASE_SERVICE_KEY environment variable."
        )

    return create_client(url, key)


def get_container(request: Request) -> ServiceContainer:
    """Services built during application startup."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up"
        )
    return container


def get_supabase(container: ServiceContainer = Depends(get_container)) -> Client:
    """Supabase client built once at startup."""
    return container.supabase


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    supabase: Client = Depends(get_supabase)
) -> CurrentUser:
    """
    Dependency to get the current authenticated user from the bearer token.

    Raises:
        HTTPException: If token is missing, malformed or rejected
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Extract token from "Bearer <token>"
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Use: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = parts[1]

    try:
        user_response = supabase.auth.get_user(token)

        if not user_response or not user_response.user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        auth_user = user_response.user
        return CurrentUser(id=str(auth_user.id), email=auth_user.email)

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token validation failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def verify_tools_secret(
    x_tools_secret: Optional[str] = Header(None, alias="X-Tools-Secret"),
    container: ServiceContainer = Depends(get_container)
) -> None:
    """
    Tool endpoints are called by the voice platform, not by a logged-in user.
    When TOOLS_SHARED_SECRET is configured the header must match it.
    """
    expected = container.settings.tools_shared_secret
    if expected and x_tools_secret != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid tools secret"
        )
