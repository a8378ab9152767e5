"""
API Router
Combines all endpoint routers
"""
from fastapi import APIRouter
from dialdesk.api.v1.endpoints import (
    campaigns,
    calls,
    phones,
    tools,
    calendar,
)

api_router = APIRouter()

# Dashboard (bearer token)
api_router.include_router(campaigns.router)
api_router.include_router(calls.router)
api_router.include_router(phones.router)

# Voice agent tools and calendar tokens
api_router.include_router(tools.router)
api_router.include_router(calendar.router)
