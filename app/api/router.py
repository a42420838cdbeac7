"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    pto_requests,
    blackouts,
    hierarchy,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(pto_requests.router, prefix="/pto-requests", tags=["pto-requests"])
api_router.include_router(blackouts.router, prefix="/blackouts", tags=["blackouts"])
api_router.include_router(hierarchy.router, prefix="/hierarchy", tags=["hierarchy"])
