"""Main API router aggregation."""

from fastapi import APIRouter

from safety_check.api.admin import router as admin_router
from safety_check.api.auth import router as auth_router
from safety_check.api.user import router as user_router

# Main API router
api_router = APIRouter(prefix="/api")

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(admin_router)
