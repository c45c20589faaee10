"""
API v1 package.

Contains versioned API routes for username claims, profiles and auth.
"""

from fastapi import APIRouter

from src.api.v1.auth import router as auth_router
from src.api.v1.routes import router as username_router

router = APIRouter()
router.include_router(username_router)
router.include_router(auth_router)

__all__ = ["router"]
