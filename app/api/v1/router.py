"""Main v1 API router that aggregates all sub-routers."""

from fastapi import APIRouter

from .ai import router as ai_router
from .stories import router as stories_router

# Main v1 router
router = APIRouter(prefix="/api/v1")

# Include all sub-routers with appropriate prefixes
router.include_router(ai_router, prefix="/ai", tags=["AI"])
router.include_router(stories_router, prefix="/stories", tags=["Stories"])

__all__ = ["router"]
