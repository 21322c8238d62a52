from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.config import settings
from app.services.briefs.pipeline import get_brief_repository
from app.services.briefs.repositories import BriefRepository

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
def readiness_check(repository: BriefRepository = Depends(get_brief_repository)):
    """Readiness check endpoint that includes storage connectivity."""
    if not repository.ping():
        logger.warning("health.storage_unavailable")
        raise HTTPException(status_code=503, detail="Storage is not available")

    return {
        "status": "ready",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if settings.database_url else "not configured",
    }
