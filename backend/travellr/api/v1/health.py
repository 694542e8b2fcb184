"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from travellr.api import deps
from travellr.core.config import get_settings
from travellr.services.cache_service import CacheManager

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck(
    cache: Annotated[CacheManager, Depends(deps.get_cache_manager)],
) -> dict[str, str]:
    """Return application health metadata."""
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.app_env,
        "cache": "up" if await cache.ping() else "down",
    }
