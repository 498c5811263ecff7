"""
MapTo Health Check Routes
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from typing import Dict, Any

from ..config import Settings, get_settings
from ..dependencies import get_repository
from ..errors import BackendFailure
from ..store.base import PostRepository
from ..store.sanitize import now_ms

router = APIRouter(prefix="/api/health", tags=["health"])

START_TIME = datetime.now(timezone.utc)


def get_uptime() -> str:
    """Get process uptime as human-readable string"""
    delta = datetime.now(timezone.utc) - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_store(repository: PostRepository) -> Dict[str, Any]:
    """Check the post store answers and count active posts"""
    try:
        return {
            "status": "healthy",
            "backend": repository.name,
            "active_posts": repository.count_active(now_ms()),
        }
    except BackendFailure as e:
        return {
            "status": "unhealthy",
            "backend": repository.name,
            "error": str(e),
        }


@router.get("")
def health_check(
    repository: PostRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    """Health check endpoint for load balancers and monitoring."""
    store = check_store(repository)
    return {
        "status": "healthy" if store["status"] == "healthy" else "degraded",
        "environment": settings.environment,
        "uptime": get_uptime(),
        "store": store,
    }
