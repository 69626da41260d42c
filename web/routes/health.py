"""Health check route."""

from typing import Any, Dict

from fastapi import APIRouter, Request, Response

import medportal

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request, response: Response) -> Dict[str, Any]:
    """
    Health check endpoint for monitoring and container orchestration.

    The cache is fail-open, so an unreachable cache only degrades the status;
    an unreachable database makes the service unhealthy (503).
    """
    state = request.app.state
    database = getattr(state, "database", None)

    if database is None:
        db_status = "not_configured"
    else:
        db_status = "healthy" if await database.health_check() else "unhealthy"

    cache_ok = await state.cache.ping()
    cache_status = {
        "status": "healthy" if cache_ok else "unhealthy",
        "backend": "redis" if state.cache.backend.is_distributed else "memory",
    }

    if db_status == "unhealthy":
        overall = "unhealthy"
        response.status_code = 503
    elif not cache_ok:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "status": overall,
        "version": medportal.__version__,
        "components": {"database": {"status": db_status}, "cache": cache_status},
    }
