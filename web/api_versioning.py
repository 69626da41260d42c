"""API versioning support for the MedPortal API.

All client-facing routes live under ``/api/v1`` so the API can evolve
without breaking existing integrations. The health probe stays unversioned.
"""

from fastapi import APIRouter, FastAPI

API_V1_PREFIX = "/api/v1"


def setup_versioned_routes(app: FastAPI) -> None:
    """
    Configure versioned API routes on the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Import routers here to avoid circular imports
    from web.routes import admin_router, auth_router, patients_router

    api_v1_router = APIRouter(prefix=API_V1_PREFIX)
    api_v1_router.include_router(auth_router)
    api_v1_router.include_router(admin_router)
    api_v1_router.include_router(patients_router)

    app.include_router(api_v1_router)
