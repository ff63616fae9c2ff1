"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from photoshare.api.routes.assets import router as assets_router
from photoshare.api.routes.groups import router as groups_router
from photoshare.api.routes.health import router as health_router
from photoshare.api.routes.info import router as info_router
from photoshare.api.routes.users import router as users_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(users_router, tags=["users"])
    api_router.include_router(assets_router, tags=["assets"])
    api_router.include_router(groups_router, tags=["groups"])
    api_router.include_router(info_router, tags=["info"])
    return api_router


__all__ = ["create_api_router"]
