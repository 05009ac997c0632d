"""API routers."""

from fastapi import APIRouter

from toolsmith.api.v1.routers.ai_config import router as ai_config_router
from toolsmith.api.v1.routers.definitions import router as definitions_router
from toolsmith.api.v1.routers.health import router as health_router
from toolsmith.api.v1.routers.projects import router as projects_router
from toolsmith.api.v1.routers.public import router as public_router
from toolsmith.api.v1.routers.publish import router as publish_router
from toolsmith.api.v1.routers.synthesis import router as synthesis_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health_router)
api_router.include_router(projects_router)
api_router.include_router(publish_router)
api_router.include_router(definitions_router)
api_router.include_router(synthesis_router)
api_router.include_router(public_router)
api_router.include_router(ai_config_router)

__all__ = [
    "api_router",
    "ai_config_router",
    "definitions_router",
    "health_router",
    "projects_router",
    "public_router",
    "publish_router",
    "synthesis_router",
]
