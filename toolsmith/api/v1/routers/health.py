"""Health check."""

from typing import Any, Dict

from fastapi import APIRouter

from toolsmith import __version__
from toolsmith.api.v1.schemas.common import HealthResponse, ok

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> Dict[str, Any]:
    return ok(HealthResponse(status="healthy", version=__version__).model_dump(mode="json"))
