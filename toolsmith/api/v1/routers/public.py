"""Public runtime surface for deployed tools.

- GET /api/v1/public/{slug} - Manifest (not tier-gated)
- POST /api/v1/public/{slug}/submit - Run the tool; tier-gated
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from toolsmith.api.v1.dependencies import get_runtime_executor
from toolsmith.api.v1.schemas.common import ok
from toolsmith.auth.dependencies import get_optional_identity
from toolsmith.auth.models import Identity
from toolsmith.domain.services.runtime_executor import RuntimeExecutor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["public"])


class SubmitRequest(BaseModel):
    responses: Dict[str, Any] = Field(default_factory=dict)


@router.get("/{slug}")
async def manifest(
    slug: str,
    executor: RuntimeExecutor = Depends(get_runtime_executor),
) -> Dict[str, Any]:
    return ok(await executor.manifest(slug))


@router.post("/{slug}/submit")
async def submit(
    slug: str,
    body: SubmitRequest,
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    executor: RuntimeExecutor = Depends(get_runtime_executor),
) -> Dict[str, Any]:
    client_address = request.client.host if request.client else None
    result = await executor.submit(slug, body.responses, identity, client_address)
    return ok({
        "session_id": str(result.session_id),
        "ai_response": result.ai_response,
    })
