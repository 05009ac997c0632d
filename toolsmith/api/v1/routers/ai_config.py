"""AI configuration versions.

- GET /api/v1/ai-config - Active configuration and version history
- POST /api/v1/ai-config - Publish a new active version (AI_CONFIG_ADMINS only)
"""

from dataclasses import asdict
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from toolsmith.api.v1.schemas.common import ok
from toolsmith.auth.dependencies import require_config_admin, require_identity
from toolsmith.auth.models import Identity
from toolsmith.core.database import get_db
from toolsmith.domain.services.ai_config_service import AIConfigService

router = APIRouter(prefix="/ai-config", tags=["ai-config"])


class AIConfigRequest(BaseModel):
    provider: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=100)
    max_tokens: int = Field(2048, gt=0)
    temperature: float = Field(0.7, ge=0.0, le=1.0)
    timeout_seconds: float = Field(60.0, gt=0)


@router.get("")
async def get_config(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    service = AIConfigService(db)
    active = await service.resolve()
    versions = await service.list_versions()
    return ok({
        "active": asdict(active),
        "versions": [v.to_dict() for v in versions],
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def publish_config(
    request: AIConfigRequest,
    identity: Identity = Depends(require_config_admin),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    version = await AIConfigService(db).publish_version(
        created_by=identity.subject_id,
        **request.model_dump(),
    )
    return ok(version.to_dict())
