"""Publishing.

- POST /api/v1/projects/{id}/deploy - Publish or re-publish
- POST /api/v1/projects/{id}/undeploy - Take offline (history is kept)
- GET /api/v1/projects/{id}/deployment - Active deployment, or null
- PUT /api/v1/projects/{id}/subdomain - Choose the public address
"""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from toolsmith.api.v1.dependencies import get_deployment_service
from toolsmith.api.v1.schemas.common import ok
from toolsmith.auth.dependencies import require_identity
from toolsmith.auth.models import Identity
from toolsmith.domain.services.deployment_service import DeploymentService

router = APIRouter(prefix="/projects", tags=["publish"])


class SubdomainRequest(BaseModel):
    subdomain: str = Field(..., min_length=1, max_length=200)


@router.post("/{project_id}/deploy")
async def deploy(
    project_id: UUID,
    identity: Identity = Depends(require_identity),
    service: DeploymentService = Depends(get_deployment_service),
) -> Dict[str, Any]:
    result = await service.deploy(identity.subject_id, project_id)
    return ok({
        "deployment_id": str(result.deployment_id),
        "slug": result.slug,
        "public_url": result.public_url,
        "bundle_location": result.bundle_location,
    })


@router.post("/{project_id}/undeploy")
async def undeploy(
    project_id: UUID,
    identity: Identity = Depends(require_identity),
    service: DeploymentService = Depends(get_deployment_service),
) -> Dict[str, Any]:
    project = await service.undeploy(identity.subject_id, project_id)
    return ok(project.to_dict())


@router.get("/{project_id}/deployment")
async def deployment_status(
    project_id: UUID,
    identity: Identity = Depends(require_identity),
    service: DeploymentService = Depends(get_deployment_service),
) -> Dict[str, Any]:
    deployment = await service.deployment_status(identity.subject_id, project_id)
    return ok(deployment.to_dict() if deployment is not None else None)


@router.put("/{project_id}/subdomain")
async def change_subdomain(
    project_id: UUID,
    request: SubdomainRequest,
    identity: Identity = Depends(require_identity),
    service: DeploymentService = Depends(get_deployment_service),
) -> Dict[str, Any]:
    project = await service.change_subdomain(identity.subject_id, project_id, request.subdomain)
    return ok(project.to_dict())
