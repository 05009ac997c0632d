"""Projects API router.

Definition management for the authenticated owner:
- GET/POST /api/v1/projects - List / create projects
- POST /api/v1/projects/import - Re-create a project from an export
- GET/PATCH/DELETE /api/v1/projects/{id} - Project with its full tree
- POST /api/v1/projects/{id}/toggle-enabled
- POST /api/v1/projects/{id}/clone
- GET /api/v1/projects/{id}/export
- GET /api/v1/projects/{id}/sessions - Recorded sessions, newest first
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from toolsmith.api.models.enums import AccessTier
from toolsmith.api.v1.dependencies import get_definition_store
from toolsmith.api.v1.schemas.common import ok
from toolsmith.auth.dependencies import require_identity
from toolsmith.auth.models import Identity
from toolsmith.domain.services.definition_store import DefinitionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


# =============================================================================
# Request/Response Models
# =============================================================================

class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    ai_role: Optional[str] = Field(None, max_length=200)
    ai_persona_description: Optional[str] = None
    system_prompt: str = ""
    header_title: Optional[str] = Field(None, max_length=200)
    header_subtitle: Optional[str] = Field(None, max_length=300)
    access_tier: AccessTier = AccessTier.PUBLIC
    required_package_id: Optional[UUID] = None


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    ai_role: Optional[str] = Field(None, max_length=200)
    ai_persona_description: Optional[str] = None
    system_prompt: Optional[str] = None
    header_title: Optional[str] = Field(None, max_length=200)
    header_subtitle: Optional[str] = Field(None, max_length=300)
    access_tier: Optional[AccessTier] = None
    required_package_id: Optional[UUID] = None


class CloneRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)


# =============================================================================
# Endpoints
# =============================================================================

@router.get("")
async def list_projects(
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    return ok(await store.list_projects(identity.subject_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreateRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    project = await store.create_project(identity.subject_id, request.model_dump())
    return ok(project.to_tree_dict())


@router.post("/import", status_code=status.HTTP_201_CREATED)
async def import_project(
    exported: Dict[str, Any],
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    project = await store.import_project(identity.subject_id, exported)
    return ok(project.to_tree_dict())


@router.get("/{project_id}")
async def get_project(
    project_id: UUID,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    project = await store.load_tree(identity.subject_id, project_id)
    return ok(project.to_tree_dict())


@router.patch("/{project_id}")
async def update_project(
    project_id: UUID,
    request: ProjectUpdateRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    project = await store.update_project(identity.subject_id, project_id, request.model_dump(exclude_unset=True))
    return ok(project.to_tree_dict())


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    await store.delete_project(identity.subject_id, project_id)
    return ok({"deleted": str(project_id)})


@router.post("/{project_id}/toggle-enabled")
async def toggle_enabled(
    project_id: UUID,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    project = await store.toggle_enabled(identity.subject_id, project_id)
    return ok(project.to_dict())


@router.post("/{project_id}/clone", status_code=status.HTTP_201_CREATED)
async def clone_project(
    project_id: UUID,
    request: Optional[CloneRequest] = None,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    new_name = request.name if request else None
    project = await store.clone_project(identity.subject_id, project_id, new_name)
    return ok(project.to_tree_dict())


@router.get("/{project_id}/export")
async def export_project(
    project_id: UUID,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    return ok(await store.export_project(identity.subject_id, project_id))


@router.get("/{project_id}/sessions")
async def list_sessions(
    project_id: UUID,
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    sessions = await store.list_sessions(identity.subject_id, project_id, offset=offset, limit=limit)
    return ok({
        "sessions": [s.to_dict() for s in sessions],
        "offset": offset,
        "limit": limit,
    })
