"""Steps, fields and choices.

- POST /api/v1/projects/{id}/steps, PUT /api/v1/projects/{id}/steps/order
- PATCH/DELETE /api/v1/steps/{id}
- POST /api/v1/steps/{id}/fields, PUT /api/v1/steps/{id}/fields/order
- PATCH/DELETE /api/v1/fields/{id}
- POST /api/v1/fields/{id}/choices, PUT /api/v1/fields/{id}/choices/order
- PATCH/DELETE /api/v1/choices/{id}

`position` on create/update is 1-based; siblings are renumbered 1..N.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from toolsmith.api.models.enums import FieldType
from toolsmith.api.v1.dependencies import get_definition_store
from toolsmith.api.v1.schemas.common import ok
from toolsmith.auth.dependencies import require_identity
from toolsmith.auth.models import Identity
from toolsmith.domain.services.definition_store import DefinitionStore

router = APIRouter(tags=["definitions"])


# =============================================================================
# Request Models
# =============================================================================

class StepRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    page_title: Optional[str] = Field(None, max_length=200)
    page_subtitle: Optional[str] = Field(None, max_length=300)
    position: Optional[int] = Field(None, ge=1)


class ChoiceRequest(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=200)
    value: Optional[str] = Field(None, max_length=200)
    is_default: Optional[bool] = None
    position: Optional[int] = Field(None, ge=1)


class FieldRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    label: Optional[str] = Field(None, min_length=1, max_length=200)
    field_type: Optional[FieldType] = None
    placeholder: Optional[str] = Field(None, max_length=300)
    help_text: Optional[str] = None
    required: Optional[bool] = None
    validation: Optional[Dict[str, Any]] = None
    choices: Optional[List[ChoiceRequest]] = None
    position: Optional[int] = Field(None, ge=1)


class OrderRequest(BaseModel):
    ids: List[UUID]


def _values(request: BaseModel) -> Dict[str, Any]:
    data = request.model_dump(exclude_unset=True)
    if isinstance(data.get("field_type"), FieldType):
        data["field_type"] = data["field_type"].value
    return data


# =============================================================================
# Steps
# =============================================================================

@router.post("/projects/{project_id}/steps", status_code=status.HTTP_201_CREATED)
async def add_step(
    project_id: UUID,
    request: StepRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    step = await store.add_step(identity.subject_id, project_id, _values(request))
    return ok(step.to_dict())


@router.put("/projects/{project_id}/steps/order")
async def reorder_steps(
    project_id: UUID,
    request: OrderRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    project = await store.reorder_steps(identity.subject_id, project_id, request.ids)
    return ok(project.to_tree_dict())


@router.patch("/steps/{step_id}")
async def update_step(
    step_id: UUID,
    request: StepRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    step = await store.update_step(identity.subject_id, step_id, _values(request))
    return ok(step.to_dict())


@router.delete("/steps/{step_id}")
async def delete_step(
    step_id: UUID,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    await store.delete_step(identity.subject_id, step_id)
    return ok({"deleted": str(step_id)})


# =============================================================================
# Fields
# =============================================================================

@router.post("/steps/{step_id}/fields", status_code=status.HTTP_201_CREATED)
async def add_field(
    step_id: UUID,
    request: FieldRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    field = await store.add_field(identity.subject_id, step_id, _values(request))
    return ok(field.to_dict())


@router.put("/steps/{step_id}/fields/order")
async def reorder_fields(
    step_id: UUID,
    request: OrderRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    step = await store.reorder_fields(identity.subject_id, step_id, request.ids)
    return ok(step.to_dict())


@router.patch("/fields/{field_id}")
async def update_field(
    field_id: UUID,
    request: FieldRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    field = await store.update_field(identity.subject_id, field_id, _values(request))
    return ok(field.to_dict())


@router.delete("/fields/{field_id}")
async def delete_field(
    field_id: UUID,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    await store.delete_field(identity.subject_id, field_id)
    return ok({"deleted": str(field_id)})


# =============================================================================
# Choices
# =============================================================================

@router.post("/fields/{field_id}/choices", status_code=status.HTTP_201_CREATED)
async def add_choice(
    field_id: UUID,
    request: ChoiceRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    choice = await store.add_choice(identity.subject_id, field_id, _values(request))
    return ok(choice.to_dict())


@router.put("/fields/{field_id}/choices/order")
async def reorder_choices(
    field_id: UUID,
    request: OrderRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    field = await store.reorder_choices(identity.subject_id, field_id, request.ids)
    return ok(field.to_dict())


@router.patch("/choices/{choice_id}")
async def update_choice(
    choice_id: UUID,
    request: ChoiceRequest,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    choice = await store.update_choice(identity.subject_id, choice_id, _values(request))
    return ok(choice.to_dict())


@router.delete("/choices/{choice_id}")
async def delete_choice(
    choice_id: UUID,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    await store.delete_choice(identity.subject_id, choice_id)
    return ok({"deleted": str(choice_id)})
