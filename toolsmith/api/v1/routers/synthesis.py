"""Structure synthesis.

- POST /api/v1/synthesis/questions - 3-5 clarifying questions for an idea
- POST /api/v1/synthesis/follow-up-questions - 2-3 deeper questions
- POST /api/v1/synthesis/draft - Candidate tree (nothing is saved)
- POST /api/v1/synthesis/commit - Save a candidate as a new draft project
- GET /api/v1/synthesis/recommendations - Suggested fields for an expert role
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from toolsmith.api.v1.dependencies import get_definition_store, get_structure_synthesizer
from toolsmith.api.v1.schemas.common import ok
from toolsmith.auth.dependencies import require_identity
from toolsmith.auth.models import Identity
from toolsmith.domain.services.candidate import CandidateTree
from toolsmith.domain.services.definition_store import DefinitionStore
from toolsmith.domain.services.field_recommendations import known_roles, recommend
from toolsmith.domain.services.structure_synthesizer import StructureSynthesizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/synthesis", tags=["synthesis"])


class AnsweredQuestion(BaseModel):
    question: str
    answer: str = ""


class QuestionsRequest(BaseModel):
    idea: str = Field(..., min_length=1, max_length=4000)
    role: str = Field(..., min_length=1, max_length=200)


class FollowUpRequest(QuestionsRequest):
    answers: List[AnsweredQuestion] = Field(default_factory=list)


class DraftRequest(FollowUpRequest):
    project_name: Optional[str] = Field(None, max_length=200)


@router.post("/questions")
async def generate_questions(
    request: QuestionsRequest,
    identity: Identity = Depends(require_identity),
    synthesizer: StructureSynthesizer = Depends(get_structure_synthesizer),
) -> Dict[str, Any]:
    questions = await synthesizer.generate_questions(request.idea, request.role)
    return ok({"questions": questions})


@router.post("/follow-up-questions")
async def generate_follow_up_questions(
    request: FollowUpRequest,
    identity: Identity = Depends(require_identity),
    synthesizer: StructureSynthesizer = Depends(get_structure_synthesizer),
) -> Dict[str, Any]:
    answers = [a.model_dump() for a in request.answers]
    questions = await synthesizer.generate_follow_up_questions(request.idea, request.role, answers)
    return ok({"questions": questions})


@router.post("/draft")
async def draft(
    request: DraftRequest,
    identity: Identity = Depends(require_identity),
    synthesizer: StructureSynthesizer = Depends(get_structure_synthesizer),
) -> Dict[str, Any]:
    answers = [a.model_dump() for a in request.answers]
    candidate = await synthesizer.synthesize(request.idea, request.role, answers, request.project_name)
    return ok(candidate.model_dump(mode="json"))


@router.post("/commit", status_code=status.HTTP_201_CREATED)
async def commit(
    candidate: CandidateTree,
    identity: Identity = Depends(require_identity),
    store: DefinitionStore = Depends(get_definition_store),
) -> Dict[str, Any]:
    project = await store.create_from_candidate(identity.subject_id, candidate)
    logger.info(f"Committed synthesized draft as {project.id} for {identity.subject_id}")
    return ok(project.to_tree_dict())


@router.get("/recommendations")
async def recommendations(
    role: str = Query(..., min_length=1, max_length=200),
    idea: str = Query("", max_length=4000),
    identity: Identity = Depends(require_identity),
) -> Dict[str, Any]:
    suggestion = recommend(role, idea)
    return ok({**suggestion.model_dump(mode="json"), "known_roles": known_roles()})
