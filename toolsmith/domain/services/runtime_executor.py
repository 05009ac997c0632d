"""
Runtime executor: one end-user submission against a deployed tool.

    RECEIVED -> VALIDATED -> SESSION_CREATED -> PROMPT_ASSEMBLED
             -> COMPLETION_INVOKED -> RESPONSE_PERSISTED -> COMPLETED

The session row is committed before the completion call. If the call fails
the session stays with a null ai_response (its responses are still
recorded) and UpstreamGenerationError carries the session id. Everything
after SESSION_CREATED is shielded from caller cancellation and runs in its
own database session, so a disconnect neither aborts the call nor loses its
result.
"""

import asyncio
import logging
import re
import secrets
import uuid
from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from toolsmith.api.models import (
    Deployment,
    DeploymentStatus,
    Field,
    FieldType,
    Project,
    Response,
    Step,
    ToolSession,
    UsageEvent,
)
from toolsmith.api.v1.exceptions import (
    NotFoundError,
    PersistenceError,
    UpstreamGenerationError,
    ValidationError,
)
from toolsmith.auth.models import Identity
from toolsmith.core.database import async_session_factory
from toolsmith.domain.services.access_policy import AccessDecision, AccessPolicy
from toolsmith.domain.services.ai_config_service import AIConfigService
from toolsmith.domain.services.analytics_sink import AnalyticsSink, LoggingAnalyticsSink, emit_safely
from toolsmith.domain.services.bundle_builder import build_manifest
from toolsmith.domain.services.field_matcher import match_fields
from toolsmith.llm.completion import CompletionClient
from toolsmith.llm.providers.base import LLMProvider

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
EMPTY_PROMPT = "Please generate a response based on my request."


@dataclass
class PromptParts:
    system_instructions: str
    user_content: str

    @property
    def text(self) -> str:
        if not self.system_instructions:
            return self.user_content
        return f"{self.system_instructions}\n\n{self.user_content}"


@dataclass
class SubmissionResult:
    session_id: uuid.UUID
    ai_response: str
    unattributed: Dict[str, Any] = dataclass_field(default_factory=dict)


@dataclass
class _Answer:
    step_id: uuid.UUID
    field_id: uuid.UUID
    label: str
    value: str


def _display(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return "" if value is None else str(value)


def assemble_prompt(
    system_prompt: Optional[str],
    answers: List[Tuple[str, str]],
    unattributed: Dict[str, Any],
) -> PromptParts:
    """System prompt plus ordered `label: value` lines, then unattributed keys."""
    lines = [f"{label}: {value}" for label, value in answers if value]
    extra = [f"{key}: {_display(value)}" for key, value in unattributed.items() if _display(value).strip()]
    if not lines and not extra:
        return PromptParts(system_prompt or "", EMPTY_PROMPT)
    sections = []
    if lines:
        sections.append("User Information:\n" + "\n".join(lines))
    if extra:
        sections.append("Additional Information:\n" + "\n".join(extra))
    return PromptParts(system_prompt or "", "\n\n".join(sections))


def _normalize_value(field: Field, raw: Any) -> Any:
    """Text for most types, list of strings for checkbox."""
    if isinstance(raw, dict):
        raise ValidationError(f"{field.label} has an invalid value", field=field.name)
    if field.type == FieldType.CHECKBOX:
        if isinstance(raw, list):
            items = raw
        elif isinstance(raw, str):
            items = raw.split(",")
        elif raw is None:
            items = []
        else:
            items = [raw]
        return [str(v).strip() for v in items if str(v).strip()]
    if isinstance(raw, list):
        raise ValidationError(f"{field.label} accepts a single value", field=field.name)
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return "" if raw is None else str(raw).strip()


def validate_value(field: Field, value: Any) -> None:
    """Format and rule checks for a non-empty value."""
    name, label = field.name, field.label
    rules = field.validation or {}
    text = _display(value)

    min_length = rules.get("min_length")
    max_length = rules.get("max_length")
    if min_length is not None and len(text) < min_length:
        raise ValidationError(f"{label} must be at least {min_length} characters", field=name)
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{label} must be at most {max_length} characters", field=name)
    if rules.get("pattern") and not re.search(rules["pattern"], text):
        raise ValidationError(f"{label} has an invalid format", field=name)

    if field.type == FieldType.NUMBER:
        try:
            float(text)
        except ValueError:
            raise ValidationError(f"{label} must be a number", field=name)
    elif field.type == FieldType.EMAIL:
        if not EMAIL_RE.match(text):
            raise ValidationError(f"{label} must be a valid email address", field=name)
    elif field.type == FieldType.DATE:
        try:
            date.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{label} must be a date (YYYY-MM-DD)", field=name)
    elif field.type in (FieldType.SELECT, FieldType.RADIO):
        if text not in {c.value for c in field.choices}:
            raise ValidationError(f"{label} must be one of the offered choices", field=name)
    elif field.type == FieldType.CHECKBOX:
        allowed = {c.value for c in field.choices}
        invalid = [v for v in value if v not in allowed]
        if invalid:
            raise ValidationError(f"{label} contains unknown choices: {', '.join(invalid)}", field=name)


class RuntimeExecutor:
    def __init__(
        self,
        db: AsyncSession,
        llm_provider: Optional[LLMProvider] = None,
        analytics: Optional[AnalyticsSink] = None,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
    ):
        self.db = db
        self.llm_provider = llm_provider
        self.analytics = analytics or LoggingAnalyticsSink()
        self.session_factory = session_factory or async_session_factory

    async def load_published(self, slug: str) -> Project:
        """A deployed, enabled project holding `slug`, with its tree, or NotFoundError."""
        stmt = (
            select(Project)
            .join(Deployment, Deployment.project_id == Project.id)
            .where(
                Deployment.slug == slug,
                Deployment.status == DeploymentStatus.ACTIVE.value,
                Project.deployed.is_(True),
                Project.enabled.is_(True),
            )
            .options(selectinload(Project.steps).selectinload(Step.fields).selectinload(Field.choices))
        )
        project = (await self.db.execute(stmt)).scalar_one_or_none()
        if project is None:
            raise NotFoundError("tool", slug)
        return project

    async def manifest(self, slug: str) -> Dict[str, Any]:
        return build_manifest(await self.load_published(slug))

    def _validate(self, project: Project, submitted: Dict[str, Any]) -> Tuple[List[_Answer], Dict[str, Any]]:
        fields = [
            (step, field)
            for step in sorted(project.steps, key=lambda s: s.step_order)
            for field in sorted(step.fields, key=lambda f: f.field_order)
        ]
        match = match_fields(submitted, [f.name for _, f in fields])

        answers: List[_Answer] = []
        for step, field in fields:
            hit = field.name in match.matched
            value = _normalize_value(field, match.value_for(field.name)) if hit else None
            empty = value is None or value == "" or value == []
            if empty:
                if field.required:
                    raise ValidationError(f"{field.label} is required", field=field.name)
                if not hit:
                    continue
            else:
                validate_value(field, value)
            answers.append(_Answer(step.id, field.id, field.label, _display(value)))
        return answers, match.unattributed

    async def submit(
        self,
        slug: str,
        submitted: Dict[str, Any],
        identity: Optional[Identity] = None,
        client_address: Optional[str] = None,
    ) -> SubmissionResult:
        if not isinstance(submitted, dict):
            raise ValidationError("responses must be an object keyed by field name", field="responses")

        project = await self.load_published(slug)
        decision: AccessDecision = await AccessPolicy(self.db).evaluate(project, identity)
        answers, unattributed = self._validate(project, submitted)

        project_id = project.id
        prompt = assemble_prompt(project.system_prompt, [(a.label, a.value) for a in answers], unattributed)
        client = await AIConfigService(self.db).completion_client(self.llm_provider)

        tool_session = ToolSession(
            project_id=project_id,
            session_token=secrets.token_urlsafe(32),
            subject_id=decision.subject_id,
            client_address=client_address,
            unattributed_inputs=unattributed,
        )
        self.db.add(tool_session)
        try:
            await self.db.flush()
            if decision.counts_usage:
                self.db.add(UsageEvent(
                    subject_id=decision.subject_id, project_id=project_id, session_id=tool_session.id,
                ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Could not create session for {slug}: {e}")
            raise PersistenceError("Failed to record your submission")

        session_id = tool_session.id
        logger.info(f"Session {session_id} started for {slug} ({len(answers)} answers, {len(unattributed)} unattributed)")
        await emit_safely(self.analytics, "session_started", session_id=str(session_id), project_id=str(project_id), slug=slug)

        text = await asyncio.shield(self._complete(session_id, project_id, slug, client, prompt, answers))
        return SubmissionResult(session_id=session_id, ai_response=text, unattributed=unattributed)

    async def _complete(
        self,
        session_id: uuid.UUID,
        project_id: uuid.UUID,
        slug: str,
        client: CompletionClient,
        prompt: PromptParts,
        answers: List[_Answer],
    ) -> str:
        failure: Optional[UpstreamGenerationError] = None
        text: Optional[str] = None
        try:
            text = await client.complete(prompt.system_instructions, [], prompt.user_content)
        except UpstreamGenerationError as e:
            failure = e

        try:
            async with self.session_factory() as db:
                tool_session = await db.get(ToolSession, session_id)
                if tool_session is None:
                    # Project deleted while the completion was in flight
                    logger.error(f"Session {session_id} disappeared before its results were stored")
                    raise PersistenceError("Failed to record the result of your submission")
                db.add_all([
                    Response(session_id=session_id, step_id=a.step_id, field_id=a.field_id, value=a.value)
                    for a in answers
                ])
                if failure is None:
                    tool_session.ai_response = text
                    tool_session.completed_at = datetime.now(timezone.utc)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Could not persist results for session {session_id}: {e}")
            raise PersistenceError("Failed to record the result of your submission")

        if failure is not None:
            logger.warning(f"Session {session_id} left incomplete: {failure.failure_kind}")
            await emit_safely(
                self.analytics, "session_failed",
                session_id=str(session_id), project_id=str(project_id), slug=slug,
                failure_kind=failure.failure_kind,
            )
            raise failure.with_session(str(session_id))

        logger.info(f"Session {session_id} completed")
        await emit_safely(
            self.analytics, "session_completed",
            session_id=str(session_id), project_id=str(project_id), slug=slug,
        )
        return text
