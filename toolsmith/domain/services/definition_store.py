"""
Definition store: the Project -> Step -> Field -> Choice tree.

Every operation is scoped to an owner; a project belonging to someone else
is reported as not found. Mutations load the whole tree once, change the
in-memory collections (each collection is the arena of siblings that
`ordering` re-indexes), and commit once.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jsonschema import Draft7Validator
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from toolsmith.api.models import (
    AccessTier,
    Choice,
    Deployment,
    DeploymentStatus,
    Field,
    FieldType,
    Package,
    Project,
    Response,
    Step,
    ToolSession,
    UsageEvent,
)
from toolsmith.api.models.enums import SINGLE_CHOICE_FIELD_TYPES
from toolsmith.api.v1.exceptions import MaterializationError, NotFoundError, PersistenceError, ValidationError
from toolsmith.domain.bundle_host import BundleHost
from toolsmith.domain.services import ordering
from toolsmith.domain.services.candidate import (
    TOOL_STRUCTURE_SCHEMA,
    CandidateTree,
    coerce_tree,
    to_field_name,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

PROJECT_FIELDS = (
    "name", "description", "ai_role", "ai_persona_description", "system_prompt",
    "header_title", "header_subtitle", "access_tier", "required_package_id",
)
STEP_FIELDS = ("name", "description", "page_title", "page_subtitle")
FIELD_FIELDS = ("name", "label", "field_type", "placeholder", "help_text", "required", "validation")
CHOICE_FIELDS = ("label", "value", "is_default")


def _tree_options():
    return selectinload(Project.steps).selectinload(Step.fields).selectinload(Field.choices)


def _pick(data: Dict[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k in allowed}


def _require_text(value: Any, field: str, max_length: int) -> str:
    text = (value or "").strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field=field)
    return text


def validate_rules(rules: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Check a field's validation rules: min_length, max_length, pattern."""
    rules = dict(rules or {})
    unknown = set(rules) - {"min_length", "max_length", "pattern"}
    if unknown:
        raise ValidationError(f"Unknown validation rules: {', '.join(sorted(unknown))}", field="validation")
    for key in ("min_length", "max_length"):
        value = rules.get(key)
        if value is None:
            rules.pop(key, None)
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"{key} must be a non-negative integer", field="validation")
    if "min_length" in rules and "max_length" in rules and rules["min_length"] > rules["max_length"]:
        raise ValidationError("min_length cannot exceed max_length", field="validation")
    pattern = rules.get("pattern")
    if pattern is None:
        rules.pop("pattern", None)
    else:
        try:
            re.compile(pattern)
        except (re.error, TypeError) as e:
            raise ValidationError(f"Invalid pattern: {e}", field="validation")
    return rules


class DefinitionStore:
    """CRUD, ordering, clone, export and import for tool definitions."""

    def __init__(self, db: AsyncSession, bundle_host: Optional[BundleHost] = None):
        self.db = db
        self.bundle_host = bundle_host

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Definition commit failed: {e}")
            raise PersistenceError("Failed to save tool definition")

    async def load_tree(self, owner_id: str, project_id: uuid.UUID) -> Project:
        """Project with steps, fields and choices loaded, or NotFoundError."""
        stmt = (
            select(Project)
            .where(Project.id == project_id, Project.owner_id == owner_id)
            .options(_tree_options())
            .execution_options(populate_existing=True)
        )
        project = (await self.db.execute(stmt)).scalar_one_or_none()
        if project is None:
            raise NotFoundError("project", str(project_id))
        for step in project.steps:
            step.fields.sort(key=lambda f: f.field_order)
            for field in step.fields:
                field.choices.sort(key=lambda c: c.choice_order)
        project.steps.sort(key=lambda s: s.step_order)
        return project

    async def _locate_step(self, owner_id: str, step_id: uuid.UUID) -> Tuple[Project, Step]:
        project_id = (await self.db.execute(
            select(Step.project_id)
            .join(Project, Project.id == Step.project_id)
            .where(Step.id == step_id, Project.owner_id == owner_id)
        )).scalar_one_or_none()
        if project_id is None:
            raise NotFoundError("step", str(step_id))
        project = await self.load_tree(owner_id, project_id)
        step = next(s for s in project.steps if s.id == step_id)
        return project, step

    async def _locate_field(self, owner_id: str, field_id: uuid.UUID) -> Tuple[Project, Step, Field]:
        project_id = (await self.db.execute(
            select(Step.project_id)
            .join(Field, Field.step_id == Step.id)
            .join(Project, Project.id == Step.project_id)
            .where(Field.id == field_id, Project.owner_id == owner_id)
        )).scalar_one_or_none()
        if project_id is None:
            raise NotFoundError("field", str(field_id))
        project = await self.load_tree(owner_id, project_id)
        for step in project.steps:
            for field in step.fields:
                if field.id == field_id:
                    return project, step, field
        raise NotFoundError("field", str(field_id))

    async def _locate_choice(self, owner_id: str, choice_id: uuid.UUID) -> Tuple[Project, Field, Choice]:
        field_id = (await self.db.execute(
            select(Choice.field_id).where(Choice.id == choice_id)
        )).scalar_one_or_none()
        if field_id is None:
            raise NotFoundError("choice", str(choice_id))
        try:
            project, _, field = await self._locate_field(owner_id, field_id)
        except NotFoundError:
            raise NotFoundError("choice", str(choice_id))
        choice = next(c for c in field.choices if c.id == choice_id)
        return project, field, choice

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self, owner_id: str) -> List[Dict[str, Any]]:
        step_counts = (
            select(Step.project_id, func.count(Step.id).label("step_count"))
            .group_by(Step.project_id)
            .subquery()
        )
        field_counts = (
            select(Step.project_id, func.count(Field.id).label("field_count"))
            .join(Field, Field.step_id == Step.id)
            .group_by(Step.project_id)
            .subquery()
        )
        stmt = (
            select(
                Project,
                func.coalesce(step_counts.c.step_count, 0),
                func.coalesce(field_counts.c.field_count, 0),
            )
            .outerjoin(step_counts, step_counts.c.project_id == Project.id)
            .outerjoin(field_counts, field_counts.c.project_id == Project.id)
            .where(Project.owner_id == owner_id)
            .order_by(Project.updated_at.desc())
        )
        rows = (await self.db.execute(stmt)).all()
        return [
            {**project.to_dict(), "step_count": steps, "field_count": fields}
            for project, steps, fields in rows
        ]

    async def _check_project_values(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if "name" in values:
            values["name"] = _require_text(values["name"], "name", 200)
        if "system_prompt" in values and values["system_prompt"] is None:
            values["system_prompt"] = ""
        if "access_tier" in values:
            tier = values["access_tier"]
            try:
                values["access_tier"] = AccessTier(tier.value if isinstance(tier, AccessTier) else tier).value
            except ValueError:
                raise ValidationError(f"Unknown access tier '{tier}'", field="access_tier")
        package_id = values.get("required_package_id")
        if package_id is not None:
            if not isinstance(package_id, uuid.UUID):
                try:
                    package_id = uuid.UUID(str(package_id))
                except ValueError:
                    raise ValidationError("required_package_id is not a valid id", field="required_package_id")
            if await self.db.get(Package, package_id) is None:
                raise ValidationError(f"Package '{package_id}' does not exist", field="required_package_id")
            values["required_package_id"] = package_id
        return values

    async def create_project(self, owner_id: str, data: Dict[str, Any]) -> Project:
        values = await self._check_project_values(_pick(data, PROJECT_FIELDS))
        if "name" not in values:
            raise ValidationError("name is required", field="name")
        project = Project(owner_id=owner_id, **values)
        self.db.add(project)
        await self._commit()
        logger.info(f"Project created: {project.id} ({project.name}) owner={owner_id}")
        return await self.load_tree(owner_id, project.id)

    async def update_project(self, owner_id: str, project_id: uuid.UUID, data: Dict[str, Any]) -> Project:
        """Update attributes. Renaming never touches the subdomain."""
        project = await self.load_tree(owner_id, project_id)
        values = await self._check_project_values(_pick(data, PROJECT_FIELDS))
        for key, value in values.items():
            setattr(project, key, value)
        await self._commit()
        return await self.load_tree(owner_id, project_id)

    async def toggle_enabled(self, owner_id: str, project_id: uuid.UUID) -> Project:
        project = await self.load_tree(owner_id, project_id)
        project.enabled = not project.enabled
        await self._commit()
        logger.info(f"Project {project_id} enabled={project.enabled}")
        return project

    async def delete_project(self, owner_id: str, project_id: uuid.UUID) -> None:
        """Delete the project and everything recorded against it, then its live bundle (if any)."""
        project = await self.load_tree(owner_id, project_id)
        # Inactive slugs may already belong to another project
        live_slug = (await self.db.execute(
            select(Deployment.slug).where(
                Deployment.project_id == project_id,
                Deployment.status == DeploymentStatus.ACTIVE.value,
            )
        )).scalar_one_or_none()

        session_ids = select(ToolSession.id).where(ToolSession.project_id == project_id)
        await self.db.execute(delete(UsageEvent).where(UsageEvent.project_id == project_id))
        await self.db.execute(delete(Response).where(Response.session_id.in_(session_ids)))
        await self.db.execute(delete(ToolSession).where(ToolSession.project_id == project_id))
        await self.db.execute(delete(Deployment).where(Deployment.project_id == project_id))
        await self.db.delete(project)
        await self._commit()
        logger.info(f"Project deleted: {project_id}")

        if live_slug and self.bundle_host is not None:
            try:
                await self.bundle_host.remove(live_slug)
            except MaterializationError as e:
                logger.error(f"Orphaned bundle left at {live_slug}: {e.message}")

    async def clone_project(
        self, owner_id: str, project_id: uuid.UUID, new_name: Optional[str] = None
    ) -> Project:
        """Deep copy with a new id, undeployed and without a subdomain."""
        source = await self.load_tree(owner_id, project_id)
        clone = Project(
            owner_id=owner_id,
            name=_require_text(new_name, "name", 200) if new_name is not None else f"{source.name} (Copy)"[:200],
            description=source.description,
            ai_role=source.ai_role,
            ai_persona_description=source.ai_persona_description,
            system_prompt=source.system_prompt,
            header_title=source.header_title,
            header_subtitle=source.header_subtitle,
            access_tier=source.access_tier,
            required_package_id=source.required_package_id,
            enabled=source.enabled,
            deployed=False,
            subdomain=None,
        )
        for step in source.steps:
            clone.steps.append(Step(
                name=step.name,
                description=step.description,
                page_title=step.page_title,
                page_subtitle=step.page_subtitle,
                step_order=step.step_order,
                fields=[
                    Field(
                        name=field.name,
                        label=field.label,
                        field_type=field.field_type,
                        placeholder=field.placeholder,
                        help_text=field.help_text,
                        required=field.required,
                        field_order=field.field_order,
                        validation=dict(field.validation or {}),
                        choices=[
                            Choice(
                                label=c.label,
                                value=c.value,
                                choice_order=c.choice_order,
                                is_default=c.is_default,
                            )
                            for c in field.choices
                        ],
                    )
                    for field in step.fields
                ],
            ))
        self.db.add(clone)
        await self._commit()
        logger.info(f"Project cloned: {project_id} -> {clone.id}")
        return await self.load_tree(owner_id, clone.id)

    async def export_project(self, owner_id: str, project_id: uuid.UUID) -> Dict[str, Any]:
        """Full tree as one transferable structure (external naming)."""
        project = await self.load_tree(owner_id, project_id)
        return {
            "version": EXPORT_VERSION,
            "export_date": datetime.now(timezone.utc).isoformat(),
            "project": {
                "name": project.name,
                "description": project.description,
                "ai_role": project.ai_role,
                "ai_persona_description": project.ai_persona_description,
                "system_prompt": project.system_prompt,
                "header_title": project.header_title,
                "header_subtitle": project.header_subtitle,
                "access_tier": project.access_tier,
                "enabled": project.enabled,
            },
            "steps": [
                {
                    "name": step.name,
                    "description": step.description,
                    "page_title": step.page_title,
                    "page_subtitle": step.page_subtitle,
                    "order": step.step_order,
                    "fields": [
                        {
                            "name": field.name,
                            "label": field.label,
                            "field_type": field.field_type,
                            "placeholder": field.placeholder,
                            "help_text": field.help_text,
                            "is_required": field.required,
                            "order": field.field_order,
                            "validation": field.validation or {},
                            "choices": [
                                {
                                    "label": c.label,
                                    "value": c.value,
                                    "is_default": c.is_default,
                                    "order": c.choice_order,
                                }
                                for c in field.choices
                            ],
                        }
                        for field in step.fields
                    ],
                }
                for step in project.steps
            ],
        }

    async def import_project(self, owner_id: str, exported: Dict[str, Any]) -> Project:
        """Re-create a project from `export_project` output."""
        errors = [e.message for e in Draft7Validator(TOOL_STRUCTURE_SCHEMA).iter_errors(exported)]
        if errors:
            raise ValidationError("Invalid export structure", details={"errors": errors})
        project_data = exported.get("project") if isinstance(exported.get("project"), dict) else {}
        name = project_data.get("name") or exported.get("name")
        _require_text(name, "name", 200)
        candidate = coerce_tree(exported, fallback_name=name)
        return await self.create_from_candidate(owner_id, candidate)

    async def create_from_candidate(self, owner_id: str, candidate: CandidateTree) -> Project:
        """Commit a candidate tree as a new draft project."""
        if not candidate.steps or not any(s.fields for s in candidate.steps):
            raise ValidationError("A tool needs at least one step with at least one field", field="steps")
        names = [f.name for s in candidate.steps for f in s.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate field names: {', '.join(duplicates)}", field="name")

        project = Project(
            owner_id=owner_id,
            name=_require_text(candidate.name, "name", 200),
            description=candidate.description,
            ai_role=candidate.ai_role,
            ai_persona_description=candidate.ai_persona_description,
            system_prompt=candidate.system_prompt or "",
            header_title=candidate.header_title,
            header_subtitle=candidate.header_subtitle,
            access_tier=candidate.access_tier.value,
        )
        for step_order, c_step in enumerate(candidate.steps, start=1):
            step = Step(
                name=c_step.name,
                description=c_step.description,
                page_title=c_step.page_title,
                page_subtitle=c_step.page_subtitle,
                step_order=step_order,
            )
            for field_order, c_field in enumerate(c_step.fields, start=1):
                if c_field.type.has_choices and not c_field.choices:
                    raise ValidationError(
                        f"Field '{c_field.name}' of type {c_field.type.value} needs at least one choice",
                        field=c_field.name,
                    )
                step.fields.append(Field(
                    name=c_field.name,
                    label=c_field.label,
                    field_type=c_field.type.value,
                    placeholder=c_field.placeholder,
                    help_text=c_field.help_text,
                    required=c_field.required,
                    field_order=field_order,
                    validation=validate_rules(c_field.validation),
                    choices=[
                        Choice(label=c.label, value=c.value, is_default=c.is_default, choice_order=i)
                        for i, c in enumerate(c_field.choices, start=1)
                    ] if c_field.type.has_choices else [],
                ))
            project.steps.append(step)

        self.db.add(project)
        await self._commit()
        logger.info(
            f"Project created from candidate: {project.id} ({len(candidate.steps)} steps, "
            f"{candidate.field_count} fields)"
        )
        return await self.load_tree(owner_id, project.id)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def add_step(self, owner_id: str, project_id: uuid.UUID, data: Dict[str, Any]) -> Step:
        project = await self.load_tree(owner_id, project_id)
        values = _pick(data, STEP_FIELDS)
        values["name"] = _require_text(values.get("name"), "name", 200)
        step = Step(**values, fields=[])
        arranged = ordering.place(list(project.steps), step, "step_order", data.get("position"))
        project.steps.append(step)
        project.steps.sort(key=lambda s: s.step_order)
        await self._commit()
        logger.info(f"Step added to {project_id} at position {step.step_order} of {len(arranged)}")
        return step

    async def update_step(self, owner_id: str, step_id: uuid.UUID, data: Dict[str, Any]) -> Step:
        project, step = await self._locate_step(owner_id, step_id)
        values = _pick(data, STEP_FIELDS)
        if "name" in values:
            values["name"] = _require_text(values["name"], "name", 200)
        for key, value in values.items():
            setattr(step, key, value)
        if data.get("position") is not None:
            ordering.place(list(project.steps), step, "step_order", data["position"])
            project.steps.sort(key=lambda s: s.step_order)
        await self._commit()
        return step

    async def delete_step(self, owner_id: str, step_id: uuid.UUID) -> None:
        """Delete a step with its fields, choices and recorded responses; close the gap."""
        project, step = await self._locate_step(owner_id, step_id)
        await self.db.execute(delete(Response).where(Response.step_id == step_id))
        ordering.remove(list(project.steps), step, "step_order")
        project.steps.remove(step)
        project.steps.sort(key=lambda s: s.step_order)
        await self._commit()
        logger.info(f"Step {step_id} deleted; {len(project.steps)} steps remain in {project.id}")

    async def reorder_steps(self, owner_id: str, project_id: uuid.UUID, ordered_ids: List[uuid.UUID]) -> Project:
        project = await self.load_tree(owner_id, project_id)
        try:
            ordering.reorder(project.steps, ordered_ids, "step_order")
        except ValueError as e:
            raise ValidationError(str(e), field="step_ids")
        project.steps.sort(key=lambda s: s.step_order)
        await self._commit()
        return project

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def _check_unique_name(self, project: Project, name: str, exclude: Optional[Field] = None) -> None:
        for step in project.steps:
            for other in step.fields:
                if other is not exclude and other.name == name:
                    raise ValidationError(f"A field named '{name}' already exists in this tool", field="name")

    @staticmethod
    def _field_type(value: Any) -> FieldType:
        try:
            return FieldType(value.value if isinstance(value, FieldType) else value)
        except ValueError:
            raise ValidationError(
                f"Unsupported field type '{value}' (expected one of {', '.join(t.value for t in FieldType)})",
                field="field_type",
            )

    @staticmethod
    def _build_choices(field_type: FieldType, raw: List[Dict[str, Any]]) -> List[Choice]:
        choices = []
        seen = set()
        for position, item in enumerate(raw, start=1):
            label = _require_text(item.get("label"), "label", 200)
            value = (item.get("value") or label).strip()
            if value in seen:
                raise ValidationError(f"Duplicate choice value '{value}'", field="choices")
            seen.add(value)
            choices.append(Choice(
                label=label,
                value=value[:200],
                is_default=bool(item.get("is_default")),
                choice_order=position,
            ))
        if field_type in SINGLE_CHOICE_FIELD_TYPES and sum(c.is_default for c in choices) > 1:
            raise ValidationError(f"A {field_type.value} field can have only one default choice", field="choices")
        return choices

    async def add_field(self, owner_id: str, step_id: uuid.UUID, data: Dict[str, Any]) -> Field:
        project, step = await self._locate_step(owner_id, step_id)
        values = _pick(data, FIELD_FIELDS)
        values["label"] = _require_text(values.get("label"), "label", 200)
        values["name"] = to_field_name(values.get("name") or values["label"])
        if not values["name"]:
            raise ValidationError("name must contain letters or digits", field="name")
        self._check_unique_name(project, values["name"])
        field_type = self._field_type(values.get("field_type", FieldType.TEXT.value))
        values["field_type"] = field_type.value
        values["validation"] = validate_rules(values.get("validation"))
        values["required"] = bool(values.get("required", False))

        raw_choices = data.get("choices") or []
        if field_type.has_choices and not raw_choices:
            raise ValidationError(f"A {field_type.value} field needs at least one choice", field="choices")
        if raw_choices and not field_type.has_choices:
            raise ValidationError(f"A {field_type.value} field cannot have choices", field="choices")

        field = Field(**values, choices=self._build_choices(field_type, raw_choices))
        ordering.place(list(step.fields), field, "field_order", data.get("position"))
        step.fields.append(field)
        step.fields.sort(key=lambda f: f.field_order)
        await self._commit()
        logger.info(f"Field {field.name} ({field.field_type}) added to step {step_id}")
        return field

    async def update_field(self, owner_id: str, field_id: uuid.UUID, data: Dict[str, Any]) -> Field:
        """
        Update a field. Switching to a non-choice type drops its choices;
        switching to a choice type requires `choices` in the same update.
        Supplying `choices` replaces the whole list.
        """
        project, step, field = await self._locate_field(owner_id, field_id)
        values = _pick(data, FIELD_FIELDS)
        if "label" in values:
            values["label"] = _require_text(values["label"], "label", 200)
        if "name" in values:
            values["name"] = to_field_name(values["name"])
            if not values["name"]:
                raise ValidationError("name must contain letters or digits", field="name")
            self._check_unique_name(project, values["name"], exclude=field)
        if "validation" in values:
            values["validation"] = validate_rules(values["validation"])
        new_type = self._field_type(values.get("field_type", field.field_type))
        values["field_type"] = new_type.value

        raw_choices = data.get("choices")
        if new_type.has_choices:
            if raw_choices is not None:
                if not raw_choices:
                    raise ValidationError(f"A {new_type.value} field needs at least one choice", field="choices")
                field.choices.clear()
                field.choices.extend(self._build_choices(new_type, raw_choices))
            elif not field.choices:
                raise ValidationError(
                    f"Changing to {new_type.value} requires choices in the same update", field="choices"
                )
            elif new_type in SINGLE_CHOICE_FIELD_TYPES and sum(c.is_default for c in field.choices) > 1:
                raise ValidationError(f"A {new_type.value} field can have only one default choice", field="choices")
        else:
            if raw_choices:
                raise ValidationError(f"A {new_type.value} field cannot have choices", field="choices")
            field.choices.clear()

        for key, value in values.items():
            setattr(field, key, value)
        if data.get("position") is not None:
            ordering.place(list(step.fields), field, "field_order", data["position"])
            step.fields.sort(key=lambda f: f.field_order)
        await self._commit()
        return field

    async def delete_field(self, owner_id: str, field_id: uuid.UUID) -> None:
        _, step, field = await self._locate_field(owner_id, field_id)
        await self.db.execute(delete(Response).where(Response.field_id == field_id))
        ordering.remove(list(step.fields), field, "field_order")
        step.fields.remove(field)
        step.fields.sort(key=lambda f: f.field_order)
        await self._commit()
        logger.info(f"Field {field_id} deleted from step {step.id}")

    async def reorder_fields(self, owner_id: str, step_id: uuid.UUID, ordered_ids: List[uuid.UUID]) -> Step:
        _, step = await self._locate_step(owner_id, step_id)
        try:
            ordering.reorder(step.fields, ordered_ids, "field_order")
        except ValueError as e:
            raise ValidationError(str(e), field="field_ids")
        step.fields.sort(key=lambda f: f.field_order)
        await self._commit()
        return step

    # ------------------------------------------------------------------
    # Choices
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_default(field: Field, choice: Choice) -> None:
        if choice.is_default and field.type in SINGLE_CHOICE_FIELD_TYPES:
            for other in field.choices:
                if other is not choice:
                    other.is_default = False

    async def add_choice(self, owner_id: str, field_id: uuid.UUID, data: Dict[str, Any]) -> Choice:
        _, _, field = await self._locate_field(owner_id, field_id)
        if not field.type.has_choices:
            raise ValidationError(f"A {field.field_type} field cannot have choices", field="field_type")
        label = _require_text(data.get("label"), "label", 200)
        value = (data.get("value") or label).strip()[:200]
        if any(c.value == value for c in field.choices):
            raise ValidationError(f"Duplicate choice value '{value}'", field="value")
        choice = Choice(label=label, value=value, is_default=bool(data.get("is_default")))
        ordering.place(list(field.choices), choice, "choice_order", data.get("position"))
        field.choices.append(choice)
        field.choices.sort(key=lambda c: c.choice_order)
        self._apply_default(field, choice)
        await self._commit()
        return choice

    async def update_choice(self, owner_id: str, choice_id: uuid.UUID, data: Dict[str, Any]) -> Choice:
        _, field, choice = await self._locate_choice(owner_id, choice_id)
        values = _pick(data, CHOICE_FIELDS)
        if "label" in values:
            values["label"] = _require_text(values["label"], "label", 200)
        if "value" in values:
            values["value"] = _require_text(values["value"], "value", 200)
            if any(c.value == values["value"] for c in field.choices if c is not choice):
                raise ValidationError(f"Duplicate choice value '{values['value']}'", field="value")
        for key, value in values.items():
            setattr(choice, key, value)
        self._apply_default(field, choice)
        if data.get("position") is not None:
            ordering.place(list(field.choices), choice, "choice_order", data["position"])
            field.choices.sort(key=lambda c: c.choice_order)
        await self._commit()
        return choice

    async def delete_choice(self, owner_id: str, choice_id: uuid.UUID) -> None:
        _, field, choice = await self._locate_choice(owner_id, choice_id)
        if len(field.choices) == 1:
            raise ValidationError(
                f"Cannot delete the last choice of a {field.field_type} field; change its type instead",
                field="choices",
            )
        ordering.remove(list(field.choices), choice, "choice_order")
        field.choices.remove(choice)
        field.choices.sort(key=lambda c: c.choice_order)
        await self._commit()

    async def reorder_choices(self, owner_id: str, field_id: uuid.UUID, ordered_ids: List[uuid.UUID]) -> Field:
        _, _, field = await self._locate_field(owner_id, field_id)
        try:
            ordering.reorder(field.choices, ordered_ids, "choice_order")
        except ValueError as e:
            raise ValidationError(str(e), field="choice_ids")
        field.choices.sort(key=lambda c: c.choice_order)
        await self._commit()
        return field

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def list_sessions(
        self, owner_id: str, project_id: uuid.UUID, offset: int = 0, limit: int = 50
    ) -> List[ToolSession]:
        """Newest first, with responses and unattributed inputs, incomplete ones included."""
        await self.load_tree(owner_id, project_id)
        stmt = (
            select(ToolSession)
            .where(ToolSession.project_id == project_id)
            .options(selectinload(ToolSession.responses))
            .order_by(ToolSession.started_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list((await self.db.execute(stmt)).scalars().all())
