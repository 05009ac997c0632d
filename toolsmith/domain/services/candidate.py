"""
Candidate definition trees.

A CandidateTree is an uncommitted Project/Step/Field/Choice structure, as
produced by the structure synthesizer or read from an export. It is always
in canonical form: `type`, `required`, `choices`, `help_text`. The external
spellings (`field_type`, `is_required`, `options`, `description`) are
translated in `coerce_tree` and nowhere else.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field as PydanticField

from toolsmith.api.models.enums import AccessTier, FieldType, SINGLE_CHOICE_FIELD_TYPES

MAX_FIELD_NAME_LENGTH = 100

# Structural contract for untrusted input; per-item problems are repaired by coerce_tree
TOOL_STRUCTURE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["steps"],
    "properties": {
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "fields": {"type": "array", "items": {"type": "object"}},
                },
            },
        },
        "system_prompt": {"type": ["string", "null"]},
        "systemPrompt": {"type": ["string", "null"]},
    },
}


class CandidateChoice(BaseModel):
    label: str
    value: str
    is_default: bool = False


class CandidateField(BaseModel):
    name: str
    label: str
    type: FieldType = FieldType.TEXT
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    required: bool = False
    validation: Dict[str, Any] = PydanticField(default_factory=dict)
    choices: List[CandidateChoice] = PydanticField(default_factory=list)


class CandidateStep(BaseModel):
    name: str
    description: Optional[str] = None
    page_title: Optional[str] = None
    page_subtitle: Optional[str] = None
    fields: List[CandidateField] = PydanticField(default_factory=list)


class CandidateTree(BaseModel):
    name: str
    description: Optional[str] = None
    ai_role: Optional[str] = None
    ai_persona_description: Optional[str] = None
    system_prompt: str = ""
    header_title: Optional[str] = None
    header_subtitle: Optional[str] = None
    access_tier: AccessTier = AccessTier.PUBLIC
    steps: List[CandidateStep] = PydanticField(default_factory=list)

    @property
    def field_count(self) -> int:
        return sum(len(s.fields) for s in self.steps)


def to_field_name(text: str) -> str:
    """Sanitise arbitrary text into a [a-z0-9_] identifier ("" if nothing survives)."""
    name = re.sub(r"[^a-z0-9]+", "_", (text or "").lower()).strip("_")
    return name[:MAX_FIELD_NAME_LENGTH]


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "required")
    return bool(value)


def _coerce_choices(raw: Any, field_type: FieldType) -> List[CandidateChoice]:
    if isinstance(raw, str):
        raw = [part for part in raw.split(",")]
    if not isinstance(raw, list):
        return []
    choices: List[CandidateChoice] = []
    seen = set()
    for item in raw:
        if isinstance(item, dict):
            label = _text(_first(item, "label", "text", "name", "value"))
            value = _text(_first(item, "value", "label", "text", "name"))
            is_default = _truthy(_first(item, "is_default", "isDefault", "default", default=False))
        else:
            label = value = _text(item)
            is_default = False
        if not label or not value or value in seen:
            continue
        seen.add(value)
        choices.append(CandidateChoice(label=label, value=value, is_default=is_default))

    if field_type in SINGLE_CHOICE_FIELD_TYPES:
        found = False
        for choice in choices:
            if choice.is_default and found:
                choice.is_default = False
            found = found or choice.is_default
    return choices


def _coerce_validation(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        return {}
    rules: Dict[str, Any] = {}
    for source, target in (("min_length", "min_length"), ("minLength", "min_length"),
                           ("max_length", "max_length"), ("maxLength", "max_length")):
        value = raw.get(source)
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            rules.setdefault(target, value)
    pattern = raw.get("pattern")
    if isinstance(pattern, str) and pattern:
        try:
            re.compile(pattern)
            rules["pattern"] = pattern
        except re.error:
            pass
    if "min_length" in rules and "max_length" in rules and rules["min_length"] > rules["max_length"]:
        rules.pop("min_length")
    return rules


def _coerce_field(raw: Dict[str, Any], used_names: set, position: int) -> Optional[CandidateField]:
    label = _text(_first(raw, "label", "question", "title", "name"))
    if not label:
        return None
    field_type = FieldType.coerce(_first(raw, "type", "field_type", "fieldType", default="text"))
    choices = _coerce_choices(_first(raw, "choices", "options", default=[]), field_type)

    if field_type.has_choices and not choices:
        field_type = FieldType.TEXT
    if not field_type.has_choices:
        choices = []

    base = to_field_name(_first(raw, "name", "field_name", default="") or label) or f"field_{position}"
    name = base
    suffix = 2
    while name in used_names:
        tail = f"_{suffix}"
        name = base[:MAX_FIELD_NAME_LENGTH - len(tail)] + tail
        suffix += 1
    used_names.add(name)

    return CandidateField(
        name=name,
        label=label,
        type=field_type,
        placeholder=_text(raw.get("placeholder")),
        help_text=_text(_first(raw, "help_text", "helpText", "description")),
        required=_truthy(_first(raw, "required", "is_required", "isRequired", default=False)),
        validation=_coerce_validation(_first(raw, "validation", "validation_rules", default={})),
        choices=choices,
    )


def scaffold(name: str, idea: Optional[str] = None, system_prompt: Optional[str] = None) -> CandidateTree:
    """Minimal valid tree: one step holding one required free-text field."""
    return CandidateTree(
        name=name,
        description=idea,
        system_prompt=system_prompt or (
            f"You are a helpful assistant for {name}. "
            "Use the information provided by the user to produce a clear, useful result."
        ),
        header_title=name,
        steps=[
            CandidateStep(
                name="Details",
                page_title="Tell us about your needs",
                fields=[
                    CandidateField(
                        name="details",
                        label="Describe what you need",
                        type=FieldType.TEXTAREA,
                        placeholder="Provide as much detail as you can",
                        required=True,
                    )
                ],
            )
        ],
    )


def coerce_tree(raw: Dict[str, Any], fallback_name: str, idea: Optional[str] = None) -> CandidateTree:
    """
    Normalise a loosely-structured tree into canonical form.

    Unknown field types become text, choice types without options become
    text, options on non-choice types are dropped, field names are
    sanitised and de-duplicated across the whole tree, and steps with no
    usable fields are dropped. An empty result is replaced by `scaffold`.
    """
    project = raw.get("project") if isinstance(raw.get("project"), dict) else {}
    merged = {**raw, **project}

    name = _text(_first(merged, "name", "project_name", "title")) or fallback_name
    system_prompt = _text(_first(merged, "system_prompt", "systemPrompt", "prompt")) or ""

    used_names: set = set()
    steps: List[CandidateStep] = []
    raw_steps = raw.get("steps") if isinstance(raw.get("steps"), list) else []
    for step_index, raw_step in enumerate(raw_steps, start=1):
        if not isinstance(raw_step, dict):
            continue
        fields = []
        raw_fields = raw_step.get("fields") if isinstance(raw_step.get("fields"), list) else []
        for raw_field in raw_fields:
            if isinstance(raw_field, dict):
                coerced = _coerce_field(raw_field, used_names, len(used_names) + 1)
                if coerced:
                    fields.append(coerced)
        if not fields:
            continue
        step_name = _text(_first(raw_step, "name", "title", "page_title")) or f"Step {step_index}"
        steps.append(CandidateStep(
            name=step_name,
            description=_text(raw_step.get("description")),
            page_title=_text(_first(raw_step, "page_title", "pageTitle", "title")) or step_name,
            page_subtitle=_text(_first(raw_step, "page_subtitle", "pageSubtitle", "subtitle")),
            fields=fields,
        ))

    if not steps:
        return scaffold(name, idea=idea, system_prompt=system_prompt or None)

    tier = _text(_first(merged, "access_tier", "accessTier"))
    try:
        access_tier = AccessTier(tier) if tier else AccessTier.PUBLIC
    except ValueError:
        access_tier = AccessTier.PUBLIC

    return CandidateTree(
        name=name,
        description=_text(_first(merged, "description", "project_description")) or idea,
        ai_role=_text(_first(merged, "ai_role", "role")),
        ai_persona_description=_text(_first(merged, "ai_persona_description", "persona")),
        system_prompt=system_prompt or scaffold(name).system_prompt,
        header_title=_text(_first(merged, "header_title", "headerTitle")) or name,
        header_subtitle=_text(_first(merged, "header_subtitle", "headerSubtitle")),
        access_tier=access_tier,
        steps=steps,
    )
