"""
Suggested form fields per expert role.

A role is looked up by its field-name form ("Story Writer" -> story_writer).
Unknown roles get a generic two-field suggestion that names the role.
Suggestions seed the structure prompt and the fallback scaffold; they are
never written anywhere on their own.
"""

from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from toolsmith.api.models.enums import FieldType
from toolsmith.domain.services.candidate import CandidateChoice, CandidateField, to_field_name


class RoleRecommendation(BaseModel):
    role: str
    fields: List[CandidateField]
    system_prompt: str
    is_default: bool = False

    def field_summary(self) -> str:
        """One line per suggested field, for inclusion in a generation prompt."""
        lines = []
        for f in self.fields:
            line = f"- {f.name} ({f.type.value}{', required' if f.required else ''}): {f.label}"
            if f.choices:
                line += f" [{', '.join(c.label for c in f.choices)}]"
            lines.append(line)
        return "\n".join(lines)


def _field(name: str, label: str, field_type: FieldType = FieldType.TEXT, required: bool = False,
           placeholder: Optional[str] = None, choices: Sequence[str] = ()) -> CandidateField:
    return CandidateField(
        name=name,
        label=label,
        type=field_type,
        required=required,
        placeholder=placeholder,
        choices=[CandidateChoice(label=c, value=to_field_name(c)) for c in choices],
    )


CATALOGUE: Dict[str, Dict] = {
    "story_writer": {
        "fields": [
            _field("story_premise", "Story Premise", FieldType.TEXTAREA, True,
                   "What happens, to whom, and where?"),
            _field("genre", "Genre", FieldType.SELECT,
                   choices=["Fantasy", "Science Fiction", "Mystery", "Romance", "Literary"]),
            _field("audience_age", "Audience", FieldType.RADIO, choices=["Children", "Young Adult", "Adult"]),
            _field("story_length", "Length", FieldType.SELECT, choices=["Flash", "Short Story", "Chapter"]),
        ],
        "system_prompt": (
            "You are an expert {role}. Write an original story for the user about: {idea}. "
            "Honour the genre, audience and length they chose."
        ),
    },
    "business_consultant": {
        "fields": [
            _field("business_description", "Your Business", FieldType.TEXTAREA, True,
                   "What do you sell and to whom?"),
            _field("challenge", "Main Challenge", FieldType.TEXTAREA, True),
            _field("company_size", "Company Size", FieldType.SELECT,
                   choices=["Just me", "2-10", "11-50", "51+"]),
            _field("budget", "Budget", FieldType.NUMBER),
        ],
        "system_prompt": (
            "You are an experienced {role}. Help the user with: {idea}. "
            "Give concrete, prioritised recommendations that fit their size and budget."
        ),
    },
    "resume_writer": {
        "fields": [
            _field("full_name", "Full Name", required=True),
            _field("target_role", "Target Role", required=True),
            _field("experience", "Work Experience", FieldType.TEXTAREA, True,
                   "Roles, employers, dates and achievements"),
            _field("seniority", "Seniority", FieldType.SELECT, choices=["Entry", "Mid", "Senior", "Executive"]),
        ],
        "system_prompt": (
            "You are a professional {role}. Using the user's details, produce: {idea}. "
            "Write the finished document rather than advice about it."
        ),
    },
    "fitness_coach": {
        "fields": [
            _field("goal", "Fitness Goal", FieldType.SELECT, True,
                   choices=["Lose weight", "Build muscle", "Improve endurance", "Stay active"]),
            _field("experience_level", "Experience Level", FieldType.RADIO,
                   choices=["Beginner", "Intermediate", "Advanced"]),
            _field("days_per_week", "Days Per Week", FieldType.NUMBER),
            _field("limitations", "Injuries or Limitations", FieldType.TEXTAREA),
        ],
        "system_prompt": (
            "You are a certified {role}. Create a plan for: {idea}. "
            "Respect any limitations the user mentions."
        ),
    },
}


def known_roles() -> List[str]:
    return sorted(CATALOGUE)


def default_recommendation(role: str, idea: str = "") -> RoleRecommendation:
    task = f"Help the user with: {idea}." if idea else "Help the user with their request."
    return RoleRecommendation(
        role=role,
        fields=[
            _field("user_input", "Your Request", FieldType.TEXTAREA, True,
                   f"Describe what you'd like the {role} to help you with"),
            _field("additional_details", "Additional Details", FieldType.TEXTAREA,
                   placeholder="Any additional context or specific requirements"),
        ],
        system_prompt=(
            f"You are an expert {role}. {task} "
            "Provide detailed, helpful, and professional assistance."
        ),
        is_default=True,
    )


def recommend(role: str, idea: str = "") -> RoleRecommendation:
    """Suggested fields and system prompt for `role`; the generic default when the role is unknown."""
    role = (role or "").strip()
    entry = CATALOGUE.get(to_field_name(role)) if role else None
    if entry is None:
        return default_recommendation(role or "assistant", idea)
    return RoleRecommendation(
        role=role,
        fields=[f.model_copy(deep=True) for f in entry["fields"]],
        system_prompt=entry["system_prompt"].format(role=role, idea=idea or "the user's request"),
    )
