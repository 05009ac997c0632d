"""
Structure synthesizer: idea -> clarifying questions -> candidate tree.

The completion service's output is untrusted free text. Parsing goes
through LLMResponseParser, the result is checked against
TOOL_STRUCTURE_SCHEMA and normalised by coerce_tree; anything unusable
falls back to the single-step scaffold. A failed completion call is not a
parse failure and propagates as UpstreamGenerationError.

Nothing here writes to the database; callers commit a candidate through
DefinitionStore.create_from_candidate.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from toolsmith.api.v1.exceptions import ValidationError
from toolsmith.domain.services.ai_config_service import AIConfigService
from toolsmith.domain.services.candidate import (
    TOOL_STRUCTURE_SCHEMA,
    CandidateTree,
    coerce_tree,
    scaffold,
)
from toolsmith.domain.services.field_recommendations import recommend
from toolsmith.llm.output_parser import LLMResponseParser, OutputValidator, extract_questions
from toolsmith.llm.providers.base import LLMProvider

logger = logging.getLogger(__name__)

MIN_QUESTIONS, MAX_QUESTIONS = 3, 5
MIN_FOLLOW_UPS, MAX_FOLLOW_UPS = 2, 3

DEFAULT_QUESTIONS = [
    "Who is the target audience for this tool?",
    "What specific problem should the tool solve for its users?",
    "What information do users need to provide to get a useful result?",
    "What should the final output look like?",
    "Are there any constraints or special considerations to keep in mind?",
]

DEFAULT_FOLLOW_UPS = [
    "Which of the details you described matter most to the result?",
    "How detailed should the generated result be?",
    "Is there anything users commonly get wrong that the tool should ask about?",
]

SYSTEM_INSTRUCTIONS = (
    "You design multi-step web forms whose answers are sent to an AI assistant. "
    "Respond with JSON only, without commentary."
)

QUESTIONS_PROMPT = """You are helping create a multi-step AI tool. Generate 3-5 thoughtful questions to help refine the project requirements.

Project: "{idea}"
Expert Type: "{role}"

Generate questions that will help create better, more specific form fields for the end users. Focus on:
- Target audience details
- Specific use cases
- Required information from users
- Desired outcomes
- Any special considerations

Respond with JSON only:
{{"questions": [{{"question": "Question text here?"}}]}}"""

FOLLOW_UP_PROMPT = """Based on the previous answers, generate 2-3 more specific questions to further refine the project.

Project: "{idea}"
Expert Type: "{role}"

Previous Q&A:
{qa}

Generate follow-up questions that dig deeper into the specific needs. Respond with JSON only:
{{"questions": [{{"question": "More specific question based on answers?"}}]}}"""

STRUCTURE_PROMPT = """Create a multi-step form with detailed fields based on the refined requirements.

Project: "{idea}"
Expert Type: "{role}"
{name_line}
User Requirements from Refinement:
{qa}

Suggested fields for this expert type (keep, adapt or replace them to fit the requirements):
{suggested_fields}

Create 2-4 steps with appropriate form fields. For select/checkbox/radio fields, include specific options that make sense for the context.

IMPORTANT:
- The system_prompt is the instruction for the AI that serves end users of the tool. It should act as the expert type and perform the task.
- Do not create submit button fields.
- Allowed field types: text, textarea, select, radio, checkbox, number, email, date.

Respond with JSON only:
{{
  "project_name": "Short name (max 3 words)",
  "project_description": "Brief description",
  "ai_persona_description": "Expert persona based on requirements",
  "system_prompt": "You are a {role}. ...",
  "header_title": "Page title",
  "header_subtitle": "Page subtitle",
  "steps": [
    {{
      "name": "Step Name",
      "page_title": "Step title",
      "page_subtitle": "Step subtitle",
      "fields": [
        {{
          "name": "field_name",
          "label": "Field Label",
          "type": "text",
          "placeholder": "Placeholder text",
          "description": "Help text",
          "required": true,
          "options": ["Option 1", "Option 2"]
        }}
      ]
    }}
  ]
}}"""

QAPairs = Union[Dict[str, str], Iterable[Dict[str, Any]], None]


def qa_pairs(answers: QAPairs) -> List[Tuple[str, str]]:
    """
    Normalise answered questions to (question, answer) pairs.

    Accepts a {question: answer} mapping or a list of
    {"question": ..., "answer": ...} objects; unanswered entries are skipped.
    """
    if not answers:
        return []
    items = answers.items() if isinstance(answers, dict) else (
        (a.get("question"), a.get("answer")) for a in answers if isinstance(a, dict)
    )
    pairs = []
    for question, answer in items:
        question = str(question or "").strip()
        answer = str(answer or "").strip()
        if question and answer:
            pairs.append((question, answer))
    return pairs


def _pad(questions: List[str], defaults: List[str], low: int, high: int) -> List[str]:
    """Generated questions first (deduplicated, capped), defaults only to reach the minimum."""
    result: List[str] = []
    seen = set()
    for question in questions:
        key = question.strip().lower()
        if key and key not in seen and len(result) < high:
            seen.add(key)
            result.append(question.strip())
    for question in defaults:
        if len(result) >= low:
            break
        if question.lower() not in seen:
            seen.add(question.lower())
            result.append(question)
    return result


def _require(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    return value


def _default_name(idea: str) -> str:
    words = idea.split()[:3]
    return " ".join(w.capitalize() for w in words) or "New Tool"


class StructureSynthesizer:
    def __init__(self, db: AsyncSession, llm_provider: Optional[LLMProvider] = None):
        self.db = db
        self.llm_provider = llm_provider
        self.parser = LLMResponseParser(expect="object")
        self.validator = OutputValidator()

    async def _ask(self, prompt: str) -> str:
        client = await AIConfigService(self.db).completion_client(self.llm_provider)
        return await client.complete(SYSTEM_INSTRUCTIONS, [], prompt)

    async def generate_questions(self, idea: str, role: str) -> List[str]:
        """3-5 clarifying questions for an idea; defaults fill any gap."""
        idea, role = _require(idea, "idea"), _require(role, "role")
        text = await self._ask(QUESTIONS_PROMPT.format(idea=idea, role=role))
        questions = extract_questions(text)
        if len(questions) < MIN_QUESTIONS:
            logger.info(f"Generator returned {len(questions)} questions; padding with defaults")
        return _pad(questions, DEFAULT_QUESTIONS, MIN_QUESTIONS, MAX_QUESTIONS)

    async def generate_follow_up_questions(self, idea: str, role: str, answers: QAPairs) -> List[str]:
        idea, role = _require(idea, "idea"), _require(role, "role")
        qa = "\n\n".join(f"Q: {q}\nA: {a}" for q, a in qa_pairs(answers)) or "(none)"
        text = await self._ask(FOLLOW_UP_PROMPT.format(idea=idea, role=role, qa=qa))
        return _pad(extract_questions(text), DEFAULT_FOLLOW_UPS, MIN_FOLLOW_UPS, MAX_FOLLOW_UPS)

    async def synthesize(
        self,
        idea: str,
        role: str,
        answers: QAPairs = None,
        project_name: Optional[str] = None,
    ) -> CandidateTree:
        """Draft a candidate tree. Never raises on malformed generator output."""
        idea, role = _require(idea, "idea"), _require(role, "role")
        name = (project_name or "").strip() or _default_name(idea)
        qa = "\n".join(f"{q}: {a}" for q, a in qa_pairs(answers)) or "(none)"
        name_line = f'Project Name: "{project_name.strip()}"\n' if project_name and project_name.strip() else ""

        suggested = recommend(role, idea).field_summary()
        text = await self._ask(STRUCTURE_PROMPT.format(
            idea=idea, role=role, qa=qa, name_line=name_line, suggested_fields=suggested,
        ))

        result = self.parser.parse(text)
        if not result.success:
            logger.warning(f"Unparseable structure output, using scaffold: {result.error_messages}")
            return self._fallback(name, idea, role)

        check = self.validator.validate(result.data, TOOL_STRUCTURE_SCHEMA)
        if not check.valid:
            logger.warning(f"Structure output failed schema check, using scaffold: {check.errors[:3]}")
            return self._fallback(name, idea, role)

        tree = coerce_tree(result.data, fallback_name=name, idea=idea)
        if project_name and project_name.strip():
            tree.name = name
            tree.header_title = tree.header_title or name
        tree.ai_role = tree.ai_role or role
        logger.info(
            f"Synthesized '{tree.name}' via {result.strategy_used}: "
            f"{len(tree.steps)} steps, {tree.field_count} fields"
        )
        return tree

    def _fallback(self, name: str, idea: str, role: str) -> CandidateTree:
        """Single-step, single-field scaffold built from the role's primary suggested field."""
        recommendation = recommend(role, idea)
        tree = scaffold(name, idea=idea, system_prompt=recommendation.system_prompt)
        primary = recommendation.fields[0]
        primary.required = True
        tree.steps[0].fields = [primary]
        tree.ai_role = role
        return tree
