"""Defensive parsing of free-text completion output that should contain JSON."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator


_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


@dataclass
class ParseResult:
    """Outcome of a JSON extraction attempt."""
    success: bool
    data: Any = None
    strategy_used: Optional[str] = None
    error_messages: List[str] = field(default_factory=list)


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _balanced_span(text: str, open_char: str, close_char: str) -> Optional[str]:
    """First balanced {...} or [...] span, string-literal aware."""
    start = text.find(open_char)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == open_char:
                depth += 1
            elif ch == close_char:
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        start = text.find(open_char, start + 1)
    return None


class LLMResponseParser:
    """
    Tries progressively looser strategies until one yields JSON:

    1. the whole text
    2. the body of a fenced code block
    3. the first balanced object (or array) inside the text
    4. the same span with trailing commas removed
    """

    def __init__(self, expect: str = "object"):
        self._open, self._close = ("{", "}") if expect == "object" else ("[", "]")
        self._strategies: List[Tuple[str, Callable[[str], Optional[str]]]] = [
            ("direct", lambda t: t.strip()),
            ("code_fence", lambda t: strip_code_fences(t) if "```" in t else None),
            ("balanced_span", lambda t: _balanced_span(strip_code_fences(t), self._open, self._close)),
            ("trailing_commas", self._without_trailing_commas),
        ]

    def _without_trailing_commas(self, text: str) -> Optional[str]:
        span = _balanced_span(strip_code_fences(text), self._open, self._close)
        if span is None:
            return None
        return re.sub(r",\s*([}\]])", r"\1", span)

    def parse(self, text: Optional[str]) -> ParseResult:
        if not text or not text.strip():
            return ParseResult(success=False, error_messages=["Empty response"])

        errors = []
        for name, extract in self._strategies:
            candidate = extract(text)
            if not candidate:
                continue
            try:
                data = json.loads(candidate)
            except (json.JSONDecodeError, ValueError) as e:
                errors.append(f"{name}: {e}")
                continue
            return ParseResult(success=True, data=data, strategy_used=name)

        return ParseResult(success=False, error_messages=errors or ["No JSON found"])


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


class OutputValidator:
    """Validates parsed output against a JSON schema."""

    def validate(self, data: Any, schema: Dict[str, Any]) -> ValidationResult:
        validator = Draft7Validator(schema)
        errors = [
            f"{'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
            for error in validator.iter_errors(data)
        ]
        return ValidationResult(valid=not errors, errors=errors)


_QUESTION_LINE_RE = re.compile(r"^\s*(?:\d+[\.\)]|[-*•])?\s*(.+\?)\s*$")


def extract_questions(text: str) -> List[str]:
    """
    Pull a list of question strings out of a response.

    Accepts a JSON array of strings, an object with a "questions" array
    (strings or {"question": ...} objects), or plain numbered/bulleted lines.
    """
    if not text:
        return []

    for expect in ("array", "object"):
        result = LLMResponseParser(expect=expect).parse(text)
        if not result.success:
            continue
        data = result.data
        if isinstance(data, dict):
            data = data.get("questions")
        if isinstance(data, list):
            questions = []
            for item in data:
                if isinstance(item, dict):
                    item = item.get("question") or item.get("text")
                if isinstance(item, str) and item.strip():
                    questions.append(item.strip())
            if questions:
                return questions

    questions = []
    for line in text.splitlines():
        match = _QUESTION_LINE_RE.match(line)
        if match:
            questions.append(match.group(1).strip())
    return questions
