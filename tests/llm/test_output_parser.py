"""Tests for LLM output parsing."""

from toolsmith.llm.output_parser import (
    LLMResponseParser,
    OutputValidator,
    extract_questions,
    strip_code_fences,
)


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestLLMResponseParser:

    def test_direct_json(self):
        result = LLMResponseParser().parse('{"steps": []}')

        assert result.success
        assert result.data == {"steps": []}
        assert result.strategy_used == "direct"

    def test_code_fence(self):
        result = LLMResponseParser().parse('Here you go:\n```json\n{"steps": []}\n```\nEnjoy!')

        assert result.success
        assert result.strategy_used == "code_fence"

    def test_embedded_object(self):
        """Prose around the object is ignored; braces inside strings don't confuse it."""
        text = 'Sure! {"name": "Curly {brace} tool", "steps": []} Hope that helps.'

        result = LLMResponseParser().parse(text)

        assert result.success
        assert result.strategy_used == "balanced_span"
        assert result.data["name"] == "Curly {brace} tool"

    def test_trailing_commas(self):
        result = LLMResponseParser().parse('Result: {"steps": [1, 2,],}')

        assert result.success
        assert result.strategy_used == "trailing_commas"
        assert result.data == {"steps": [1, 2]}

    def test_array_expectation(self):
        result = LLMResponseParser(expect="array").parse('Questions: ["One?", "Two?"]')

        assert result.data == ["One?", "Two?"]

    def test_garbage(self):
        result = LLMResponseParser().parse("I cannot help with that.")

        assert not result.success
        assert result.error_messages

    def test_empty(self):
        result = LLMResponseParser().parse("   ")

        assert not result.success
        assert result.error_messages == ["Empty response"]


class TestOutputValidator:

    def test_reports_paths(self):
        schema = {"type": "object", "required": ["steps"], "properties": {"steps": {"type": "array"}}}

        result = OutputValidator().validate({"steps": "nope"}, schema)

        assert not result.valid
        assert result.errors[0].startswith("steps:")

    def test_valid(self):
        assert OutputValidator().validate({"steps": []}, {"type": "object"}).valid


class TestExtractQuestions:

    def test_object_with_question_objects(self):
        text = '{"questions": [{"question": "Who is it for?"}, {"question": "What output?"}]}'

        assert extract_questions(text) == ["Who is it for?", "What output?"]

    def test_plain_array(self):
        assert extract_questions('["A?", "B?"]') == ["A?", "B?"]

    def test_numbered_lines(self):
        text = "Here are some questions:\n1. Who is the audience?\n2) How long should it be?\n- Any tone?"

        assert extract_questions(text) == ["Who is the audience?", "How long should it be?", "Any tone?"]

    def test_nothing_usable(self):
        assert extract_questions("No questions here.") == []
        assert extract_questions("") == []
