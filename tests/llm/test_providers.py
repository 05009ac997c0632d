"""Tests for LLM providers."""

import json

import httpx
import pytest

from toolsmith.llm import (
    AnthropicProvider,
    LLMError,
    LLMException,
    Message,
    MessageRole,
    MockLLMProvider,
    create_echo_provider,
    create_json_response_provider,
)


class TestMessage:

    def test_user_message_to_dict(self):
        assert Message.user("Hello").to_dict() == {"role": "user", "content": "Hello"}

    def test_assistant_message(self):
        assert Message.assistant("Hi").role == MessageRole.ASSISTANT


class TestMockLLMProvider:

    @pytest.mark.asyncio
    async def test_default_response(self):
        provider = MockLLMProvider(default_response="Test response")

        response = await provider.complete([Message.user("Hi")], model="sonnet")

        assert response.content == "Test response"
        assert response.total_tokens == 150

    @pytest.mark.asyncio
    async def test_trigger_matches_system_prompt(self):
        """Triggers are matched against system prompt and messages together."""
        provider = MockLLMProvider(responses={"resume writer": "Resume!"})

        response = await provider.complete(
            [Message.user("Go")], model="sonnet", system_prompt="You are a resume writer."
        )

        assert response.content == "Resume!"

    @pytest.mark.asyncio
    async def test_records_calls(self):
        provider = MockLLMProvider()

        await provider.complete([Message.user("One")], model="sonnet", system_prompt="sys")

        assert provider.call_count == 1
        assert provider.last_call().system_prompt == "sys"
        assert provider.last_call().messages[0].content == "One"

    @pytest.mark.asyncio
    async def test_error_on_next_is_raised_once(self):
        provider = MockLLMProvider()
        provider.set_error_on_next(LLMError.rate_limit("slow down"))

        with pytest.raises(LLMException) as exc_info:
            await provider.complete([Message.user("Hi")], model="sonnet")
        response = await provider.complete([Message.user("Hi")], model="sonnet")

        assert exc_info.value.error.error_type == "rate_limit"
        assert response.content == "Mock response"

    @pytest.mark.asyncio
    async def test_json_response_provider(self):
        provider = create_json_response_provider({"steps": []})

        response = await provider.complete([Message.user("Hi")], model="sonnet")

        assert json.loads(response.content) == {"steps": []}

    @pytest.mark.asyncio
    async def test_echo_provider(self):
        provider = create_echo_provider()

        response = await provider.complete([Message.user("ping")], model="sonnet")

        assert response.content == "Echo: ping"


def _anthropic(handler):
    return AnthropicProvider(api_key="test-key", transport=httpx.MockTransport(handler))


class TestAnthropicProvider:

    @pytest.mark.asyncio
    async def test_successful_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "content": [{"type": "text", "text": "Hello "}, {"type": "text", "text": "there"}],
                "usage": {"input_tokens": 12, "output_tokens": 3},
                "stop_reason": "end_turn",
            })

        response = await _anthropic(handler).complete(
            [Message.user("Hi")], model="sonnet", max_tokens=100, temperature=0.2, system_prompt="Be brief."
        )

        assert response.content == "Hello there"
        assert response.input_tokens == 12
        assert seen["headers"]["x-api-key"] == "test-key"
        assert seen["body"]["model"] == AnthropicProvider.MODELS["sonnet"]
        assert seen["body"]["system"] == "Be brief."
        assert seen["body"]["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    async def test_system_prompt_omitted_when_empty(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "ok"}]})

        await _anthropic(handler).complete([Message.user("Hi")], model="custom-model")

        assert "system" not in seen["body"]
        assert seen["body"]["model"] == "custom-model"

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        provider = _anthropic(lambda request: httpx.Response(429, json={}))

        with pytest.raises(LLMException) as exc_info:
            await provider.complete([Message.user("Hi")], model="sonnet")

        assert exc_info.value.error.error_type == "rate_limit"

    @pytest.mark.asyncio
    async def test_api_error_message(self):
        provider = _anthropic(
            lambda request: httpx.Response(400, json={"error": {"message": "bad request body"}})
        )

        with pytest.raises(LLMException) as exc_info:
            await provider.complete([Message.user("Hi")], model="sonnet")

        assert exc_info.value.error.error_type == "api_error"
        assert exc_info.value.error.status_code == 400
        assert exc_info.value.error.message == "bad request body"

    @pytest.mark.asyncio
    async def test_invalid_json_is_malformed(self):
        provider = _anthropic(lambda request: httpx.Response(200, content=b"<html>"))

        with pytest.raises(LLMException) as exc_info:
            await provider.complete([Message.user("Hi")], model="sonnet")

        assert exc_info.value.error.error_type == "malformed"

    @pytest.mark.asyncio
    async def test_transport_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(LLMException) as exc_info:
            await _anthropic(handler).complete([Message.user("Hi")], model="sonnet")

        assert exc_info.value.error.error_type == "timeout"
