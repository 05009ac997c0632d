"""Mock LLM provider for tests and offline development."""

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from toolsmith.llm.models import Message, LLMResponse, LLMError, LLMException
from toolsmith.llm.providers.base import BaseLLMProvider


@dataclass
class MockCall:
    """Record of a mock LLM call."""
    messages: List[Message]
    model: str
    max_tokens: int
    temperature: float
    system_prompt: Optional[str]
    timestamp: float = field(default_factory=time.time)


class MockLLMProvider(BaseLLMProvider):
    """Mock LLM provider for testing without API calls."""

    def __init__(
        self,
        default_response: str = "Mock response",
        responses: Optional[Dict[str, str]] = None,
        response_fn: Optional[Callable[[List[Message], str], str]] = None,
        delay_seconds: float = 0.0,
    ):
        """
        Args:
            default_response: Default response when no trigger matches
            responses: Dict mapping prompt substrings to responses
            response_fn: Custom function to generate responses
            delay_seconds: Real sleep before answering (timeout tests)
        """
        self._default_response = default_response
        self._responses = responses or {}
        self._response_fn = response_fn
        self._delay_seconds = delay_seconds
        self._calls: List[MockCall] = []
        self._error_on_next: Optional[LLMError] = None

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def calls(self) -> List[MockCall]:
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def last_call(self) -> Optional[MockCall]:
        return self._calls[-1] if self._calls else None

    def set_error_on_next(self, error: LLMError) -> None:
        """Configure an error to be raised on the next call."""
        self._error_on_next = error

    def set_response(self, trigger: str, response: str) -> None:
        """Set a response for prompts containing the trigger string."""
        self._responses[trigger] = response

    async def complete(
        self,
        messages: List[Message],
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        self._calls.append(MockCall(
            messages=messages,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system_prompt=system_prompt,
        ))

        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)

        if self._error_on_next:
            error = self._error_on_next
            self._error_on_next = None
            raise LLMException(error)

        return LLMResponse(
            content=self._get_response(messages, system_prompt),
            model=model,
            input_tokens=100,
            output_tokens=50,
            latency_ms=self._delay_seconds * 1000,
        )

    def _get_response(self, messages: List[Message], system_prompt: Optional[str]) -> str:
        if self._response_fn:
            return self._response_fn(messages, system_prompt or "")

        all_text = (system_prompt or "") + " ".join(m.content for m in messages)
        for trigger, response in self._responses.items():
            if trigger in all_text:
                return response

        return self._default_response


def create_json_response_provider(payload: Any) -> MockLLMProvider:
    """Create a mock provider that always returns `payload` as JSON."""
    def response_fn(messages: List[Message], system_prompt: str) -> str:
        return json.dumps(payload, indent=2)

    return MockLLMProvider(response_fn=response_fn)


def create_echo_provider() -> MockLLMProvider:
    """Create a mock provider that echoes the last user message."""
    def response_fn(messages: List[Message], system_prompt: str) -> str:
        user_messages = [m for m in messages if m.role.value == "user"]
        if user_messages:
            return f"Echo: {user_messages[-1].content}"
        return "No user message"

    return MockLLMProvider(response_fn=response_fn)
