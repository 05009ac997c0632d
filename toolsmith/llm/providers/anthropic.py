"""Anthropic Messages API provider."""

import time
import logging
from typing import List, Optional

import httpx

from toolsmith.llm.models import Message, MessageRole, LLMResponse, LLMError, LLMException
from toolsmith.llm.providers.base import BaseLLMProvider


logger = logging.getLogger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude API provider."""

    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    MODELS = {
        "sonnet": "claude-sonnet-4-20250514",
        "haiku": "claude-3-5-haiku-20241022",
        "opus": "claude-opus-4-20250514",
    }

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Anthropic API key
            base_url: Optional custom endpoint
            timeout: Transport-level timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._api_key = api_key
        self._base_url = base_url or self.API_URL
        self._timeout = timeout
        self._transport = transport

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def _resolve_model(self, model: str) -> str:
        return self.MODELS.get(model, model)

    async def complete(
        self,
        messages: List[Message],
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        model = self._resolve_model(model)

        request_body = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": self._format_messages(messages),
        }
        if system_prompt:
            request_body["system"] = system_prompt

        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }

        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._base_url, json=request_body, headers=headers)
        except httpx.TimeoutException as e:
            raise LLMException(LLMError.timeout(f"Request timed out: {e}"))
        except httpx.RequestError as e:
            raise LLMException(LLMError.api_error(f"Request failed: {e}", 0))

        latency_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code == 429:
            raise LLMException(LLMError.rate_limit("Rate limit exceeded"))

        if response.status_code >= 400:
            try:
                error_body = response.json() if response.content else {}
            except ValueError:
                error_body = {}
            error_msg = error_body.get("error", {}).get("message", response.text)
            raise LLMException(LLMError.api_error(error_msg, response.status_code))

        try:
            data = response.json()
        except ValueError as e:
            raise LLMException(LLMError.malformed(f"Invalid JSON from provider: {e}"))

        content = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )

        usage = data.get("usage", {})
        logger.debug(
            f"Anthropic completion model={model} "
            f"tokens={usage.get('input_tokens', 0)}/{usage.get('output_tokens', 0)} "
            f"latency={latency_ms:.0f}ms"
        )

        return LLMResponse(
            content=content,
            model=model,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            latency_ms=latency_ms,
            stop_reason=data.get("stop_reason", "end_turn"),
        )

    def _format_messages(self, messages: List[Message]) -> List[dict]:
        # System is sent via the top-level "system" parameter
        return [m.to_dict() for m in messages if m.role != MessageRole.SYSTEM]
