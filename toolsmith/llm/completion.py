"""
Single-call completion client.

One call shape: (system_instructions, prior_turns, user_content) -> text.
Every provider failure is reported as UpstreamGenerationError with a
failure kind of timeout, rejected or malformed.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from toolsmith.api.v1.exceptions import UpstreamGenerationError
from toolsmith.core.config import settings
from toolsmith.llm.models import Message, LLMException
from toolsmith.llm.providers.anthropic import AnthropicProvider
from toolsmith.llm.providers.base import LLMProvider
from toolsmith.llm.providers.mock import MockLLMProvider

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("anthropic", "mock")


@dataclass(frozen=True)
class CompletionConfig:
    """Resolved completion settings for one call."""
    provider: str
    model: str
    max_tokens: int
    temperature: float
    timeout_seconds: float
    version: Optional[int] = None

    @classmethod
    def from_settings(cls) -> "CompletionConfig":
        return cls(
            provider=settings.LLM_PROVIDER,
            model=settings.LLM_MODEL,
            max_tokens=settings.LLM_MAX_TOKENS,
            temperature=settings.LLM_TEMPERATURE,
            timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
        )


def build_provider(config: CompletionConfig) -> LLMProvider:
    """Instantiate the provider named by a resolved config."""
    if config.provider == "anthropic":
        if not settings.ANTHROPIC_API_KEY:
            raise UpstreamGenerationError(
                UpstreamGenerationError.REJECTED,
                "Completion service is not configured (ANTHROPIC_API_KEY missing)",
            )
        return AnthropicProvider(api_key=settings.ANTHROPIC_API_KEY, timeout=config.timeout_seconds)
    if config.provider == "mock":
        return MockLLMProvider()
    raise UpstreamGenerationError(
        UpstreamGenerationError.REJECTED,
        f"Unknown completion provider '{config.provider}'",
    )


def _failure_kind(exc: LLMException) -> str:
    if exc.error.error_type == "timeout":
        return UpstreamGenerationError.TIMEOUT
    if exc.error.error_type == "malformed":
        return UpstreamGenerationError.MALFORMED
    return UpstreamGenerationError.REJECTED


class CompletionClient:
    """Bounded-time wrapper around an LLMProvider."""

    def __init__(self, provider: LLMProvider, config: CompletionConfig):
        self._provider = provider
        self._config = config

    @property
    def config(self) -> CompletionConfig:
        return self._config

    async def complete(
        self,
        system_instructions: Optional[str],
        prior_turns: Sequence[Message],
        user_content: str,
    ) -> str:
        messages: List[Message] = list(prior_turns) + [Message.user(user_content)]
        try:
            response = await asyncio.wait_for(
                self._provider.complete(
                    messages=messages,
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                    system_prompt=system_instructions or None,
                ),
                timeout=self._config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Completion timed out after {self._config.timeout_seconds}s "
                f"(provider={self._provider.provider_name})"
            )
            raise UpstreamGenerationError(
                UpstreamGenerationError.TIMEOUT,
                f"Completion service did not answer within {self._config.timeout_seconds:g}s",
            )
        except LLMException as e:
            kind = _failure_kind(e)
            logger.warning(f"Completion failed ({e.error.error_type}): {e.error.message}")
            raise UpstreamGenerationError(kind, f"Completion service error: {e.error.message}")

        if not response.content or not response.content.strip():
            raise UpstreamGenerationError(
                UpstreamGenerationError.MALFORMED,
                "Completion service returned an empty response",
            )
        return response.content
