"""LLM provider base protocol."""

from abc import ABC, abstractmethod
from typing import List, Optional, Protocol, runtime_checkable

from toolsmith.llm.models import Message, LLMResponse


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'anthropic', 'mock')."""
        ...

    async def complete(
        self,
        messages: List[Message],
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages (user/assistant turns)
            model: Model identifier or alias
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            system_prompt: Optional system instructions

        Returns:
            LLMResponse with content and metadata

        Raises:
            LLMException: On provider errors
        """
        ...


class BaseLLMProvider(ABC):
    """Base class for LLM providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        ...
