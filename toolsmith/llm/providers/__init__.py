"""LLM providers module."""

from toolsmith.llm.providers.base import LLMProvider, BaseLLMProvider
from toolsmith.llm.providers.anthropic import AnthropicProvider
from toolsmith.llm.providers.mock import MockLLMProvider, MockCall

__all__ = [
    "LLMProvider",
    "BaseLLMProvider",
    "AnthropicProvider",
    "MockLLMProvider",
    "MockCall",
]
