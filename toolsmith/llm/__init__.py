"""LLM integration module for toolsmith."""

from toolsmith.llm.models import (
    Message,
    MessageRole,
    LLMResponse,
    LLMError,
    LLMException,
)
from toolsmith.llm.providers.base import LLMProvider, BaseLLMProvider
from toolsmith.llm.providers.anthropic import AnthropicProvider
from toolsmith.llm.providers.mock import (
    MockLLMProvider,
    MockCall,
    create_json_response_provider,
    create_echo_provider,
)
from toolsmith.llm.output_parser import (
    LLMResponseParser,
    OutputValidator,
    ParseResult,
    extract_questions,
    strip_code_fences,
)
from toolsmith.llm.completion import CompletionClient, CompletionConfig, build_provider

__all__ = [
    "Message",
    "MessageRole",
    "LLMResponse",
    "LLMError",
    "LLMException",
    "LLMProvider",
    "BaseLLMProvider",
    "AnthropicProvider",
    "MockLLMProvider",
    "MockCall",
    "create_json_response_provider",
    "create_echo_provider",
    "LLMResponseParser",
    "OutputValidator",
    "ParseResult",
    "extract_questions",
    "strip_code_fences",
    "CompletionClient",
    "CompletionConfig",
    "build_provider",
]
