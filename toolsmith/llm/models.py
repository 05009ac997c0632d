"""LLM domain models."""

from dataclasses import dataclass
from typing import Dict, Optional
from enum import Enum


class MessageRole(str, Enum):
    """Message roles for LLM conversations."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A message in an LLM conversation."""
    role: MessageRole
    content: str

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content)

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for API calls."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str
    model: str
    input_tokens: int
    output_tokens: int
    latency_ms: float
    stop_reason: str = "end_turn"

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMError:
    """Error from an LLM provider."""
    error_type: str
    message: str
    status_code: Optional[int] = None

    @classmethod
    def rate_limit(cls, message: str) -> "LLMError":
        return cls(error_type="rate_limit", message=message, status_code=429)

    @classmethod
    def timeout(cls, message: str) -> "LLMError":
        return cls(error_type="timeout", message=message)

    @classmethod
    def api_error(cls, message: str, status_code: int) -> "LLMError":
        return cls(error_type="api_error", message=message, status_code=status_code)

    @classmethod
    def malformed(cls, message: str) -> "LLMError":
        """Provider answered but the payload was unusable."""
        return cls(error_type="malformed", message=message)


class LLMException(Exception):
    """Exception wrapping LLM errors."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)
