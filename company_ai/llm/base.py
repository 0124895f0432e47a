"""
Provider-agnostic chat contract.

Every text-generation backend implements ModelProvider.chat(). Agents never
talk to a vendor SDK directly; they build a ChatRequest and read back a
ChatResult whose role names and token usage are already normalized.

Usage:
    from company_ai.llm.base import ChatMessage, ChatRequest

    result = await provider.chat(ChatRequest(
        model="claude-sonnet-4-20250514",
        messages=[ChatMessage(role="user", content="Hello")],
        system="You are a helpful analyst.",
        max_tokens=1024,
    ))
    print(result.content, result.usage.input_tokens)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from company_ai.llm.llm_config import DEFAULT_MODELS


# ---------------------------------------------------------------------------
# Request / Response Types
# ---------------------------------------------------------------------------

@dataclass
class ChatMessage:
    """One conversation turn. System text travels in ChatRequest.system."""

    role: Literal["user", "assistant"]
    content: str


@dataclass
class ChatRequest:
    model: str
    messages: list[ChatMessage]
    system: Optional[str] = None
    max_tokens: int = 4096
    temperature: Optional[float] = None


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class ChatResult:
    """Unified response from any provider."""

    content: str
    model: str
    usage: Usage = field(default_factory=Usage)
    raw_response: Any = None  # Provider-specific response object


# ---------------------------------------------------------------------------
# Provider Interface
# ---------------------------------------------------------------------------

class ModelProvider(ABC):
    """
    Uniform interface to a text-generation backend.

    Implementations map ChatRequest onto their vendor's call format and
    normalize the reply. Vendor errors (network, auth, rate limits) are
    raised unchanged; no retry happens at this layer.
    """

    name: str = ""

    @property
    def default_model(self) -> Optional[str]:
        """Model used when the caller's AgentConfig leaves it unset."""
        return DEFAULT_MODELS.get(self.name)

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResult:
        """Send one chat request and return the normalized result."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
