"""
Base agent for the Company AI engine.

An agent is a ModelProvider plus a rendered system prompt plus generation
parameters. Subclasses implement get_system_prompt() and build their
operations on two primitives:

- send_message(): free-form reply with token/latency metadata
- send_json_message(): reply parsed into one JSON object, optionally
  validated against a Pydantic model

Neither primitive retries. Parse failures raise NoStructuredContent or
MalformedStructuredContent; provider failures propagate unchanged.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, Type, TypeVar, overload

from pydantic import BaseModel, ValidationError

from company_ai.exceptions import ConfigurationError, MalformedStructuredContent
from company_ai.llm.base import ChatMessage, ChatRequest, ModelProvider
from company_ai.llm.json_extract import extract_json_object
from company_ai.models import AgentConfig, ChatResponse, HistoryMessage, ResponseMetadata

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7


class BaseAgent(ABC):
    """
    Abstract base class for department and orchestration agents.

    The config is resolved once at construction: unset fields fall back to
    the provider's default model, 4096 max tokens and temperature 0.7.
    """

    agent_kind: str = ""

    def __init__(self, provider: ModelProvider, config: Optional[AgentConfig] = None):
        self.provider = provider
        self.config = (config or AgentConfig()).with_defaults(
            AgentConfig(
                model=provider.default_model,
                max_tokens=DEFAULT_MAX_TOKENS,
                temperature=DEFAULT_TEMPERATURE,
            )
        )

    @abstractmethod
    def get_system_prompt(self) -> str:
        """Render the system prompt from the agent's current state."""
        ...

    # --- Primitives ---

    async def send_message(
        self,
        user_message: str,
        history: Optional[Sequence[HistoryMessage]] = None,
    ) -> ChatResponse:
        """
        Send one user turn after the given history.

        System-role history entries are dropped; the system prompt is
        supplied separately on every call.

        Raises:
            ConfigurationError: Neither the config nor the provider names a model.
        """
        if not self.config.model:
            raise ConfigurationError(
                f'No model configured for provider "{self.provider.name}". '
                "Set default_model or pass AgentConfig(model=...).",
                config_key="default_model",
            )

        messages = [
            ChatMessage(role=m.role, content=m.content)
            for m in (history or [])
            if m.role != "system"
        ]
        messages.append(ChatMessage(role="user", content=user_message))

        request = ChatRequest(
            model=self.config.model,
            messages=messages,
            system=self.get_system_prompt(),
            max_tokens=self.config.max_tokens or DEFAULT_MAX_TOKENS,
            temperature=self.config.temperature,
        )

        start = time.monotonic()
        result = await self.provider.chat(request)
        elapsed_ms = int((time.monotonic() - start) * 1000)

        metadata = ResponseMetadata(
            model=result.model,
            input_tokens=result.usage.input_tokens,
            output_tokens=result.usage.output_tokens,
            response_time_ms=elapsed_ms,
        )
        logger.debug(
            "agent_message_sent",
            extra={
                "agent": self.agent_kind,
                "provider": self.provider.name,
                "model": result.model,
                "duration_ms": elapsed_ms,
                "tokens": metadata.total_tokens,
            },
        )
        return ChatResponse(content=result.content, metadata=metadata)

    @overload
    async def send_json_message(
        self,
        user_message: str,
        history: Optional[Sequence[HistoryMessage]] = ...,
        schema: None = ...,
    ) -> tuple[dict[str, Any], ResponseMetadata]: ...

    @overload
    async def send_json_message(
        self,
        user_message: str,
        history: Optional[Sequence[HistoryMessage]] = ...,
        schema: Type[ModelT] = ...,
    ) -> tuple[ModelT, ResponseMetadata]: ...

    async def send_json_message(self, user_message, history=None, schema=None):
        """
        Send a request and parse the reply's JSON object.

        Args:
            user_message: The request prompt.
            history: Prior conversation turns.
            schema: Optional Pydantic model the object must validate against.

        Returns:
            (data, metadata) where data is a dict, or a `schema` instance.

        Raises:
            NoStructuredContent: The reply has no JSON object.
            MalformedStructuredContent: The object is broken or fails `schema`.
        """
        response = await self.send_message(user_message, history)
        data = extract_json_object(response.content)

        if schema is None:
            return data, response.metadata

        try:
            return schema.model_validate(data), response.metadata
        except ValidationError as e:
            raise MalformedStructuredContent(
                f"Response did not match {schema.__name__}: "
                f"{e.error_count()} validation error(s)",
                raw_content=response.content,
                details={"errors": e.errors(include_url=False)},
            ) from e

    # --- Public API ---

    async def chat(
        self,
        message: str,
        history: Optional[Sequence[HistoryMessage]] = None,
    ) -> ChatResponse:
        """Free-form conversation with the agent."""
        return await self.send_message(message, history)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} provider={self.provider.name!r} "
            f"model={self.config.model!r}>"
        )
