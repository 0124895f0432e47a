"""
Built-in ModelProvider implementations.

Each adapter maps a ChatRequest onto one vendor's call format and
normalizes roles and token usage on the way back:

- AnthropicProvider: messages API, system prompt passed as `system`
- OpenAIProvider:    chat completions, system prompt prepended as a message
- GeminiProvider:    google-genai async client, "assistant" becomes "model"
- OllamaProvider:    local /api/chat over httpx

Vendor exceptions propagate unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import anthropic
import httpx
import openai
from google import genai
from google.genai import types as genai_types

from company_ai.llm.base import ChatMessage, ChatRequest, ChatResult, ModelProvider, Usage

logger = logging.getLogger(__name__)


class AnthropicProvider(ModelProvider):
    """Claude via anthropic.AsyncAnthropic."""

    name = "anthropic"

    def __init__(self, api_key: str, *, client: Any = None):
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def chat(self, request: ChatRequest) -> ChatResult:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "messages": [
                {"role": m.role, "content": m.content} for m in request.messages
            ],
        }
        if request.system:
            kwargs["system"] = request.system
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature

        response = await self._client.messages.create(**kwargs)

        text = ""
        for block in response.content or []:
            if getattr(block, "type", None) == "text":
                text = block.text
                break

        usage = getattr(response, "usage", None)
        return ChatResult(
            content=text,
            model=getattr(response, "model", None) or request.model,
            usage=Usage(
                input_tokens=getattr(usage, "input_tokens", 0) or 0,
                output_tokens=getattr(usage, "output_tokens", 0) or 0,
            ),
            raw_response=response,
        )


class OpenAIProvider(ModelProvider):
    """GPT models via openai.AsyncOpenAI."""

    name = "openai"

    def __init__(self, api_key: str, *, client: Any = None):
        self._client = client or openai.AsyncOpenAI(api_key=api_key)

    async def chat(self, request: ChatRequest) -> ChatResult:
        messages: list[dict[str, str]] = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.extend(
            {"role": m.role, "content": m.content} for m in request.messages
        )

        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "max_tokens": request.max_tokens,
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature

        response = await self._client.chat.completions.create(**kwargs)

        choice = response.choices[0] if response.choices else None
        text = choice.message.content if choice and choice.message else ""

        usage = response.usage
        return ChatResult(
            content=text or "",
            model=getattr(response, "model", None) or request.model,
            usage=Usage(
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
            ),
            raw_response=response,
        )


class GeminiProvider(ModelProvider):
    """Gemini via the google-genai async client."""

    name = "gemini"

    def __init__(self, api_key: str, *, client: Any = None):
        self._client = client or genai.Client(api_key=api_key)

    @staticmethod
    def _to_content(message: ChatMessage) -> genai_types.Content:
        role = "model" if message.role == "assistant" else "user"
        return genai_types.Content(
            role=role, parts=[genai_types.Part(text=message.content)]
        )

    async def chat(self, request: ChatRequest) -> ChatResult:
        config = genai_types.GenerateContentConfig(
            max_output_tokens=request.max_tokens,
            temperature=request.temperature,
            system_instruction=request.system or None,
        )

        response = await self._client.aio.models.generate_content(
            model=request.model,
            contents=[self._to_content(m) for m in request.messages],
            config=config,
        )

        usage = getattr(response, "usage_metadata", None)
        return ChatResult(
            content=response.text or "",
            model=request.model,
            usage=Usage(
                input_tokens=getattr(usage, "prompt_token_count", None) or 0,
                output_tokens=getattr(usage, "candidates_token_count", None) or 0,
            ),
            raw_response=response,
        )


class OllamaProvider(ModelProvider):
    """
    Local models via Ollama's /api/chat endpoint.

    Needs no credential; the api_key argument is accepted so the provider
    fits the registry's factory signature.
    """

    name = "ollama"

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
    ):
        self._base_url = (base_url or "http://localhost:11434").rstrip("/")
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    async def chat(self, request: ChatRequest) -> ChatResult:
        messages: list[dict[str, str]] = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.extend(
            {"role": m.role, "content": m.content} for m in request.messages
        )

        options: dict[str, Any] = {"num_predict": request.max_tokens}
        if request.temperature is not None:
            options["temperature"] = request.temperature

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(
                f"{self._base_url}/api/chat",
                json={
                    "model": request.model,
                    "messages": messages,
                    "stream": False,
                    "options": options,
                },
            )
            resp.raise_for_status()
            data = resp.json()

        return ChatResult(
            content=data.get("message", {}).get("content", ""),
            model=data.get("model") or request.model,
            usage=Usage(
                input_tokens=data.get("prompt_eval_count", 0),
                output_tokens=data.get("eval_count", 0),
            ),
            raw_response=data,
        )
