"""
Tests for the built-in ModelProvider adapters.

Covers request mapping (system prompt placement, role names, optional
temperature) and response normalization (text, model, token usage).

All tests use mocks: no actual API calls to Anthropic, OpenAI, Google, or Ollama.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from company_ai.llm.base import ChatMessage, ChatRequest
from company_ai.llm.providers import (
    AnthropicProvider,
    GeminiProvider,
    OllamaProvider,
    OpenAIProvider,
)


# ===========================================================================
# Fixtures
# ===========================================================================

@pytest.fixture
def request_with_history():
    return ChatRequest(
        model="test-model",
        messages=[
            ChatMessage(role="user", content="How is sales?"),
            ChatMessage(role="assistant", content="MRR is down 8%."),
            ChatMessage(role="user", content="Why?"),
        ],
        system="You are the Sales agent.",
        max_tokens=512,
        temperature=0.3,
    )


@pytest.fixture
def mock_anthropic():
    """Mock AsyncAnthropic client."""
    client = MagicMock()
    response = MagicMock()
    response.content = [MagicMock(type="text", text="Claude says hello")]
    response.model = "claude-sonnet-4-20250514"
    response.usage = MagicMock(input_tokens=100, output_tokens=50)
    client.messages.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def mock_openai():
    """Mock AsyncOpenAI client."""
    client = MagicMock()
    choice = MagicMock()
    choice.message.content = "GPT says hello"
    response = MagicMock()
    response.choices = [choice]
    response.model = "gpt-4o"
    response.usage = MagicMock(prompt_tokens=80, completion_tokens=40)
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def mock_gemini():
    """Mock google-genai client."""
    client = MagicMock()
    response = MagicMock()
    response.text = "Gemini says hello"
    response.usage_metadata = MagicMock(prompt_token_count=70, candidates_token_count=30)
    client.aio.models.generate_content = AsyncMock(return_value=response)
    return client


# ===========================================================================
# Anthropic
# ===========================================================================

class TestAnthropicProvider:

    @pytest.mark.asyncio
    async def test_maps_request(self, mock_anthropic, request_with_history):
        provider = AnthropicProvider("sk-test", client=mock_anthropic)
        await provider.chat(request_with_history)

        kwargs = mock_anthropic.messages.create.call_args.kwargs
        assert kwargs["system"] == "You are the Sales agent."
        assert kwargs["max_tokens"] == 512
        assert kwargs["temperature"] == 0.3
        assert [m["role"] for m in kwargs["messages"]] == ["user", "assistant", "user"]

    @pytest.mark.asyncio
    async def test_normalizes_response(self, mock_anthropic, request_with_history):
        provider = AnthropicProvider("sk-test", client=mock_anthropic)
        result = await provider.chat(request_with_history)

        assert result.content == "Claude says hello"
        assert result.model == "claude-sonnet-4-20250514"
        assert result.usage.input_tokens == 100
        assert result.usage.output_tokens == 50
        assert result.usage.total_tokens == 150

    @pytest.mark.asyncio
    async def test_omits_unset_optionals(self, mock_anthropic):
        provider = AnthropicProvider("sk-test", client=mock_anthropic)
        await provider.chat(ChatRequest(
            model="m", messages=[ChatMessage(role="user", content="hi")]
        ))
        kwargs = mock_anthropic.messages.create.call_args.kwargs
        assert "system" not in kwargs
        assert "temperature" not in kwargs

    @pytest.mark.asyncio
    async def test_errors_propagate(self, mock_anthropic, request_with_history):
        mock_anthropic.messages.create.side_effect = RuntimeError("rate limited")
        provider = AnthropicProvider("sk-test", client=mock_anthropic)
        with pytest.raises(RuntimeError, match="rate limited"):
            await provider.chat(request_with_history)


# ===========================================================================
# OpenAI
# ===========================================================================

class TestOpenAIProvider:

    @pytest.mark.asyncio
    async def test_system_prompt_prepended(self, mock_openai, request_with_history):
        provider = OpenAIProvider("sk-test", client=mock_openai)
        await provider.chat(request_with_history)

        messages = mock_openai.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "You are the Sales agent."}
        assert len(messages) == 4

    @pytest.mark.asyncio
    async def test_normalizes_usage(self, mock_openai, request_with_history):
        provider = OpenAIProvider("sk-test", client=mock_openai)
        result = await provider.chat(request_with_history)

        assert result.content == "GPT says hello"
        assert result.usage.input_tokens == 80
        assert result.usage.output_tokens == 40

    @pytest.mark.asyncio
    async def test_missing_usage(self, mock_openai, request_with_history):
        mock_openai.chat.completions.create.return_value.usage = None
        provider = OpenAIProvider("sk-test", client=mock_openai)
        result = await provider.chat(request_with_history)
        assert result.usage.total_tokens == 0


# ===========================================================================
# Gemini
# ===========================================================================

class TestGeminiProvider:

    @pytest.mark.asyncio
    async def test_assistant_becomes_model(self, mock_gemini, request_with_history):
        provider = GeminiProvider("key", client=mock_gemini)
        await provider.chat(request_with_history)

        kwargs = mock_gemini.aio.models.generate_content.call_args.kwargs
        assert [c.role for c in kwargs["contents"]] == ["user", "model", "user"]
        assert kwargs["config"].system_instruction == "You are the Sales agent."
        assert kwargs["config"].max_output_tokens == 512

    @pytest.mark.asyncio
    async def test_normalizes_response(self, mock_gemini, request_with_history):
        provider = GeminiProvider("key", client=mock_gemini)
        result = await provider.chat(request_with_history)

        assert result.content == "Gemini says hello"
        assert result.model == "test-model"
        assert result.usage.input_tokens == 70
        assert result.usage.output_tokens == 30


# ===========================================================================
# Ollama
# ===========================================================================

class TestOllamaProvider:

    @staticmethod
    def _patched_client(payload):
        resp = MagicMock()
        resp.json.return_value = payload
        client = MagicMock()
        client.post = AsyncMock(return_value=resp)
        cm = MagicMock()
        cm.__aenter__ = AsyncMock(return_value=client)
        cm.__aexit__ = AsyncMock(return_value=False)
        return cm, client

    @pytest.mark.asyncio
    async def test_posts_to_chat_endpoint(self, request_with_history):
        cm, client = self._patched_client({
            "model": "llama3.1:8b",
            "message": {"role": "assistant", "content": "Llama says hello"},
            "prompt_eval_count": 12,
            "eval_count": 8,
        })
        provider = OllamaProvider(base_url="http://gpu-box:11434")
        with patch("company_ai.llm.providers.httpx.AsyncClient", return_value=cm):
            result = await provider.chat(request_with_history)

        url = client.post.call_args.args[0]
        body = client.post.call_args.kwargs["json"]
        assert url == "http://gpu-box:11434/api/chat"
        assert body["stream"] is False
        assert body["messages"][0]["role"] == "system"
        assert body["options"] == {"num_predict": 512, "temperature": 0.3}

        assert result.content == "Llama says hello"
        assert result.model == "llama3.1:8b"
        assert result.usage.input_tokens == 12
        assert result.usage.output_tokens == 8

    @pytest.mark.asyncio
    async def test_missing_fields_default(self, request_with_history):
        cm, _ = self._patched_client({})
        with patch("company_ai.llm.providers.httpx.AsyncClient", return_value=cm):
            result = await OllamaProvider().chat(request_with_history)
        assert result.content == ""
        assert result.model == "test-model"
        assert result.usage.total_tokens == 0
