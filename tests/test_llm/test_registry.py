"""
Tests for the provider registry and model presets.
"""

from __future__ import annotations

import logging

import pytest

from company_ai.exceptions import UnknownProviderError
from company_ai.llm import registry
from company_ai.llm.llm_config import (
    DEFAULT_MODELS,
    MODEL_PRESETS,
    get_default_preset,
    get_preset_by_id,
)
from company_ai.llm.providers import (
    AnthropicProvider,
    GeminiProvider,
    OllamaProvider,
    OpenAIProvider,
)
from company_ai.llm.registry import (
    ProviderConfig,
    ProviderName,
    create_provider,
    create_provider_from_config,
    get_default_model,
    list_providers,
    register_provider,
)
from company_ai.testing.mock_provider import MockModelProvider


@pytest.fixture(autouse=True)
def _restore_registry():
    saved = dict(registry.PROVIDER_FACTORIES)
    yield
    registry.PROVIDER_FACTORIES.clear()
    registry.PROVIDER_FACTORIES.update(saved)


class TestBuiltins:

    def test_builtins_registered(self):
        assert set(list_providers()) >= {"anthropic", "openai", "gemini", "ollama"}

    def test_create_anthropic(self):
        provider = create_provider("anthropic", "sk-test")
        assert isinstance(provider, AnthropicProvider)
        assert provider.default_model == DEFAULT_MODELS["anthropic"]

    def test_create_by_enum(self):
        assert isinstance(create_provider(ProviderName.OPENAI, "sk-test"), OpenAIProvider)

    def test_create_gemini(self):
        assert isinstance(create_provider("gemini", "key"), GeminiProvider)

    def test_ollama_needs_no_key(self):
        provider = create_provider("ollama", base_url="http://gpu-box:11434/")
        assert isinstance(provider, OllamaProvider)
        assert provider.base_url == "http://gpu-box:11434"

    def test_ollama_default_url(self):
        assert create_provider("ollama").base_url == "http://localhost:11434"

    def test_from_config(self):
        provider = create_provider_from_config(
            ProviderConfig(provider="ollama", options={"base_url": "http://x:1"})
        )
        assert provider.base_url == "http://x:1"


class TestRegistration:

    def test_unknown_provider(self):
        with pytest.raises(UnknownProviderError) as exc_info:
            create_provider("mistral")
        assert "anthropic" in exc_info.value.available

    def test_register_plain_call(self):
        register_provider("scripted", lambda key, **_: MockModelProvider())
        assert isinstance(create_provider("scripted"), MockModelProvider)
        assert "scripted" in list_providers()

    def test_register_decorator(self):
        @register_provider("canned")
        def _canned(api_key, **options):
            return MockModelProvider(default=options.get("reply", api_key))

        assert _canned is not None
        provider = create_provider("canned", "k", reply="hello")
        assert provider._default == "hello"

    def test_names_are_case_sensitive(self):
        with pytest.raises(UnknownProviderError):
            create_provider("Anthropic")

    def test_overwrite_warns_and_wins(self, caplog):
        register_provider("dup", lambda key, **_: MockModelProvider(default="one"))
        with caplog.at_level(logging.WARNING, logger="company_ai.llm.registry"):
            register_provider("dup", lambda key, **_: MockModelProvider(default="two"))
        assert "dup" in caplog.text
        assert create_provider("dup")._default == "two"


class TestDefaultsAndPresets:

    def test_default_model(self):
        assert get_default_model("openai") == "gpt-4o"
        assert get_default_model(ProviderName.GEMINI) == "gemini-2.5-flash"
        assert get_default_model("unknown") == "default"

    def test_default_preset(self):
        preset = get_default_preset()
        assert preset.id == "gemini-flash"
        assert preset.is_default

    def test_exactly_one_default(self):
        assert sum(p.is_default for p in MODEL_PRESETS) == 1

    def test_lookup(self):
        assert get_preset_by_id("gpt4o").provider == "openai"
        assert get_preset_by_id("nope") is None

    def test_display_name(self):
        assert get_preset_by_id("claude-sonnet").display_name == "anthropic/claude-3.5-sonnet"
