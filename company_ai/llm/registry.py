"""
Provider registry: maps a provider name to a factory.

Built-in providers are registered at import time under the ProviderName
values. Custom providers can be added at runtime under any string name
without touching call sites.

Usage:
    from company_ai.llm.registry import create_provider, register_provider

    @register_provider("mistral")
    def _mistral(api_key, **options):
        return MistralProvider(api_key)

    provider = create_provider("anthropic", os.environ["ANTHROPIC_API_KEY"])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

from company_ai.exceptions import UnknownProviderError
from company_ai.llm.base import ModelProvider
from company_ai.llm.llm_config import DEFAULT_MODELS
from company_ai.llm.providers import (
    AnthropicProvider,
    GeminiProvider,
    OllamaProvider,
    OpenAIProvider,
)

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., ModelProvider]


class ProviderName(str, Enum):
    """Built-in provider identifiers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"


@dataclass
class ProviderConfig:
    """A provider name plus the credential and options needed to build it."""

    provider: Union[ProviderName, str]
    api_key: str = ""
    options: dict[str, Any] = field(default_factory=dict)


# Global map: provider name -> factory(api_key, **options)
PROVIDER_FACTORIES: dict[str, ProviderFactory] = {}


def _key(name: Union[ProviderName, str]) -> str:
    return name.value if isinstance(name, ProviderName) else name


def register_provider(
    name: Union[ProviderName, str],
    factory: Optional[ProviderFactory] = None,
):
    """
    Register a provider factory. Names are case-sensitive; the last
    registration for a name wins.

    Works as a plain call or as a decorator:
        register_provider("mistral", make_mistral)

        @register_provider("mistral")
        def make_mistral(api_key, **options): ...
    """

    def decorator(fn: ProviderFactory) -> ProviderFactory:
        key = _key(name)
        if key in PROVIDER_FACTORIES:
            logger.warning(f"Overwriting existing provider registration: {key}")
        PROVIDER_FACTORIES[key] = fn
        return fn

    if factory is not None:
        return decorator(factory)
    return decorator


def create_provider(
    name: Union[ProviderName, str],
    api_key: str = "",
    **options: Any,
) -> ModelProvider:
    """
    Build a live provider.

    Raises:
        UnknownProviderError: If no factory is registered under `name`.
    """
    key = _key(name)
    factory = PROVIDER_FACTORIES.get(key)
    if factory is None:
        raise UnknownProviderError(key, list_providers())
    return factory(api_key, **options)


def create_provider_from_config(config: ProviderConfig) -> ModelProvider:
    return create_provider(config.provider, config.api_key, **config.options)


def list_providers() -> list[str]:
    """Return registered provider names in registration order."""
    return list(PROVIDER_FACTORIES.keys())


def get_default_model(name: Union[ProviderName, str]) -> str:
    return DEFAULT_MODELS.get(_key(name), "default")


# ---------------------------------------------------------------------------
# Built-in registrations
# ---------------------------------------------------------------------------

register_provider(ProviderName.ANTHROPIC, lambda key, **_: AnthropicProvider(key))
register_provider(ProviderName.GEMINI, lambda key, **_: GeminiProvider(key))
register_provider(ProviderName.OPENAI, lambda key, **_: OpenAIProvider(key))
register_provider(
    ProviderName.OLLAMA,
    lambda key, **opts: OllamaProvider(key, base_url=opts.get("base_url")),
)
