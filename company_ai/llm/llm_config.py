"""
LLM Configuration: default models per provider and selectable presets.

Presets are what a settings screen offers; DEFAULT_MODELS is what an agent
falls back to when its AgentConfig leaves the model unset.

Usage:
    from company_ai.llm.llm_config import DEFAULT_MODELS, get_default_preset

    DEFAULT_MODELS["anthropic"]   # "claude-sonnet-4-20250514"
    get_default_preset().id       # "gemini-flash"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# ---------------------------------------------------------------------------
# Default Models
# ---------------------------------------------------------------------------

DEFAULT_MODELS: dict[str, str] = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o",
    "anthropic": "claude-sonnet-4-20250514",
    "ollama": "llama3.1:8b",
}


# ---------------------------------------------------------------------------
# Model Presets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelPreset:
    """A provider/model pairing offered to users."""

    id: str
    provider: str
    model: str
    label: str
    description: str = ""
    is_default: bool = False

    @property
    def display_name(self) -> str:
        return f"{self.provider}/{self.model}"


MODEL_PRESETS: list[ModelPreset] = [
    ModelPreset(
        id="gemini-flash",
        provider="gemini",
        model="gemini-2.5-flash",
        label="Gemini 2.5 Flash",
        description="Fast, cost-effective general model (default).",
        is_default=True,
    ),
    ModelPreset(
        id="gpt4o",
        provider="openai",
        model="gpt-4o",
        label="GPT-4o",
        description="Balanced reasoning and generation from OpenAI.",
    ),
    ModelPreset(
        id="claude-sonnet",
        provider="anthropic",
        model="claude-3.5-sonnet",
        label="Claude 3.5 Sonnet",
        description="Strong reasoning and analysis from Anthropic.",
    ),
]


def get_preset_by_id(preset_id: str) -> Optional[ModelPreset]:
    for preset in MODEL_PRESETS:
        if preset.id == preset_id:
            return preset
    return None


def get_default_preset() -> ModelPreset:
    """Return the preset flagged as default, or the first one."""
    for preset in MODEL_PRESETS:
        if preset.is_default:
            return preset
    return MODEL_PRESETS[0]
