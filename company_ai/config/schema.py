"""
Pydantic settings schema for the Company AI engine.

Settings come from an optional YAML file overlaid with COMPANY_AI_*
environment variables (see loader.py). Everything has a default so the
engine starts with zero configuration apart from a provider API key.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class EngineSettings(BaseModel):
    """Runtime configuration for agents, providers and credential lookup."""

    environment: str = Field(
        "development", description="development, staging, test or production"
    )
    ai_provider: str = Field(
        "anthropic", description="Registered provider name used by default"
    )
    default_model: Optional[str] = Field(
        None, description="Model override; None uses the provider default"
    )
    max_tokens: int = Field(4096, ge=1, le=200_000)
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    ollama_base_url: str = "http://localhost:11434"
    credential_cache_ttl_seconds: int = Field(300, ge=0)
    history_window: int = Field(
        20, ge=0, description="Max conversation turns passed to an agent"
    )

    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        return v.lower().strip()

    @field_validator("ai_provider")
    @classmethod
    def strip_provider(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("ai_provider must not be empty")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
