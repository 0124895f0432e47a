"""
Custom exception hierarchy for the Company AI engine.

Structured error handling with clear categories:
- Configuration errors (unknown provider, missing credential)
- Structured response errors (model reply had no usable JSON)
- Decryption errors (internal to credential resolution)

Vendor SDK failures (network, auth, rate limits) are NOT wrapped here;
they propagate unchanged to the caller.

Usage:
    from company_ai.exceptions import NoStructuredContent

    try:
        data, meta = await agent.send_json_message(prompt)
    except NoStructuredContent:
        ...
"""

from __future__ import annotations

from typing import Optional


class CompanyAIError(Exception):
    """
    Base exception for all engine errors.

    Catch `CompanyAIError` to handle any engine-specific failure.
    """

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


# ── Configuration Errors ──────────────────────────────────────────


class ConfigurationError(CompanyAIError):
    """
    Raised when the engine is missing configuration it needs to run.

    The message always names the configuration key the user has to set.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.config_key = config_key


class UnknownProviderError(ConfigurationError):
    """Raised when a provider name is not in the provider registry."""

    def __init__(
        self,
        provider: str,
        available: list[str],
        *,
        details: Optional[dict] = None,
    ):
        super().__init__(
            f'Unknown AI provider "{provider}". '
            f"Available: {', '.join(available) or 'none'}",
            config_key="ai_provider",
            details=details,
        )
        self.provider = provider
        self.available = list(available)


class MissingAPIKeyError(ConfigurationError):
    """Raised when neither a user key nor a system key is configured."""

    def __init__(
        self,
        provider: str,
        env_var: Optional[str],
        *,
        details: Optional[dict] = None,
    ):
        hint = f"Set {env_var} or add a user API key." if env_var else (
            "Add a user API key for this provider."
        )
        super().__init__(
            f'AI service not configured for provider "{provider}". {hint}',
            config_key=env_var,
            details=details,
        )
        self.provider = provider
        self.env_var = env_var


# ── Structured Response Errors ────────────────────────────────────


class StructuredResponseError(CompanyAIError):
    """
    Base for failures to pull a JSON object out of a model reply.

    Recoverable at the caller's discretion: the agent itself never retries.
    """

    def __init__(
        self,
        message: str,
        *,
        raw_content: str = "",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.raw_content = raw_content


class NoStructuredContent(StructuredResponseError):
    """The reply contained no JSON object at all."""


class MalformedStructuredContent(StructuredResponseError):
    """A JSON object was found but could not be decoded or validated."""


# ── Credential Errors ─────────────────────────────────────────────


class DecryptionError(CompanyAIError):
    """
    Raised when a stored credential cannot be decrypted.

    Internal to credential resolution: callers treat it exactly like a
    missing key and never show it to end users.
    """
