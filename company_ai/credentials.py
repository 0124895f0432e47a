"""
API credential resolution for AI providers.

Resolves (user_id, provider) to the API key an agent should use:

1. A user-supplied key, stored Fernet-encrypted. A key that fails to
   decrypt is treated exactly like a missing key.
2. The system key from the provider's environment variable.
3. Otherwise MissingAPIKeyError naming that variable.

System fallbacks are cached in-process for a short TTL so every AI call
does not hit the key store.

Usage:
    from company_ai.credentials import CredentialResolver, InMemoryUserKeyStore

    resolver = CredentialResolver(InMemoryUserKeyStore())
    config = await resolver.resolve("user-1", "anthropic")
    config.source  # "user" or "system"
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken

from company_ai.exceptions import ConfigurationError, DecryptionError, MissingAPIKeyError

logger = logging.getLogger(__name__)

SECRET_ENV = "COMPANY_AI_KEY_SECRET"
DEFAULT_CACHE_TTL_SECONDS = 300

PROVIDER_ENV_KEYS: dict[str, str] = {
    "gemini": "GOOGLE_AI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

# Local backends that authenticate nothing; they resolve to an empty key
KEYLESS_PROVIDERS = frozenset({"ollama"})


# ---------------------------------------------------------------------------
# Encryption Utilities
# ---------------------------------------------------------------------------

def _derive_fernet_key(secret: str) -> bytes:
    """SHA-256 of the secret, url-safe base64 encoded (Fernet needs 32 bytes)."""
    hashed = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(hashed)


def _get_fernet(secret: Optional[str] = None) -> Optional[Fernet]:
    key = secret or os.environ.get(SECRET_ENV, "").strip()
    if not key:
        return None
    return Fernet(_derive_fernet_key(key))


def encrypt_secret(plaintext: str, secret: Optional[str] = None) -> str:
    """
    Encrypt an API key for storage.

    Raises:
        ConfigurationError: If no encryption secret is configured.
    """
    f = _get_fernet(secret)
    if f is None:
        raise ConfigurationError(
            f"{SECRET_ENV} is not set. Generate one with: "
            "python -c \"import secrets; print(secrets.token_hex(32))\"",
            config_key=SECRET_ENV,
        )
    return f.encrypt(plaintext.encode("utf-8")).decode("utf-8")


def decrypt_secret(token: str, secret: Optional[str] = None) -> str:
    """
    Decrypt a stored API key.

    Raises:
        DecryptionError: If the secret is missing, wrong, or the token is corrupt.
    """
    f = _get_fernet(secret)
    if f is None:
        raise DecryptionError(f"{SECRET_ENV} is not set")
    try:
        return f.decrypt(token.encode("utf-8")).decode("utf-8")
    except (InvalidToken, ValueError) as e:
        raise DecryptionError("Stored credential could not be decrypted") from e


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EffectiveAIConfig:
    provider: str
    api_key: str
    source: Literal["user", "system"]


class UserKeyStore(Protocol):
    """Where encrypted user API keys live (a database table in production)."""

    async def get_encrypted_key(self, user_id: str, provider: str) -> Optional[str]:
        ...


class InMemoryUserKeyStore:
    """Dict-backed UserKeyStore for tests and local runs."""

    def __init__(self, secret: Optional[str] = None):
        self._secret = secret
        self._keys: dict[tuple[str, str], str] = {}

    def set_key(self, user_id: str, provider: str, api_key: str) -> None:
        self._keys[(user_id, provider)] = encrypt_secret(api_key, self._secret)

    def set_encrypted_key(self, user_id: str, provider: str, token: str) -> None:
        self._keys[(user_id, provider)] = token

    def delete_key(self, user_id: str, provider: str) -> None:
        self._keys.pop((user_id, provider), None)

    async def get_encrypted_key(self, user_id: str, provider: str) -> Optional[str]:
        return self._keys.get((user_id, provider))


def system_config(provider: str) -> EffectiveAIConfig:
    """
    Resolve the system-level key for a provider.

    Keyless providers (KEYLESS_PROVIDERS) resolve to an empty key.

    Raises:
        MissingAPIKeyError: If the provider's environment variable is unset.
    """
    if provider in KEYLESS_PROVIDERS:
        return EffectiveAIConfig(provider=provider, api_key="", source="system")

    env_var = PROVIDER_ENV_KEYS.get(provider)
    api_key = os.environ.get(env_var, "").strip() if env_var else ""
    if not api_key:
        raise MissingAPIKeyError(provider, env_var)
    return EffectiveAIConfig(provider=provider, api_key=api_key, source="system")


class CredentialResolver:
    """Resolves the effective API key for a user and provider."""

    def __init__(
        self,
        key_store: UserKeyStore,
        *,
        secret: Optional[str] = None,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = key_store
        self._secret = secret
        self._ttl = cache_ttl_seconds
        self._clock = clock
        self._cache: dict[tuple[str, str], tuple[EffectiveAIConfig, float]] = {}

    async def resolve(self, user_id: str, provider: str) -> EffectiveAIConfig:
        """
        Return the key to use for (user_id, provider).

        Raises:
            MissingAPIKeyError: Neither a usable user key nor a system key exists.
        """
        cache_key = (user_id, provider)
        cached = self._cache.get(cache_key)
        if cached is not None and cached[1] > self._clock():
            return cached[0]

        token = await self._store.get_encrypted_key(user_id, provider)
        if token:
            try:
                api_key = decrypt_secret(token, self._secret)
                return EffectiveAIConfig(
                    provider=provider, api_key=api_key, source="user"
                )
            except DecryptionError:
                # No crypto details in the log line
                logger.warning(
                    "user_key_unusable",
                    extra={"user_id": user_id, "provider": provider},
                )

        config = system_config(provider)
        self._cache[cache_key] = (config, self._clock() + self._ttl)
        return config

    def invalidate(self, user_id: str, provider: str) -> None:
        """Drop the cached entry, e.g. after the user changes their key."""
        self._cache.pop((user_id, provider), None)

    def clear(self) -> None:
        self._cache.clear()
