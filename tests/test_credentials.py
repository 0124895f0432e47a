"""
Tests for API credential encryption and resolution.

Validates:
- Fernet round trip with a secret-derived key
- Resolution order: user key, then system key, then MissingAPIKeyError
- Undecryptable user keys fall through to the system key
- System fallbacks are cached for the TTL; user keys are not
"""

from __future__ import annotations

import logging

import pytest

from company_ai.credentials import (
    CredentialResolver,
    InMemoryUserKeyStore,
    decrypt_secret,
    encrypt_secret,
    system_config,
)
from company_ai.exceptions import ConfigurationError, DecryptionError, MissingAPIKeyError

SECRET = "test-encryption-secret"


# ─── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "COMPANY_AI_KEY_SECRET", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GOOGLE_AI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryUserKeyStore(secret=SECRET)


@pytest.fixture
def resolver(store, clock):
    return CredentialResolver(store, secret=SECRET, cache_ttl_seconds=300, clock=clock)


# ─── Encryption ───────────────────────────────────────────────────────


class TestEncryption:

    def test_round_trip(self):
        token = encrypt_secret("sk-user-123", SECRET)
        assert token != "sk-user-123"
        assert decrypt_secret(token, SECRET) == "sk-user-123"

    def test_secret_from_env(self, monkeypatch):
        monkeypatch.setenv("COMPANY_AI_KEY_SECRET", SECRET)
        assert decrypt_secret(encrypt_secret("k")) == "k"

    def test_encrypt_without_secret(self):
        with pytest.raises(ConfigurationError) as exc_info:
            encrypt_secret("k")
        assert exc_info.value.config_key == "COMPANY_AI_KEY_SECRET"

    def test_wrong_secret(self):
        token = encrypt_secret("k", SECRET)
        with pytest.raises(DecryptionError):
            decrypt_secret(token, "other-secret")

    def test_corrupt_token(self):
        with pytest.raises(DecryptionError):
            decrypt_secret("not-a-token", SECRET)

    def test_decrypt_without_secret(self):
        with pytest.raises(DecryptionError):
            decrypt_secret("anything")


# ─── Resolution ───────────────────────────────────────────────────────


class TestSystemConfig:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "  sk-sys  ")
        config = system_config("openai")
        assert config.api_key == "sk-sys"
        assert config.source == "system"

    def test_missing(self):
        with pytest.raises(MissingAPIKeyError) as exc_info:
            system_config("gemini")
        assert "GOOGLE_AI_API_KEY" in str(exc_info.value)

    def test_unknown_provider(self):
        with pytest.raises(MissingAPIKeyError) as exc_info:
            system_config("mistral")
        assert exc_info.value.env_var is None

    def test_keyless_provider(self):
        config = system_config("ollama")
        assert config.api_key == ""
        assert config.source == "system"


class TestCredentialResolver:

    @pytest.mark.asyncio
    async def test_user_key_wins(self, resolver, store, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-system")
        store.set_key("u1", "anthropic", "sk-user")
        config = await resolver.resolve("u1", "anthropic")
        assert config.api_key == "sk-user"
        assert config.source == "user"

    @pytest.mark.asyncio
    async def test_falls_back_to_system(self, resolver, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-system")
        config = await resolver.resolve("u1", "anthropic")
        assert config.api_key == "sk-system"
        assert config.source == "system"

    @pytest.mark.asyncio
    async def test_undecryptable_key_is_missing(self, resolver, store, monkeypatch, caplog):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-system")
        store.set_encrypted_key("u1", "anthropic", encrypt_secret("sk-user", "rotated"))
        with caplog.at_level(logging.WARNING, logger="company_ai.credentials"):
            config = await resolver.resolve("u1", "anthropic")
        assert config.source == "system"
        assert "user_key_unusable" in caplog.text

    @pytest.mark.asyncio
    async def test_keyless_provider_resolves(self, resolver):
        config = await resolver.resolve("u1", "ollama")
        assert config.provider == "ollama"
        assert config.api_key == ""
        assert config.source == "system"

    @pytest.mark.asyncio
    async def test_nothing_configured(self, resolver):
        with pytest.raises(MissingAPIKeyError):
            await resolver.resolve("u1", "openai")

    @pytest.mark.asyncio
    async def test_system_fallback_cached(self, resolver, store, clock, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-system")
        await resolver.resolve("u1", "openai")

        store.set_key("u1", "openai", "sk-user")
        clock.now += 299
        assert (await resolver.resolve("u1", "openai")).source == "system"

        clock.now += 2
        assert (await resolver.resolve("u1", "openai")).source == "user"

    @pytest.mark.asyncio
    async def test_invalidate(self, resolver, store, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-system")
        await resolver.resolve("u1", "openai")
        store.set_key("u1", "openai", "sk-user")
        resolver.invalidate("u1", "openai")
        assert (await resolver.resolve("u1", "openai")).source == "user"

    @pytest.mark.asyncio
    async def test_user_key_not_cached(self, resolver, store, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-system")
        store.set_key("u1", "openai", "sk-user")
        await resolver.resolve("u1", "openai")
        store.delete_key("u1", "openai")
        assert (await resolver.resolve("u1", "openai")).source == "system"

    @pytest.mark.asyncio
    async def test_cache_is_per_user(self, resolver, store, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-system")
        await resolver.resolve("u1", "openai")
        store.set_key("u2", "openai", "sk-u2")
        assert (await resolver.resolve("u2", "openai")).api_key == "sk-u2"
