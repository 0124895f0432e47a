"""
Tests for the company-ai CLI, run offline against the demo scenario.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from company_ai.config.loader import clear_cache
from company_ai.llm.providers import OllamaProvider, OpenAIProvider
from main import _build_service, app

DEMO_SCENARIO = str(Path(__file__).resolve().parents[1] / "scenarios" / "demo_company.yaml")

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean(monkeypatch):
    for name in (
        "COMPANY_AI_CONFIG", "COMPANY_AI_AI_PROVIDER", "OPENAI_API_KEY", "ANTHROPIC_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


class TestCli:

    def test_providers(self):
        result = runner.invoke(app, ["providers"])
        assert result.exit_code == 0
        assert "anthropic" in result.output
        assert "gemini-flash" in result.output

    def test_analyze_offline(self):
        result = runner.invoke(app, ["analyze", DEMO_SCENARIO, "--offline"])
        assert result.exit_code == 0, result.output
        assert "sales" in result.output
        assert "Overall health" in result.output

    def test_alerts_offline(self):
        result = runner.invoke(app, ["alerts", DEMO_SCENARIO, "--offline"])
        assert result.exit_code == 0, result.output
        assert "critical" in result.output
        assert "warning" in result.output

    def test_missing_scenario(self, tmp_path):
        result = runner.invoke(app, ["analyze", str(tmp_path / "nope.yaml"), "--offline"])
        assert result.exit_code == 1

    def test_missing_api_key(self):
        result = runner.invoke(app, ["analyze", DEMO_SCENARIO, "--provider", "openai"])
        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output

    def test_unknown_provider(self):
        result = runner.invoke(app, ["alerts", DEMO_SCENARIO, "--provider", "mistral"])
        assert result.exit_code == 1
        assert "Unknown" in result.output
        assert "mistral" in result.output


class TestBuildService:

    def test_missing_key_raises_exit(self):
        with pytest.raises(typer.Exit):
            _build_service(False, "anthropic", None)

    def test_system_key_used(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        service = _build_service(False, "openai", None)
        assert isinstance(service.provider, OpenAIProvider)

    def test_keyless_provider(self):
        service = _build_service(False, "ollama", None)
        assert isinstance(service.provider, OllamaProvider)
