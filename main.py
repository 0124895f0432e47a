"""
Company AI - Main Entry Point

CLI for running the agent engine against a YAML scenario: list providers,
analyze a whole company, or check department alerts.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from company_ai.config.loader import Scenario, load_scenario, load_settings
from company_ai.credentials import PROVIDER_ENV_KEYS, system_config
from company_ai.exceptions import CompanyAIError, ConfigurationError, UnknownProviderError
from company_ai.llm.llm_config import MODEL_PRESETS
from company_ai.llm.registry import get_default_model, list_providers
from company_ai.observability.logging_config import configure_logging
from company_ai.service import AgentService
from company_ai.testing.mock_provider import MockModelProvider, offline_responder

load_dotenv(Path(__file__).parent / ".env", override=True)

app = typer.Typer(
    name="company-ai",
    help="Company AI - agent orchestration engine",
)
console = Console()
logger = logging.getLogger("company_ai")

SEVERITY_STYLES = {
    "critical": "bold red",
    "warning": "yellow",
    "watch": "cyan",
    "opportunity": "green",
}


def _config_error(e: CompanyAIError) -> None:
    console.print(Panel(
        f"[red]{e}[/]",
        title="⚠ Configuration Error",
        border_style="red",
    ))
    raise typer.Exit(code=1)


def _load(scenario_path: Path) -> Scenario:
    try:
        return load_scenario(scenario_path)
    except ConfigurationError as e:
        _config_error(e)
        raise


def _build_service(
    offline: bool, provider: Optional[str], config_path: Optional[Path]
) -> AgentService:
    """Mock provider when offline; otherwise the configured provider and its env key."""
    try:
        settings = load_settings(config_path)
    except ConfigurationError as e:
        _config_error(e)
        raise

    if offline:
        return AgentService(
            MockModelProvider(responder=offline_responder),
            history_window=settings.history_window,
        )

    name = provider or settings.ai_provider
    try:
        if name not in list_providers():
            raise UnknownProviderError(name, list_providers())
        credential = system_config(name)
        return AgentService.from_credentials(name, credential.api_key, settings)
    except ConfigurationError as e:
        _config_error(e)
        raise


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")):
    configure_logging(level=logging.DEBUG if verbose else logging.INFO)


@app.command()
def providers():
    """List registered providers, their default models and presets."""
    table = Table(title="Registered Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Default Model")
    table.add_column("API Key Env Var", style="dim")
    for name in list_providers():
        table.add_row(name, get_default_model(name), PROVIDER_ENV_KEYS.get(name, "-"))
    console.print(table)

    presets = Table(title="Model Presets")
    presets.add_column("ID", style="cyan")
    presets.add_column("Model")
    presets.add_column("Description", style="dim")
    for preset in MODEL_PRESETS:
        marker = " (default)" if preset.is_default else ""
        presets.add_row(preset.id + marker, preset.display_name, preset.description)
    console.print(presets)


@app.command()
def analyze(
    scenario: Path = typer.Argument(..., help="Path to a scenario YAML file"),
    offline: bool = typer.Option(False, "--offline", help="Use the mock provider"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p"),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
    isolate: bool = typer.Option(
        False, "--isolate", help="Synthesize even if some departments fail"
    ),
):
    """Analyze every department of a scenario and synthesize the company view."""
    data = _load(scenario)
    service = _build_service(offline, provider, config)

    async def _run():
        return await service.analyze_company(
            data.company_id, data.company, data.departments,
            isolate_failures=isolate,
        )

    console.print(f"[cyan]Analyzing {len(data.departments)} departments of {data.company.name}...[/]")
    try:
        result = asyncio.run(_run())
    except CompanyAIError as e:
        console.print(f"[red]Analysis failed:[/] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Department Health")
    table.add_column("Department", style="cyan")
    table.add_column("Health", justify="right")
    table.add_column("Summary")
    table.add_column("Concerns", justify="right")
    for analysis in result.department_analyses:
        table.add_row(
            analysis.department_type.value,
            f"{analysis.health_score:g}",
            analysis.summary,
            str(len(analysis.concerns)),
        )
    console.print(table)

    for department, error in result.failed_departments.items():
        console.print(f"[red]✗ {department.value}:[/] {error}")

    company = result.company_analysis
    console.print(Panel(
        f"[bold]Overall health:[/] {company.overall_health_score:g}/100\n\n"
        f"{company.summary}",
        title=f"{data.company.name}",
        border_style="green",
    ))


@app.command()
def alerts(
    scenario: Path = typer.Argument(..., help="Path to a scenario YAML file"),
    offline: bool = typer.Option(False, "--offline", help="Use the mock provider"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p"),
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """Check each department's metrics against its thresholds."""
    data = _load(scenario)
    service = _build_service(offline, provider, config)

    try:
        found = asyncio.run(service.check_alerts(data.company_id, data.departments))
    except CompanyAIError as e:
        console.print(f"[red]Alert check failed:[/] {e}")
        raise typer.Exit(code=1)

    if not found:
        console.print("[green]No thresholds breached.[/]")
        return

    table = Table(title=f"Alerts: {data.company.name}")
    table.add_column("Severity")
    table.add_column("Department", style="cyan")
    table.add_column("Alert")
    table.add_column("Insight", style="dim")
    for alert in found:
        style = SEVERITY_STYLES.get(alert.severity.value, "")
        table.add_row(
            f"[{style}]{alert.severity.value}[/]",
            alert.department_type.value if alert.department_type else "-",
            alert.message,
            alert.ai_insight or "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
