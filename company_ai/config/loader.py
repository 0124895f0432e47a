"""
Settings loader for the Company AI engine.

Loads an optional YAML file, overlays COMPANY_AI_* environment variables,
validates against EngineSettings and caches the result for the process.
Also loads scenario files (a company plus department data) for local runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from company_ai.config.schema import EngineSettings
from company_ai.exceptions import ConfigurationError
from company_ai.metrics import build_metric
from company_ai.models import CompanyContext, DepartmentContext, KpiThresholds
from company_ai.service import DepartmentData

ENV_PREFIX = "COMPANY_AI_"
CONFIG_PATH_ENV = "COMPANY_AI_CONFIG"

# Module-level cache: resolved config path (or "") -> EngineSettings
_loaded_settings: dict[str, EngineSettings] = {}


def _env_overrides() -> dict[str, Any]:
    """Collect COMPANY_AI_<FIELD> variables that match a settings field."""
    overrides: dict[str, Any] = {}
    for field_name in EngineSettings.model_fields:
        value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None and value.strip() != "":
            overrides[field_name] = value.strip()
    # COMPANY_AI_ENV is shared with logging_config
    env = os.environ.get(f"{ENV_PREFIX}ENV")
    if env and "environment" not in overrides:
        overrides["environment"] = env
    return overrides


def load_settings(config_path: Optional[str | Path] = None) -> EngineSettings:
    """
    Load and validate engine settings.

    Args:
        config_path: Optional YAML file. Falls back to $COMPANY_AI_CONFIG;
                     with neither, only defaults and env vars apply.

    Raises:
        ConfigurationError: If the file is missing or the values are invalid.
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV) or None

    cache_key = str(config_path or "")
    if cache_key in _loaded_settings:
        return _loaded_settings[cache_key]

    raw: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Config not found: {path}. "
                f"Create it or unset {CONFIG_PATH_ENV}.",
                config_key=CONFIG_PATH_ENV,
            )
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping: {path}",
                config_key=CONFIG_PATH_ENV,
            )

    raw.update(_env_overrides())

    try:
        settings = EngineSettings(**raw)
    except ValidationError as e:
        bad_keys = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise ConfigurationError(
            f"Invalid engine settings ({bad_keys}):\n{e}",
            config_key=bad_keys or None,
        ) from e

    _loaded_settings[cache_key] = settings
    return settings


def clear_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    _loaded_settings.clear()


# ---------------------------------------------------------------------------
# Scenario files
# ---------------------------------------------------------------------------

@dataclass
class Scenario:
    """A company and its departments, loaded from YAML for local runs."""

    company_id: str
    company: CompanyContext
    departments: list[DepartmentData] = field(default_factory=list)


def _build_department(raw: dict[str, Any]) -> DepartmentData:
    metrics = [
        build_metric(
            m["name"],
            m.get("slug") or m["name"].lower().replace(" ", "_"),
            m.get("values", []),
            unit=m.get("unit"),
        )
        for m in raw.get("metrics", [])
    ]
    thresholds = {
        slug: KpiThresholds.model_validate(t)
        for slug, t in (raw.get("thresholds") or {}).items()
    }
    context = DepartmentContext.model_validate(
        {k: v for k, v in raw.items() if k not in ("metrics", "thresholds")}
    )
    return DepartmentData(context=context, metrics=metrics, thresholds=thresholds)


def load_scenario(path: str | Path) -> Scenario:
    """
    Load a scenario file.

    Expected shape:
        company_id: acme
        company: {name: Acme, stage: early, employee_count: 24}
        departments:
          - department_type: sales
            metrics:
              - {name: MRR, slug: mrr, unit: USD, values: [92000, 100000]}
            thresholds:
              mrr: {warning_min: 95000}

    Department entries inherit company_name and company_stage from the
    company block unless they set their own.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Scenario not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    try:
        company = CompanyContext.model_validate(raw["company"])
        departments = []
        for entry in raw.get("departments", []):
            entry = dict(entry)
            entry.setdefault("company_name", company.name)
            entry.setdefault("company_stage", company.stage.value)
            departments.append(_build_department(entry))
    except (KeyError, TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid scenario {path.name}: {e}") from e

    return Scenario(
        company_id=str(raw.get("company_id") or path.stem),
        company=company,
        departments=departments,
    )
