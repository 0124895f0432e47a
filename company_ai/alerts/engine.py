"""
Company-wide KPI threshold scan.

Runs over every KPI definition of a company, compares the latest reading
with its thresholds and persists new alerts through an AlertStore. Scans
are idempotent: a KPI that already has an active alert gets no new one, so
re-running a scan on unchanged data creates nothing.

Two rules:
- scan_company(): threshold breaches (critical/warning/watch)
- scan_opportunities(): a metric crossing into its target in the good
  direction, on the crossing reading only

Usage:
    engine = AlertThresholdEngine(InMemoryKpiSource(defs), InMemoryAlertStore())
    result = await engine.scan("acme")
    result.created, result.checked
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Protocol

from company_ai.agents.department_agent import DepartmentAgent
from company_ai.alerts.thresholds import (
    ThresholdBreach,
    derive_trend,
    evaluate_thresholds,
    reached_target,
)
from company_ai.formatting import format_number
from company_ai.models import (
    AlertInsight,
    AlertSeverity,
    CompanyContext,
    CompanyStage,
    DepartmentContext,
    DepartmentType,
    KpiThresholds,
    MetricData,
)

if TYPE_CHECKING:
    from company_ai.service import AgentService

logger = logging.getLogger(__name__)

ACTIVE = "active"
RESOLVED = "resolved"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class KpiValue:
    value: float
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class KpiDefinition:
    """A tracked KPI with readings ordered latest first."""

    id: str
    company_id: str
    department_type: DepartmentType
    name: str
    slug: str
    unit: Optional[str] = None
    thresholds: Optional[KpiThresholds] = None
    values: list[KpiValue] = field(default_factory=list)


@dataclass
class AlertRecord:
    company_id: str
    kpi_definition_id: str
    department_type: DepartmentType
    severity: AlertSeverity
    title: str
    message: str
    trigger_value: str
    threshold_value: str
    details: dict[str, Any] = field(default_factory=dict)
    ai_insight: Optional[str] = None
    ai_recommendation: Optional[str] = None
    status: str = ACTIVE
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class AlertScanResult:
    created: int = 0
    checked: int = 0
    alerts: list[AlertRecord] = field(default_factory=list)

    def __add__(self, other: "AlertScanResult") -> "AlertScanResult":
        return AlertScanResult(
            created=self.created + other.created,
            checked=self.checked + other.checked,
            alerts=self.alerts + other.alerts,
        )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class KpiSource(Protocol):
    async def list_definitions(self, company_id: str) -> list[KpiDefinition]:
        """All KPI definitions of a company, each with its latest two readings."""
        ...


class AlertStore(Protocol):
    async def find_active(
        self,
        company_id: str,
        kpi_definition_id: str,
        severity: Optional[AlertSeverity] = None,
    ) -> Optional[AlertRecord]:
        ...

    async def create(self, record: AlertRecord) -> AlertRecord:
        ...


class InMemoryKpiSource:
    def __init__(self, definitions: Optional[list[KpiDefinition]] = None):
        self._definitions: list[KpiDefinition] = list(definitions or [])

    def add(self, definition: KpiDefinition) -> None:
        self._definitions.append(definition)

    def record_value(self, kpi_definition_id: str, value: float) -> None:
        """Prepend a new latest reading."""
        for definition in self._definitions:
            if definition.id == kpi_definition_id:
                definition.values.insert(0, KpiValue(value))
                return
        raise KeyError(kpi_definition_id)

    async def list_definitions(self, company_id: str) -> list[KpiDefinition]:
        return [
            KpiDefinition(
                id=d.id,
                company_id=d.company_id,
                department_type=d.department_type,
                name=d.name,
                slug=d.slug,
                unit=d.unit,
                thresholds=d.thresholds,
                values=d.values[:2],
            )
            for d in self._definitions
            if d.company_id == company_id
        ]


class InMemoryAlertStore:
    def __init__(self) -> None:
        self.records: list[AlertRecord] = []

    async def find_active(
        self,
        company_id: str,
        kpi_definition_id: str,
        severity: Optional[AlertSeverity] = None,
    ) -> Optional[AlertRecord]:
        for record in self.records:
            if (
                record.company_id == company_id
                and record.kpi_definition_id == kpi_definition_id
                and record.status == ACTIVE
                and (severity is None or record.severity == severity)
            ):
                return record
        return None

    async def create(self, record: AlertRecord) -> AlertRecord:
        self.records.append(record)
        return record

    def resolve(self, alert_id: str) -> None:
        for record in self.records:
            if record.id == alert_id:
                record.status = RESOLVED
                return
        raise KeyError(alert_id)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

_STORED_TITLES = {
    AlertSeverity.CRITICAL: "Critical Alert",
    AlertSeverity.WARNING: "Warning",
    AlertSeverity.WATCH: "Watch",
}


class AlertThresholdEngine:
    """
    Scans a company's KPIs and creates alerts.

    Args:
        kpi_source: Supplies KPI definitions and readings.
        alert_store: Persists alerts and answers active-alert lookups.
        insight_service: Optional AgentService; when given, each new
            breach alert gets an AI insight from its provider.
    """

    def __init__(
        self,
        kpi_source: KpiSource,
        alert_store: AlertStore,
        insight_service: Optional["AgentService"] = None,
    ):
        self.kpi_source = kpi_source
        self.alert_store = alert_store
        self.insight_service = insight_service

    async def scan(
        self, company_id: str, company: Optional[CompanyContext] = None
    ) -> AlertScanResult:
        """Run both the threshold and the opportunity scan."""
        breaches = await self.scan_company(company_id, company)
        opportunities = await self.scan_opportunities(company_id)
        return breaches + opportunities

    async def scan_company(
        self, company_id: str, company: Optional[CompanyContext] = None
    ) -> AlertScanResult:
        definitions = await self.kpi_source.list_definitions(company_id)
        result = AlertScanResult(checked=len(definitions))

        for definition in definitions:
            if definition.thresholds is None or not definition.values:
                continue

            latest = definition.values[0].value
            breach = evaluate_thresholds(latest, definition.thresholds)
            if breach is None:
                continue

            existing = await self.alert_store.find_active(company_id, definition.id)
            if existing is not None:
                logger.debug(
                    "alert_suppressed",
                    extra={"company_id": company_id, "kpi": definition.slug},
                )
                continue

            record = await self._create_breach_alert(definition, breach, company)
            result.created += 1
            result.alerts.append(record)

        return result

    async def scan_opportunities(self, company_id: str) -> AlertScanResult:
        definitions = await self.kpi_source.list_definitions(company_id)
        result = AlertScanResult(checked=len(definitions))

        for definition in definitions:
            if definition.thresholds is None or len(definition.values) < 2:
                continue

            latest = definition.values[0].value
            previous = definition.values[1].value
            if not reached_target(latest, previous, definition.thresholds):
                continue

            existing = await self.alert_store.find_active(
                company_id, definition.id, AlertSeverity.OPPORTUNITY
            )
            if existing is not None:
                continue

            target = definition.thresholds.target
            unit = f" {definition.unit}" if definition.unit else ""
            record = await self.alert_store.create(
                AlertRecord(
                    company_id=company_id,
                    kpi_definition_id=definition.id,
                    department_type=definition.department_type,
                    severity=AlertSeverity.OPPORTUNITY,
                    title=f"{definition.name} Target Reached",
                    message=(
                        f"{definition.name} has reached the target of "
                        f"{format_number(target)}{unit}. "
                        f"Current value: {format_number(latest)}."
                    ),
                    trigger_value=format_number(latest),
                    threshold_value=format_number(target),
                )
            )
            result.created += 1
            result.alerts.append(record)

        if result.created:
            logger.info(
                "opportunity_alerts_created",
                extra={"company_id": company_id, "count": result.created},
            )
        return result

    async def _create_breach_alert(
        self,
        definition: KpiDefinition,
        breach: ThresholdBreach,
        company: Optional[CompanyContext],
    ) -> AlertRecord:
        latest = definition.values[0]
        previous = definition.values[1].value if len(definition.values) > 1 else None
        trend, change = derive_trend(latest.value, previous)

        metric = MetricData(
            name=definition.name,
            slug=definition.slug,
            value=latest.value,
            previous_value=previous,
            unit=definition.unit,
            trend=trend,
            change_percent=change,
            recorded_at=latest.recorded_at,
        )
        insight = await self._insight_for(definition, metric, breach, company)

        unit = f" {definition.unit}" if definition.unit else ""
        record = await self.alert_store.create(
            AlertRecord(
                company_id=definition.company_id,
                kpi_definition_id=definition.id,
                department_type=definition.department_type,
                severity=breach.severity,
                title=f"{definition.name} {_STORED_TITLES[breach.severity]}",
                message=(
                    f"{definition.name} is {format_number(latest.value)}{unit}, "
                    f"which breaches the {breach.threshold_type} threshold of "
                    f"{format_number(breach.threshold)}."
                ),
                trigger_value=format_number(latest.value),
                threshold_value=format_number(breach.threshold),
                details={
                    "threshold_type": breach.threshold_type,
                    "previous_value": previous,
                    "change_percent": change,
                },
                ai_insight=insight.insight if insight else None,
                ai_recommendation=insight.recommendation if insight else None,
            )
        )
        logger.info(
            "alert_created",
            extra={
                "company_id": definition.company_id,
                "department_type": definition.department_type.value,
                "kpi": definition.slug,
                "severity": breach.severity.value,
            },
        )
        return record

    async def _insight_for(
        self,
        definition: KpiDefinition,
        metric: MetricData,
        breach: ThresholdBreach,
        company: Optional[CompanyContext],
    ) -> Optional[AlertInsight]:
        if self.insight_service is None:
            return None

        # Transient agent: the service's cached department agents keep their context
        agent = DepartmentAgent(
            self.insight_service.provider,
            DepartmentContext(
                department_type=definition.department_type,
                company_name=company.name if company else "Company",
                company_stage=company.stage if company else CompanyStage.BOOTSTRAP,
            ),
            [metric],
            self.insight_service.default_config,
        )
        insight, _ = await agent.explain_breach(
            metric, breach.severity.value, breach.label
        )
        return insight
