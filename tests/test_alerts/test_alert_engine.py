"""
Tests for the company-wide alert threshold scan.

Covers idempotent breach alerts, opportunity alerts on target crossings,
stored alert text, and AI insight attachment.
"""

from __future__ import annotations

import pytest

from company_ai.alerts.engine import (
    AlertThresholdEngine,
    InMemoryAlertStore,
    InMemoryKpiSource,
    KpiDefinition,
    KpiValue,
)
from company_ai.models import (
    AlertSeverity,
    CompanyContext,
    CompanyStage,
    DepartmentType,
    KpiThresholds,
)
from company_ai.service import AgentService
from company_ai.testing.mock_provider import MockModelProvider, offline_responder


# ===========================================================================
# Fixtures
# ===========================================================================

def _definition(kpi_id, name, slug, values, thresholds, *, company_id="acme",
                department_type=DepartmentType.CUSTOMER_SUCCESS, unit=None):
    return KpiDefinition(
        id=kpi_id,
        company_id=company_id,
        department_type=department_type,
        name=name,
        slug=slug,
        unit=unit,
        thresholds=thresholds,
        values=[KpiValue(v) for v in values],
    )


@pytest.fixture
def churn():
    return _definition(
        "kpi-churn", "Churn Rate", "churn_rate", [6.5, 4.0],
        KpiThresholds(critical_max=6, warning_max=4), unit="%",
    )


@pytest.fixture
def store():
    return InMemoryAlertStore()


# ===========================================================================
# Breach scan
# ===========================================================================

class TestScanCompany:

    @pytest.mark.asyncio
    async def test_creates_critical_alert(self, churn, store):
        engine = AlertThresholdEngine(InMemoryKpiSource([churn]), store)
        result = await engine.scan_company("acme")

        assert result.created == 1
        assert result.checked == 1
        record = store.records[0]
        assert record.severity == AlertSeverity.CRITICAL
        assert record.title == "Churn Rate Critical Alert"
        assert record.message == (
            "Churn Rate is 6.5 %, which breaches the criticalMax threshold of 6."
        )
        assert record.trigger_value == "6.5"
        assert record.threshold_value == "6"
        assert record.status == "active"
        assert record.details["threshold_type"] == "criticalMax"
        assert record.details["previous_value"] == 4.0
        assert record.details["change_percent"] == pytest.approx(62.5)
        assert record.ai_insight is None

    @pytest.mark.asyncio
    async def test_second_scan_creates_nothing(self, churn, store):
        engine = AlertThresholdEngine(InMemoryKpiSource([churn]), store)
        await engine.scan_company("acme")
        second = await engine.scan_company("acme")
        assert second.created == 0
        assert second.checked == 1
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_active_alert_of_other_severity_suppresses(self, churn, store):
        source = InMemoryKpiSource([churn])
        engine = AlertThresholdEngine(source, store)
        await engine.scan_company("acme")
        source.record_value("kpi-churn", 5.0)  # now only a warning
        result = await engine.scan_company("acme")
        assert result.created == 0

    @pytest.mark.asyncio
    async def test_resolved_alert_allows_new_one(self, churn, store):
        engine = AlertThresholdEngine(InMemoryKpiSource([churn]), store)
        await engine.scan_company("acme")
        store.resolve(store.records[0].id)
        result = await engine.scan_company("acme")
        assert result.created == 1
        assert [r.status for r in store.records] == ["resolved", "active"]

    @pytest.mark.asyncio
    async def test_skips_unconfigured_and_empty(self, store):
        source = InMemoryKpiSource([
            _definition("k1", "NPS", "nps", [10], None),
            _definition("k2", "CSAT", "csat", [], KpiThresholds(critical_min=50)),
            _definition("k3", "Other", "other", [1], KpiThresholds(critical_min=5),
                        company_id="globex"),
        ])
        result = await AlertThresholdEngine(source, store).scan_company("acme")
        assert result.checked == 2
        assert result.created == 0

    @pytest.mark.asyncio
    async def test_single_reading_has_no_change(self, store):
        source = InMemoryKpiSource([
            _definition("k1", "Uptime", "uptime", [98.0], KpiThresholds(warning_min=99.5)),
        ])
        await AlertThresholdEngine(source, store).scan_company("acme")
        assert store.records[0].details["previous_value"] is None
        assert store.records[0].details["change_percent"] is None


# ===========================================================================
# Opportunity scan
# ===========================================================================

class TestScanOpportunities:

    @pytest.fixture
    def mrr(self):
        return _definition(
            "kpi-mrr", "MRR", "mrr", [152000, 148000],
            KpiThresholds(target=150000, good_direction="up"),
            department_type=DepartmentType.SALES, unit="USD",
        )

    @pytest.mark.asyncio
    async def test_crossing_creates_opportunity(self, mrr, store):
        result = await AlertThresholdEngine(InMemoryKpiSource([mrr]), store).scan_opportunities(
            "acme"
        )
        assert result.created == 1
        record = store.records[0]
        assert record.severity == AlertSeverity.OPPORTUNITY
        assert record.title == "MRR Target Reached"
        assert record.message == (
            "MRR has reached the target of 150000 USD. Current value: 152000."
        )

    @pytest.mark.asyncio
    async def test_opportunity_deduplicated(self, mrr, store):
        engine = AlertThresholdEngine(InMemoryKpiSource([mrr]), store)
        await engine.scan_opportunities("acme")
        second = await engine.scan_opportunities("acme")
        assert second.created == 0

    @pytest.mark.asyncio
    async def test_no_crossing_no_alert(self, mrr, store):
        source = InMemoryKpiSource([mrr])
        source.record_value("kpi-mrr", 155000)  # already past target
        result = await AlertThresholdEngine(source, store).scan_opportunities("acme")
        assert result.created == 0

    @pytest.mark.asyncio
    async def test_full_scan_sums_both(self, churn, mrr, store):
        engine = AlertThresholdEngine(InMemoryKpiSource([churn, mrr]), store)
        result = await engine.scan("acme")
        assert result.created == 2
        assert result.checked == 4
        assert {a.severity for a in result.alerts} == {
            AlertSeverity.CRITICAL, AlertSeverity.OPPORTUNITY,
        }


# ===========================================================================
# AI insight
# ===========================================================================

class TestInsights:

    @pytest.mark.asyncio
    async def test_insight_attached(self, churn, store):
        provider = MockModelProvider(responder=offline_responder)
        service = AgentService(provider)
        engine = AlertThresholdEngine(InMemoryKpiSource([churn]), store, service)
        await engine.scan_company(
            "acme", CompanyContext(name="Acme", stage=CompanyStage.EARLY)
        )

        record = store.records[0]
        assert record.ai_insight
        assert record.ai_recommendation
        assert provider.call_count == 1
        request = provider.last_request
        assert "Customer Success department at Acme" in request.system
        assert "Threshold: max: 6" in request.messages[-1].content

    @pytest.mark.asyncio
    async def test_cached_agents_untouched(self, churn, store):
        service = AgentService(MockModelProvider(responder=offline_responder))
        engine = AlertThresholdEngine(InMemoryKpiSource([churn]), store, service)
        await engine.scan_company("acme")
        assert len(service._department_agents) == 0

    @pytest.mark.asyncio
    async def test_insight_failure_still_creates_alert(self, churn, store):
        service = AgentService(MockModelProvider([RuntimeError("provider down")]))
        engine = AlertThresholdEngine(InMemoryKpiSource([churn]), store, service)
        result = await engine.scan_company("acme")
        assert result.created == 1
        assert store.records[0].ai_insight is None


# ===========================================================================
# In-memory collaborators
# ===========================================================================

class TestInMemoryKpiSource:

    @pytest.mark.asyncio
    async def test_latest_two_readings(self, churn):
        source = InMemoryKpiSource([churn])
        source.record_value("kpi-churn", 7.0)
        [definition] = await source.list_definitions("acme")
        assert [v.value for v in definition.values] == [7.0, 6.5]

    def test_unknown_kpi(self):
        with pytest.raises(KeyError):
            InMemoryKpiSource().record_value("missing", 1)

    def test_resolve_unknown(self, store):
        with pytest.raises(KeyError):
            store.resolve("missing")
