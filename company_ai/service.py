"""
AgentService: the engine's public surface.

Caches one DepartmentAgent per (company, department) and one
OrchestrationAgent per company, and exposes the high-level operations the
transport layer calls. Cached agents are long-lived and mutated in place
when new context or metrics arrive, so every holder of an agent sees the
latest state.

Usage:
    service = AgentService.from_credentials("anthropic", api_key)

    result = await service.analyze_company("acme", company_ctx, [
        DepartmentData(context=sales_ctx, metrics=sales_metrics),
        DepartmentData(context=eng_ctx, metrics=eng_metrics),
    ])
    result.company_analysis.overall_health_score
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from company_ai.agents.department_agent import DepartmentAgent
from company_ai.agents.orchestration_agent import OrchestrationAgent
from company_ai.agents.store import AgentStore
from company_ai.config.schema import EngineSettings
from company_ai.llm.base import ModelProvider
from company_ai.llm.registry import create_provider
from company_ai.models import (
    AgentConfig,
    ChatResponse,
    CompanyAnalysis,
    CompanyContext,
    DepartmentAnalysis,
    DepartmentContext,
    DepartmentType,
    GeneratedAlert,
    HistoryMessage,
    KpiThresholds,
    MetricData,
    Recommendation,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / Result Types
# ---------------------------------------------------------------------------

@dataclass
class DepartmentData:
    """One department's inputs for a company-wide operation."""

    context: DepartmentContext
    metrics: list[MetricData] = field(default_factory=list)
    thresholds: dict[str, KpiThresholds] = field(default_factory=dict)


@dataclass
class CompanyAnalysisResult:
    department_analyses: list[DepartmentAnalysis]
    company_analysis: CompanyAnalysis
    # Only populated with isolate_failures=True: department -> error message
    failed_departments: dict[DepartmentType, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AgentService:
    """
    Manages agents for many companies on one provider.

    Thread-safe for agent lookup: the agent stores use atomic get-or-create.
    """

    def __init__(
        self,
        provider: ModelProvider,
        default_config: Optional[AgentConfig] = None,
        *,
        history_window: Optional[int] = None,
    ):
        self.provider = provider
        self.default_config = default_config or AgentConfig()
        self.history_window = history_window
        self._department_agents: AgentStore[DepartmentAgent] = AgentStore()
        self._orchestration_agents: AgentStore[OrchestrationAgent] = AgentStore()

    @classmethod
    def from_credentials(
        cls,
        provider_name: str,
        api_key: str,
        settings: Optional[EngineSettings] = None,
        **provider_options: Any,
    ) -> "AgentService":
        """Build the provider through the registry and apply settings defaults."""
        settings = settings or EngineSettings(ai_provider=provider_name)
        if provider_name == "ollama":
            provider_options.setdefault("base_url", settings.ollama_base_url)
        provider = create_provider(provider_name, api_key, **provider_options)
        return cls(
            provider,
            AgentConfig(
                model=settings.default_model,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
            ),
            history_window=settings.history_window,
        )

    # --- Agent Lookup ---

    @staticmethod
    def department_key(company_id: str, department_type: DepartmentType) -> str:
        return f"{company_id}:{DepartmentType(department_type).value}"

    def get_department_agent(
        self,
        company_id: str,
        context: DepartmentContext,
        metrics: Optional[Sequence[MetricData]] = None,
    ) -> DepartmentAgent:
        """Return the cached agent, updated in place, or create it."""

        def update(agent: DepartmentAgent) -> None:
            agent.update_context(context)
            if metrics is not None:
                agent.update_metrics(metrics)

        return self._department_agents.get_or_create(
            self.department_key(company_id, context.department_type),
            lambda: DepartmentAgent(
                self.provider, context, metrics, self.default_config
            ),
            update,
        )

    def get_orchestration_agent(
        self,
        company_id: str,
        context: CompanyContext,
        department_summaries: Optional[Mapping[DepartmentType, str]] = None,
    ) -> OrchestrationAgent:
        def update(agent: OrchestrationAgent) -> None:
            agent.update_context(context)
            if department_summaries:
                agent.update_department_summaries(department_summaries)

        return self._orchestration_agents.get_or_create(
            company_id,
            lambda: OrchestrationAgent(
                self.provider, context, department_summaries, self.default_config
            ),
            update,
        )

    # --- Operations ---

    async def analyze_department(
        self,
        company_id: str,
        context: DepartmentContext,
        metrics: Sequence[MetricData],
    ) -> DepartmentAnalysis:
        agent = self.get_department_agent(company_id, context, metrics)
        analysis, _ = await agent.analyze()
        return analysis

    async def analyze_company(
        self,
        company_id: str,
        company_context: CompanyContext,
        department_data: Sequence[DepartmentData],
        *,
        isolate_failures: bool = False,
    ) -> CompanyAnalysisResult:
        """
        Analyze every department concurrently, then synthesize once.

        By default any department failure fails the whole call. With
        isolate_failures=True, failed departments are reported in the
        result and synthesis runs over the rest; if every department fails
        the first error is raised.
        """
        start = time.monotonic()
        results = await asyncio.gather(
            *(
                self.analyze_department(company_id, d.context, d.metrics)
                for d in department_data
            ),
            return_exceptions=isolate_failures,
        )

        analyses: list[DepartmentAnalysis] = []
        failed: dict[DepartmentType, str] = {}
        first_error: Optional[BaseException] = None
        for data, result in zip(department_data, results):
            if isinstance(result, DepartmentAnalysis):
                analyses.append(result)
                continue
            if not isinstance(result, Exception):
                raise result
            first_error = first_error or result
            failed[data.context.department_type] = str(result) or type(result).__name__
            logger.warning(
                "department_analysis_failed",
                extra={
                    "company_id": company_id,
                    "department_type": data.context.department_type.value,
                    "error": str(result)[:200],
                },
            )

        if first_error is not None and not analyses:
            raise first_error

        summaries = {a.department_type: a.summary for a in analyses}
        orchestrator = self.get_orchestration_agent(
            company_id, company_context, summaries
        )
        # A department that failed this run must not keep last run's summary
        orchestrator.drop_department_summaries(failed)
        company_analysis, _ = await orchestrator.synthesize(analyses)

        logger.info(
            "company_analyzed",
            extra={
                "company_id": company_id,
                "departments": len(analyses),
                "failed": len(failed),
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return CompanyAnalysisResult(
            department_analyses=analyses,
            company_analysis=company_analysis,
            failed_departments=failed,
        )

    async def get_department_recommendations(
        self,
        company_id: str,
        department_context: DepartmentContext,
        company_context: CompanyContext,
        metrics: Sequence[MetricData],
    ) -> list[Recommendation]:
        agent = self.get_department_agent(company_id, department_context, metrics)
        recommendations, _ = await agent.generate_recommendations(company_context)
        return recommendations

    async def get_company_recommendations(
        self,
        company_id: str,
        company_context: CompanyContext,
        department_analyses: Sequence[DepartmentAnalysis],
    ) -> list[Recommendation]:
        orchestrator = self.get_orchestration_agent(company_id, company_context)
        recommendations, _ = await orchestrator.recommend_resource_allocation(
            department_analyses
        )
        return recommendations

    async def check_alerts(
        self,
        company_id: str,
        department_data: Sequence[DepartmentData],
    ) -> list[GeneratedAlert]:
        """
        Check every department sequentially; critical alerts come first.

        The sort is stable, so alerts of equal severity keep department
        then metric order.
        """
        alerts: list[GeneratedAlert] = []
        for data in department_data:
            agent = self.get_department_agent(company_id, data.context, data.metrics)
            department_alerts, _ = await agent.check_alerts(data.thresholds)
            alerts.extend(department_alerts)

        alerts.sort(key=lambda a: a.severity.rank)
        if alerts:
            logger.info(
                "alerts_generated",
                extra={
                    "company_id": company_id,
                    "count": len(alerts),
                    "severity": alerts[0].severity.value,
                },
            )
        return alerts

    async def chat_with_department(
        self,
        company_id: str,
        context: DepartmentContext,
        message: str,
        history: Optional[Sequence[HistoryMessage]] = None,
    ) -> ChatResponse:
        agent = self.get_department_agent(company_id, context)
        return await agent.chat(message, self._window(history))

    async def chat_with_orchestrator(
        self,
        company_id: str,
        context: CompanyContext,
        message: str,
        history: Optional[Sequence[HistoryMessage]] = None,
    ) -> ChatResponse:
        agent = self.get_orchestration_agent(company_id, context)
        return await agent.chat(message, self._window(history))

    def clear_agents(self) -> None:
        """Drop every cached agent."""
        self._department_agents.clear()
        self._orchestration_agents.clear()

    def _window(
        self, history: Optional[Sequence[HistoryMessage]]
    ) -> list[HistoryMessage]:
        """Keep the most recent `history_window` turns, in order."""
        turns = list(history or [])
        if self.history_window is None:
            return turns
        if self.history_window == 0:
            return []
        return turns[-self.history_window:]
