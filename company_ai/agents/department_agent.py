"""
Department agent: one company department's metrics, context and analyses.

Usage:
    agent = DepartmentAgent(provider, context, metrics)
    analysis, meta = await agent.analyze()
    recs, meta = await agent.generate_recommendations(company_context, analysis)
    alerts, meta = await agent.check_alerts({"mrr": KpiThresholds(warning_min=95000)})
"""

from __future__ import annotations

import json
import logging
from typing import Mapping, Optional, Sequence

from company_ai.agents.base import BaseAgent
from company_ai.alerts.thresholds import (
    ThresholdBreach,
    alert_message,
    alert_title,
    evaluate_thresholds,
)
from company_ai.formatting import format_number
from company_ai.llm.base import ModelProvider
from company_ai.models import (
    AgentConfig,
    AlertInsight,
    CompanyContext,
    DepartmentAnalysis,
    DepartmentAnalysisBody,
    DepartmentContext,
    DepartmentType,
    GeneratedAlert,
    KpiThresholds,
    MetricData,
    Recommendation,
    RecommendationList,
    ResponseMetadata,
)
from company_ai.prompts.request_prompts import (
    alert_insight_prompt,
    analysis_prompt,
    recommendation_prompt,
)
from company_ai.prompts.system_prompts import department_name, department_system_prompt

logger = logging.getLogger(__name__)

EMPTY_METRICS_SUMMARY = "No metrics available for analysis."
EMPTY_METRICS_INSIGHT = "Add metrics to enable detailed analysis."


class DepartmentAgent(BaseAgent):
    """Agent scoped to one department of one company."""

    agent_kind = "department"

    def __init__(
        self,
        provider: ModelProvider,
        context: DepartmentContext,
        metrics: Optional[Sequence[MetricData]] = None,
        config: Optional[AgentConfig] = None,
        *,
        learning_guidance: Optional[str] = None,
    ):
        super().__init__(provider, config)
        self.context = context
        self.metrics: list[MetricData] = list(metrics or [])
        self.learning_guidance = learning_guidance

    # --- State ---

    def update_context(self, context: DepartmentContext) -> None:
        """Replace the context wholesale."""
        self.context = context

    def update_metrics(self, metrics: Sequence[MetricData]) -> None:
        self.metrics = list(metrics)

    @property
    def department_type(self) -> DepartmentType:
        return self.context.department_type

    @property
    def department_name(self) -> str:
        return department_name(self.context.department_type)

    def get_system_prompt(self) -> str:
        return department_system_prompt(
            self.context, self.metrics, self.learning_guidance
        )

    # --- Operations ---

    async def analyze(self) -> tuple[DepartmentAnalysis, ResponseMetadata]:
        """
        Assess department health from the current metrics.

        With no metrics, returns a neutral analysis without calling the
        provider.
        """
        if not self.metrics:
            return (
                DepartmentAnalysis(
                    department_type=self.department_type,
                    health_score=50,
                    summary=EMPTY_METRICS_SUMMARY,
                    key_insights=[EMPTY_METRICS_INSIGHT],
                ),
                ResponseMetadata.empty(),
            )

        body, metadata = await self.send_json_message(
            analysis_prompt(self.metrics), schema=DepartmentAnalysisBody
        )
        # department_type always comes from local context, never the model
        analysis = DepartmentAnalysis(
            department_type=self.department_type,
            **body.model_dump(),
        )
        logger.info(
            "department_analyzed",
            extra={
                "department_type": self.department_type.value,
                "health_score": analysis.health_score,
                "duration_ms": metadata.response_time_ms,
            },
        )
        return analysis, metadata

    async def generate_recommendations(
        self,
        company_context: CompanyContext,
        analysis: Optional[DepartmentAnalysis] = None,
    ) -> tuple[list[Recommendation], ResponseMetadata]:
        """Recommend 1-3 actions; runs analyze() first when no analysis is given."""
        total = ResponseMetadata.empty()
        if analysis is None:
            analysis, analyze_meta = await self.analyze()
            total = total + analyze_meta

        prompt = recommendation_prompt(
            self.department_type,
            json.dumps(analysis.to_json_dict(), indent=2),
            company_context,
        )
        result, metadata = await self.send_json_message(
            prompt, schema=RecommendationList
        )
        return result.recommendations, total + metadata

    async def explain_breach(
        self, metric: MetricData, severity: str, threshold_label: str
    ) -> tuple[Optional[AlertInsight], ResponseMetadata]:
        """
        Ask for a short insight and recommended action on a breach.

        Any failure yields (None, empty metadata): a missing insight must
        never block the alert it belongs to.
        """
        try:
            insight, metadata = await self.send_json_message(
                alert_insight_prompt(metric, severity, threshold_label),
                schema=AlertInsight,
            )
        except Exception as e:
            logger.warning(
                "alert_insight_failed",
                extra={
                    "department_type": self.department_type.value,
                    "metric": metric.slug,
                    "severity": severity,
                    "error": str(e)[:200],
                },
            )
            return None, ResponseMetadata.empty()
        return insight, metadata

    async def check_alerts(
        self, thresholds: Mapping[str, KpiThresholds]
    ) -> tuple[list[GeneratedAlert], ResponseMetadata]:
        """
        Check each metric against its thresholds (keyed by metric slug).

        Alerts come back in metric order; metadata sums every insight call.
        """
        alerts: list[GeneratedAlert] = []
        total = ResponseMetadata.empty()

        for metric in self.metrics:
            breach = evaluate_thresholds(metric.value, thresholds.get(metric.slug))
            if breach is None:
                continue

            insight, metadata = await self.explain_breach(
                metric, breach.severity.value, breach.label
            )
            total = total + metadata
            alerts.append(self._build_alert(metric, breach, insight))

        return alerts, total

    def _build_alert(
        self,
        metric: MetricData,
        breach: ThresholdBreach,
        insight: Optional[AlertInsight],
    ) -> GeneratedAlert:
        return GeneratedAlert(
            severity=breach.severity,
            department_type=self.department_type,
            title=alert_title(metric.name, breach.severity),
            message=alert_message(metric.name, metric.value, metric.unit, breach),
            ai_insight=insight.insight if insight else None,
            ai_recommendation=insight.recommendation if insight else None,
            trigger_value=format_number(metric.value),
            threshold_value=breach.label,
        )
