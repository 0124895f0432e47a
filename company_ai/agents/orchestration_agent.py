"""
Orchestration agent: company-wide synthesis across department analyses.

Every operation assembles the department analyses into a request and asks
for one JSON shape. Aggregate scores are the model's judgement; the agent
only assembles the inputs faithfully.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Sequence

from company_ai.agents.base import BaseAgent
from company_ai.llm.base import ModelProvider
from company_ai.models import (
    AgentConfig,
    Bottleneck,
    BottleneckList,
    CompanyAnalysis,
    CompanyContext,
    CompanyHealth,
    DepartmentAnalysis,
    DepartmentType,
    Recommendation,
    RecommendationList,
    ResponseMetadata,
    StageTransitionAssessment,
)
from company_ai.prompts.request_prompts import (
    bottleneck_prompt,
    company_health_prompt,
    resource_allocation_prompt,
    stage_transition_prompt,
    synthesis_prompt,
)
from company_ai.prompts.system_prompts import orchestration_system_prompt

logger = logging.getLogger(__name__)


class OrchestrationAgent(BaseAgent):
    """Agent scoped to one company, fed by department summaries."""

    agent_kind = "orchestration"

    def __init__(
        self,
        provider: ModelProvider,
        context: CompanyContext,
        department_summaries: Optional[Mapping[DepartmentType, str]] = None,
        config: Optional[AgentConfig] = None,
    ):
        super().__init__(provider, config)
        self.context = context
        self.department_summaries: dict[DepartmentType, str] = dict(
            department_summaries or {}
        )

    def update_context(self, context: CompanyContext) -> None:
        self.context = context

    def update_department_summaries(
        self, summaries: Mapping[DepartmentType, str]
    ) -> None:
        """Merge summaries; departments not mentioned keep their old summary."""
        self.department_summaries.update(summaries)

    def drop_department_summaries(self, departments: Iterable[DepartmentType]) -> None:
        for department in departments:
            self.department_summaries.pop(department, None)

    def get_system_prompt(self) -> str:
        return orchestration_system_prompt(self.context, self.department_summaries)

    async def synthesize(
        self, analyses: Sequence[DepartmentAnalysis]
    ) -> tuple[CompanyAnalysis, ResponseMetadata]:
        """Fold department analyses into one company analysis in a single call."""
        analysis, metadata = await self.send_json_message(
            synthesis_prompt(analyses), schema=CompanyAnalysis
        )
        logger.info(
            "company_synthesized",
            extra={
                "company": self.context.name,
                "departments": len(analyses),
                "health_score": analysis.overall_health_score,
                "duration_ms": metadata.response_time_ms,
            },
        )
        return analysis, metadata

    async def detect_bottlenecks(
        self, analyses: Sequence[DepartmentAnalysis]
    ) -> tuple[list[Bottleneck], ResponseMetadata]:
        result, metadata = await self.send_json_message(
            bottleneck_prompt(analyses), schema=BottleneckList
        )
        return result.bottlenecks, metadata

    async def recommend_resource_allocation(
        self, analyses: Sequence[DepartmentAnalysis]
    ) -> tuple[list[Recommendation], ResponseMetadata]:
        result, metadata = await self.send_json_message(
            resource_allocation_prompt(self.context, analyses),
            schema=RecommendationList,
        )
        return result.recommendations, metadata

    async def assess_stage_transition(
        self, analyses: Sequence[DepartmentAnalysis]
    ) -> tuple[Optional[StageTransitionAssessment], ResponseMetadata]:
        """Assess readiness for the next stage; None at the terminal stage."""
        next_stage = self.context.stage.next_stage()
        if next_stage is None:
            return None, ResponseMetadata.empty()

        return await self.send_json_message(
            stage_transition_prompt(self.context, next_stage, analyses),
            schema=StageTransitionAssessment,
        )

    async def assess_company_health(
        self, analyses: Sequence[DepartmentAnalysis]
    ) -> tuple[float, str, ResponseMetadata]:
        """Return (health_score, summary, metadata)."""
        health, metadata = await self.send_json_message(
            company_health_prompt(self.context, analyses), schema=CompanyHealth
        )
        return health.health_score, health.summary, metadata
