"""
Learning from recommendation outcomes.

analyze_outcomes() is pure statistics over past recommendations. The
improved context it feeds into generate_improved_context() comes back as
guidance text that a DepartmentAgent appends to its system prompt:

    context = await learning.generate_improved_context(outcomes)
    agent.learning_guidance = learning.generate_learning_prompt_addition(context)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from pydantic import Field, ValidationError

from company_ai.exceptions import StructuredResponseError
from company_ai.llm.base import ChatMessage, ChatRequest, ModelProvider
from company_ai.llm.json_extract import extract_json_object
from company_ai.models import CamelModel

logger = logging.getLogger(__name__)

DEFAULT_GUIDANCE = "Continue making data-driven recommendations."

HIGH_ACCEPTANCE = 0.7
LOW_ACCEPTANCE = 0.3
HIGH_SUCCESS = 0.8
LOW_SUCCESS = 0.5
MIN_IMPLEMENTED_FOR_SUCCESS_VERDICT = 2
PROMPT_EXAMPLES = 5


class MetricChange(CamelModel):
    metric_name: str
    before_value: float
    after_value: float
    change_percent: float


class Outcome(CamelModel):
    success: bool
    metric_changes: Optional[list[MetricChange]] = None
    feedback: Optional[str] = None
    lessons_learned: Optional[str] = None


class RecommendationOutcome(CamelModel):
    recommendation_id: str
    type: str
    title: str
    status: str
    accepted: bool
    implemented: bool
    outcome: Optional[Outcome] = None

    @property
    def successful(self) -> bool:
        return bool(self.outcome and self.outcome.success)


class TypeStats(CamelModel):
    total: int = 0
    accepted: int = 0
    implemented: int = 0
    successful: int = 0


class LearningInsights(CamelModel):
    total_recommendations: int
    acceptance_rate: float
    implementation_rate: float
    success_rate: float
    by_type: dict[str, TypeStats] = Field(default_factory=dict)
    patterns: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)


class ImprovedPromptContext(CamelModel):
    successful_patterns: list[str] = Field(default_factory=list)
    failed_patterns: list[str] = Field(default_factory=list)
    preferred_types: list[str] = Field(default_factory=list)
    avoided_types: list[str] = Field(default_factory=list)
    contextual_guidance: str = DEFAULT_GUIDANCE


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def _pct(rate: float) -> int:
    return round(rate * 100)


class LearningService:
    def __init__(self, provider: ModelProvider, model: Optional[str] = None):
        self.provider = provider
        self.model = model or provider.default_model or "default"

    def analyze_outcomes(
        self, outcomes: Sequence[RecommendationOutcome]
    ) -> LearningInsights:
        total = len(outcomes)
        accepted = sum(1 for o in outcomes if o.accepted)
        implemented = sum(1 for o in outcomes if o.implemented)
        successful = sum(1 for o in outcomes if o.successful)

        by_type: dict[str, TypeStats] = {}
        for o in outcomes:
            stats = by_type.setdefault(o.type, TypeStats())
            stats.total += 1
            stats.accepted += int(o.accepted)
            stats.implemented += int(o.implemented)
            stats.successful += int(o.successful)

        patterns: list[str] = []
        improvements: list[str] = []
        for type_name, stats in by_type.items():
            accept_rate = _ratio(stats.accepted, stats.total)
            success_rate = _ratio(stats.successful, stats.implemented)

            if accept_rate > HIGH_ACCEPTANCE:
                patterns.append(
                    f"{type_name} recommendations have high acceptance "
                    f"({_pct(accept_rate)}%)"
                )
            elif accept_rate < LOW_ACCEPTANCE:
                improvements.append(
                    f"Consider improving {type_name} recommendations "
                    f"(low acceptance: {_pct(accept_rate)}%)"
                )

            if success_rate > HIGH_SUCCESS:
                patterns.append(
                    f"{type_name} recommendations are highly effective "
                    f"({_pct(success_rate)}% success)"
                )
            elif (
                success_rate < LOW_SUCCESS
                and stats.implemented > MIN_IMPLEMENTED_FOR_SUCCESS_VERDICT
            ):
                improvements.append(
                    f"{type_name} recommendations need refinement "
                    f"(low success: {_pct(success_rate)}%)"
                )

        return LearningInsights(
            total_recommendations=total,
            acceptance_rate=_ratio(accepted, total),
            implementation_rate=_ratio(implemented, accepted),
            success_rate=_ratio(successful, implemented),
            by_type=by_type,
            patterns=patterns,
            improvements=improvements,
        )

    def build_context_prompt(self, outcomes: Sequence[RecommendationOutcome]) -> str:
        insights = self.analyze_outcomes(outcomes)
        succeeded = [o for o in outcomes if o.successful][:PROMPT_EXAMPLES]
        failed = [
            o for o in outcomes
            if o.implemented and o.outcome is not None and not o.outcome.success
        ][:PROMPT_EXAMPLES]
        rejected = [o for o in outcomes if not o.accepted][:PROMPT_EXAMPLES]

        succeeded_text = "\n".join(
            f"- {o.title} ({o.type}): {o.outcome.feedback or 'No feedback'}"
            for o in succeeded
        ) or "None yet"
        failed_text = "\n".join(
            f"- {o.title} ({o.type}): {o.outcome.lessons_learned or 'No lessons recorded'}"
            for o in failed
        ) or "None yet"
        rejected_text = "\n".join(
            f"- {o.title} ({o.type})" for o in rejected
        ) or "None yet"

        return f"""Analyze these recommendation outcomes and provide guidance for future recommendations:

OVERALL STATS:
- Total Recommendations: {insights.total_recommendations}
- Acceptance Rate: {_pct(insights.acceptance_rate)}%
- Implementation Rate: {_pct(insights.implementation_rate)}%
- Success Rate: {_pct(insights.success_rate)}%

SUCCESSFUL RECOMMENDATIONS:
{succeeded_text}

FAILED RECOMMENDATIONS:
{failed_text}

REJECTED RECOMMENDATIONS:
{rejected_text}

Provide learning insights as JSON:
{{
  "successfulPatterns": ["pattern that led to success", ...],
  "failedPatterns": ["pattern that led to failure", ...],
  "preferredTypes": ["recommendation types that work well"],
  "avoidedTypes": ["recommendation types to be cautious with"],
  "contextualGuidance": "A paragraph of guidance for future recommendations"
}}"""

    async def generate_improved_context(
        self, outcomes: Sequence[RecommendationOutcome]
    ) -> ImprovedPromptContext:
        """Ask the model to distill guidance; neutral guidance when unusable."""
        result = await self.provider.chat(ChatRequest(
            model=self.model,
            messages=[
                ChatMessage(role="user", content=self.build_context_prompt(outcomes))
            ],
            max_tokens=1024,
        ))
        try:
            return ImprovedPromptContext.model_validate(
                extract_json_object(result.content)
            )
        except (StructuredResponseError, ValidationError) as e:
            logger.warning("learning_reply_unusable", extra={"error": str(e)[:200]})
            return ImprovedPromptContext()

    @staticmethod
    def generate_learning_prompt_addition(context: ImprovedPromptContext) -> str:
        lines = ["LEARNING FROM PAST RECOMMENDATIONS:"]
        if context.successful_patterns:
            lines.append("Successful patterns: " + "; ".join(context.successful_patterns))
        if context.failed_patterns:
            lines.append("Avoid these patterns: " + "; ".join(context.failed_patterns))
        if context.preferred_types:
            lines.append(
                "Preferred recommendation types: " + ", ".join(context.preferred_types)
            )
        if context.avoided_types:
            lines.append("Be cautious with: " + ", ".join(context.avoided_types))
        lines.append("")
        lines.append(f"Guidance: {context.contextual_guidance}")
        return "\n".join(lines)
