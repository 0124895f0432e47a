"""
Domain data model for the Company AI engine.

All structured values exchanged with the model or returned to callers are
Pydantic models. Attributes are snake_case in Python; the JSON shape the
model is asked to produce uses camelCase, so every model carries a camelCase
alias and accepts either spelling on input.

Usage:
    from company_ai.models import DepartmentContext, DepartmentType, CompanyStage

    ctx = DepartmentContext(
        department_type=DepartmentType.SALES,
        company_name="Acme",
        company_stage=CompanyStage.EARLY,
    )
    ctx.model_dump(by_alias=True)  # {"departmentType": "sales", ...}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DepartmentType(str, Enum):
    PRODUCT = "product"
    ENGINEERING = "engineering"
    SALES = "sales"
    MARKETING = "marketing"
    CUSTOMER_SUCCESS = "customer_success"
    FINANCE = "finance"
    OPERATIONS = "operations"
    HR = "hr"
    LEGAL = "legal"
    DATA_ANALYTICS = "data_analytics"
    CORPORATE_DEVELOPMENT = "corporate_development"
    SECURITY_COMPLIANCE = "security_compliance"


class CompanyStage(str, Enum):
    """Company lifecycle stages, in order."""

    BOOTSTRAP = "bootstrap"
    EARLY = "early"
    GROWTH = "growth"
    SCALE = "scale"

    def next_stage(self) -> Optional["CompanyStage"]:
        """Return the following stage, or None at the terminal stage."""
        stages = list(CompanyStage)
        index = stages.index(self)
        if index == len(stages) - 1:
            return None
        return stages[index + 1]


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    WATCH = "watch"
    OPPORTUNITY = "opportunity"

    @property
    def rank(self) -> int:
        """Sort rank: critical first, opportunity last."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.WATCH: 2,
    AlertSeverity.OPPORTUNITY: 3,
}


# ---------------------------------------------------------------------------
# Base model
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Base for every model whose JSON form uses camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_json_dict(self) -> dict:
        """camelCase, JSON-safe dict with unset optionals dropped."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# Inputs: metrics and context
# ---------------------------------------------------------------------------

class MetricData(CamelModel):
    """Immutable snapshot of one KPI; trend fields are derived, not stored."""

    model_config = ConfigDict(frozen=True)

    name: str
    slug: str
    value: float
    previous_value: Optional[float] = None
    unit: Optional[str] = None
    trend: Trend = Trend.STABLE
    change_percent: Optional[float] = None
    recorded_at: datetime


class DepartmentDocument(CamelModel):
    """A markdown context document attached to a department."""

    category: str
    title: str
    content: str


class DepartmentContext(CamelModel):
    """Knowledge injected into a department agent's system prompt."""

    department_type: DepartmentType
    company_name: str
    company_stage: CompanyStage
    headcount: Optional[int] = None
    goals: Optional[list[str]] = None
    custom_instructions: Optional[str] = None
    documents: Optional[list[DepartmentDocument]] = None


class CompanyContext(CamelModel):
    """Company-level state given to the orchestration agent."""

    name: str
    stage: CompanyStage
    employee_count: Optional[int] = None
    arr_cents: Optional[int] = None
    runway_months: Optional[float] = None
    industry: Optional[str] = None
    objectives: Optional[list[str]] = None


class KpiThresholds(CamelModel):
    """Alert thresholds configured on a KPI definition."""

    critical_min: Optional[float] = None
    critical_max: Optional[float] = None
    warning_min: Optional[float] = None
    warning_max: Optional[float] = None
    watch_min: Optional[float] = None
    watch_max: Optional[float] = None
    target: Optional[float] = None
    good_direction: Optional[Literal["up", "down", "stable"]] = None


class HistoryMessage(CamelModel):
    """One conversation turn supplied by the caller."""

    role: Literal["user", "assistant", "system"]
    content: str


class AgentConfig(CamelModel):
    """Generation parameters; unset fields are filled at the service boundary."""

    model: Optional[str] = None
    max_tokens: Optional[int] = Field(None, ge=1)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)

    def with_defaults(self, defaults: "AgentConfig") -> "AgentConfig":
        """Return a copy where every unset field takes the default's value."""
        return AgentConfig(
            model=self.model if self.model is not None else defaults.model,
            max_tokens=(
                self.max_tokens if self.max_tokens is not None else defaults.max_tokens
            ),
            temperature=(
                self.temperature
                if self.temperature is not None
                else defaults.temperature
            ),
        )


# ---------------------------------------------------------------------------
# Department analysis
# ---------------------------------------------------------------------------

class AnalysisConcern(CamelModel):
    severity: Literal["critical", "warning", "watch"]
    title: str
    description: str
    suggested_action: Optional[str] = None


class AnalysisOpportunity(CamelModel):
    title: str
    description: str
    potential_impact: str
    effort: Literal["low", "medium", "high"]


class MetricTrend(CamelModel):
    metric_name: str
    direction: Trend
    change_percent: float
    assessment: Literal["positive", "negative", "neutral"]


class DepartmentAnalysisBody(CamelModel):
    """The analysis shape the model produces; department_type is added locally."""

    health_score: float = Field(..., ge=0, le=100)
    summary: str
    key_insights: list[str] = Field(default_factory=list)
    concerns: list[AnalysisConcern] = Field(default_factory=list)
    opportunities: list[AnalysisOpportunity] = Field(default_factory=list)
    trends: list[MetricTrend] = Field(default_factory=list)


class DepartmentAnalysis(DepartmentAnalysisBody):
    department_type: DepartmentType


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

class Alternative(CamelModel):
    title: str
    description: str
    tradeoffs: str


class Recommendation(CamelModel):
    type: Literal["tactical", "strategic", "resource_allocation"]
    priority: Literal["critical", "high", "medium", "low"]
    department_types: list[DepartmentType] = Field(default_factory=list)
    title: str
    description: str
    impact: str
    effort: str
    rationale: str
    alternatives: Optional[list[Alternative]] = None
    confidence_score: float = Field(..., ge=0, le=100)


class RecommendationList(CamelModel):
    recommendations: list[Recommendation]


# ---------------------------------------------------------------------------
# Company analysis
# ---------------------------------------------------------------------------

class CrossDepartmentInsight(CamelModel):
    title: str
    description: str
    affected_departments: list[DepartmentType] = Field(default_factory=list)
    impact: Literal["high", "medium", "low"]


class Bottleneck(CamelModel):
    title: str
    description: str
    source_department: DepartmentType
    affected_departments: list[DepartmentType] = Field(default_factory=list)
    suggested_resolution: str
    urgency: Literal["immediate", "soon", "monitor"]


class BottleneckList(CamelModel):
    bottlenecks: list[Bottleneck]


class StageTransitionAssessment(CamelModel):
    current_stage: CompanyStage
    next_stage: CompanyStage
    readiness_score: float = Field(..., ge=0, le=100)
    ready_factors: list[str] = Field(default_factory=list)
    gap_factors: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class CompanyHealth(CamelModel):
    health_score: float = Field(..., ge=0, le=100)
    summary: str


class CompanyAnalysis(CamelModel):
    overall_health_score: float = Field(..., ge=0, le=100)
    summary: str
    department_health_scores: dict[str, float] = Field(default_factory=dict)
    cross_department_insights: list[CrossDepartmentInsight] = Field(
        default_factory=list
    )
    bottlenecks: list[Bottleneck] = Field(default_factory=list)
    strategic_recommendations: list[Recommendation] = Field(default_factory=list)
    stage_transition_readiness: Optional[StageTransitionAssessment] = None


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

class GeneratedAlert(CamelModel):
    """Transient alert produced by threshold checks; persistence is external."""

    severity: AlertSeverity
    department_type: Optional[DepartmentType] = None
    title: str
    message: str
    ai_insight: Optional[str] = None
    ai_recommendation: Optional[str] = None
    trigger_value: Optional[str] = None
    threshold_value: Optional[str] = None


class AlertInsight(CamelModel):
    insight: str
    recommendation: str


# ---------------------------------------------------------------------------
# Response metadata
# ---------------------------------------------------------------------------

@dataclass
class ResponseMetadata:
    """Token and latency accounting for one or more provider calls."""

    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    response_time_ms: int = 0

    @classmethod
    def empty(cls) -> "ResponseMetadata":
        return cls()

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: "ResponseMetadata") -> "ResponseMetadata":
        return ResponseMetadata(
            model=other.model or self.model,
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            response_time_ms=self.response_time_ms + other.response_time_ms,
        )


@dataclass
class ChatResponse:
    """Free-form reply from an agent."""

    content: str
    metadata: ResponseMetadata
