"""
User-turn request prompts.

Each function renders one request that asks the model for a single JSON
object of a known shape. The shapes here mirror the camelCase aliases of
the models in company_ai.models.
"""

from __future__ import annotations

from typing import Sequence

from company_ai.formatting import format_currency_cents, format_number
from company_ai.models import (
    CompanyContext,
    CompanyStage,
    DepartmentAnalysis,
    DepartmentType,
    MetricData,
)
from company_ai.prompts.system_prompts import department_name

# ---------------------------------------------------------------------------
# Department requests
# ---------------------------------------------------------------------------

ANALYSIS_SHAPE = """{
  "healthScore": <number 0-100>,
  "summary": "<brief summary of department health>",
  "keyInsights": ["<insight 1>", "<insight 2>", ...],
  "concerns": [
    {
      "severity": "critical|warning|watch",
      "title": "<title>",
      "description": "<description>",
      "suggestedAction": "<action>"
    }
  ],
  "opportunities": [
    {
      "title": "<title>",
      "description": "<description>",
      "potentialImpact": "<impact>",
      "effort": "low|medium|high"
    }
  ],
  "trends": [
    {
      "metricName": "<name>",
      "direction": "up|down|stable",
      "changePercent": <number>,
      "assessment": "positive|negative|neutral"
    }
  ]
}"""


def analysis_prompt(metrics: Sequence[MetricData]) -> str:
    lines = []
    for m in metrics:
        unit = f" {m.unit}" if m.unit else ""
        lines.append(
            f"- {m.name}: {format_number(m.value)}{unit} "
            f"(previous: {format_number(m.previous_value)}, trend: {m.trend.value})"
        )
    return (
        "Analyze the following metrics and provide a comprehensive assessment:\n\n"
        "METRICS:\n" + "\n".join(lines) + "\n\n"
        "Provide your analysis in the following JSON format:\n" + ANALYSIS_SHAPE
    )


def recommendation_prompt(
    department_type: DepartmentType,
    analysis_json: str,
    company: CompanyContext,
) -> str:
    team = company.employee_count if company.employee_count is not None else "Unknown"
    return f"""Based on the following analysis for the {department_name(department_type)} department, generate actionable recommendations:

ANALYSIS:
{analysis_json}

COMPANY CONTEXT:
- Stage: {company.stage.value}
- Team Size: {team}
- ARR: {format_currency_cents(company.arr_cents)}

Generate 1-3 recommendations in the following JSON format:
{{
  "recommendations": [
    {{
      "type": "tactical|strategic|resource_allocation",
      "priority": "critical|high|medium|low",
      "departmentTypes": ["{department_type.value}", ...other affected departments],
      "title": "<clear, action-oriented title>",
      "description": "<detailed description>",
      "impact": "<expected outcome with metrics>",
      "effort": "<time, cost, resources needed>",
      "rationale": "<why this recommendation, data supporting it>",
      "alternatives": [
        {{
          "title": "<alternative approach>",
          "description": "<description>",
          "tradeoffs": "<tradeoffs vs main recommendation>"
        }}
      ],
      "confidenceScore": <0-100>
    }}
  ]
}}"""


def alert_insight_prompt(
    metric: MetricData, severity: str, threshold_label: str
) -> str:
    unit = f" {metric.unit}" if metric.unit else ""
    return f"""The metric "{metric.name}" has triggered a {severity} alert.
Current value: {format_number(metric.value)}{unit}
Threshold: {threshold_label}
Previous value: {format_number(metric.previous_value)}
Trend: {metric.trend.value}

Provide a brief insight (1-2 sentences) about what this means and a recommended action (1-2 sentences).
Format as JSON: {{ "insight": "...", "recommendation": "..." }}"""


# ---------------------------------------------------------------------------
# Orchestration requests
# ---------------------------------------------------------------------------

def _joined(items: Sequence[str], sep: str) -> str:
    return sep.join(items) or "None"


def synthesis_section(analysis: DepartmentAnalysis) -> str:
    """Compact per-department section fed into company synthesis."""
    concerns = [f"{c.severity}: {c.title}" for c in analysis.concerns]
    opportunities = [o.title for o in analysis.opportunities]
    return (
        f"## {department_name(analysis.department_type)}\n"
        f"- Health Score: {format_number(analysis.health_score)}/100\n"
        f"- Summary: {analysis.summary}\n"
        f"- Key Insights: {'; '.join(analysis.key_insights)}\n"
        f"- Concerns: {_joined(concerns, '; ')}\n"
        f"- Opportunities: {_joined(opportunities, '; ')}"
    )


def synthesis_prompt(analyses: Sequence[DepartmentAnalysis]) -> str:
    sections = "\n\n".join(synthesis_section(a) for a in analyses)
    return f"""Analyze the following department reports and provide a company-wide synthesis:

DEPARTMENT ANALYSES:
{sections}

Provide your company-wide analysis in the following JSON format:
{{
  "overallHealthScore": 75,
  "summary": "brief summary of overall company health",
  "departmentHealthScores": {{
    "product": 80,
    "sales": 70
  }},
  "crossDepartmentInsights": [
    {{
      "title": "title",
      "description": "description of cross-department pattern",
      "affectedDepartments": ["product", "sales"],
      "impact": "high"
    }}
  ],
  "bottlenecks": [
    {{
      "title": "title",
      "description": "description",
      "sourceDepartment": "engineering",
      "affectedDepartments": ["product", "sales"],
      "suggestedResolution": "resolution",
      "urgency": "immediate"
    }}
  ],
  "strategicRecommendations": [
    {{
      "type": "strategic",
      "priority": "high",
      "departmentTypes": ["product", "engineering"],
      "title": "title",
      "description": "description",
      "impact": "expected impact",
      "effort": "effort required",
      "rationale": "reasoning",
      "confidenceScore": 85
    }}
  ]
}}"""


def bottleneck_prompt(analyses: Sequence[DepartmentAnalysis]) -> str:
    blocks = "\n\n".join(
        f"{department_name(a.department_type)}: {a.summary}\n"
        f"Concerns: {_joined([c.title for c in a.concerns], ', ')}"
        for a in analyses
    )
    return f"""Based on these department analyses, identify any cross-department bottlenecks:

{blocks}

Look for patterns where one department's issues are affecting others.

Provide bottlenecks in JSON format:
{{
  "bottlenecks": [
    {{
      "title": "clear title",
      "description": "detailed description of the bottleneck",
      "sourceDepartment": "engineering",
      "affectedDepartments": ["product", "sales"],
      "suggestedResolution": "specific action to resolve",
      "urgency": "immediate"
    }}
  ]
}}"""


def _company_state(context: CompanyContext) -> str:
    team = context.employee_count if context.employee_count is not None else "Unknown"
    runway = (
        format_number(context.runway_months)
        if context.runway_months is not None
        else "Unknown"
    )
    return (
        f"- ARR: {format_currency_cents(context.arr_cents)}\n"
        f"- Employees: {team}\n"
        f"- Runway: {runway} months"
    )


def resource_allocation_prompt(
    context: CompanyContext, analyses: Sequence[DepartmentAnalysis]
) -> str:
    status = "\n\n".join(
        f"{department_name(a.department_type)}: "
        f"Health {format_number(a.health_score)}/100\n"
        "  Opportunities: "
        + _joined([f"{o.title} (effort: {o.effort})" for o in a.opportunities], ", ")
        + "\n  Concerns: "
        + _joined([f"{c.title} ({c.severity})" for c in a.concerns], ", ")
        for a in analyses
    )
    return f"""Based on these department analyses, recommend resource allocation changes:

COMPANY CONTEXT:
- Stage: {context.stage.value}
{_company_state(context)}

DEPARTMENT STATUS:
{status}

Recommend resource moves (people, budget, focus) to maximize company performance.

Provide recommendations in JSON format:
{{
  "recommendations": [
    {{
      "type": "resource_allocation",
      "priority": "high",
      "departmentTypes": ["engineering", "product"],
      "title": "clear action title",
      "description": "detailed description",
      "impact": "expected outcome with metrics",
      "effort": "cost, time, disruption",
      "rationale": "why this makes sense now",
      "confidenceScore": 80
    }}
  ]
}}"""


STAGE_REQUIREMENTS = (
    "- Bootstrap to Early: 500K+ ARR, 10+ employees, repeatable sales process\n"
    "- Early to Growth: 5M+ ARR, 50+ employees, scalable operations\n"
    "- Growth to Scale: 50M+ ARR, 200+ employees, market leadership"
)


def stage_transition_prompt(
    context: CompanyContext,
    next_stage: CompanyStage,
    analyses: Sequence[DepartmentAnalysis],
) -> str:
    health = "\n".join(
        f"- {department_name(a.department_type)}: {format_number(a.health_score)}/100"
        for a in analyses
    )
    return f"""Assess whether {context.name} is ready to transition from {context.stage.value} to {next_stage.value} stage.

STAGE REQUIREMENTS:
{STAGE_REQUIREMENTS}

CURRENT STATE:
{_company_state(context)}

DEPARTMENT HEALTH:
{health}

Provide assessment in JSON format:
{{
  "currentStage": "{context.stage.value}",
  "nextStage": "{next_stage.value}",
  "readinessScore": 65,
  "readyFactors": ["factor that supports transition"],
  "gapFactors": ["factor that needs work"],
  "recommendations": ["specific action to prepare for next stage"]
}}"""


def company_health_prompt(
    context: CompanyContext, analyses: Sequence[DepartmentAnalysis]
) -> str:
    scores = "\n".join(
        f"- {department_name(a.department_type)}: "
        f"{format_number(a.health_score)}/100 - {a.summary}"
        for a in analyses
    )
    return f"""Calculate overall company health based on department analyses:

{scores}

Consider:
1. Weight departments by their importance to current stage ({context.stage.value})
2. Factor in critical concerns across departments
3. Account for cross-department dependencies

Provide in JSON format:
{{
  "healthScore": 75,
  "summary": "2-3 sentence summary of company health"
}}"""
