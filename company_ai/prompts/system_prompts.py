"""
System prompts for department and orchestration agents.

Pure functions: a context (plus metrics or department summaries) in, a
prompt string out. The KPI catalogue and display names double as the
reference list shown to every department agent.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from company_ai.formatting import format_change_percent, format_currency_cents, format_number
from company_ai.models import (
    CompanyContext,
    DepartmentContext,
    DepartmentDocument,
    DepartmentType,
    MetricData,
    Trend,
)

# ---------------------------------------------------------------------------
# Department catalogue
# ---------------------------------------------------------------------------

DEPARTMENT_KPIS: dict[DepartmentType, list[str]] = {
    DepartmentType.PRODUCT: [
        "Feature Adoption Rate",
        "Time to Market",
        "User Satisfaction (NPS)",
        "Product Roadmap Completion",
    ],
    DepartmentType.ENGINEERING: [
        "Sprint Velocity",
        "Bug Rate",
        "Deployment Frequency",
        "Technical Debt Score",
        "System Uptime",
    ],
    DepartmentType.SALES: [
        "Monthly Recurring Revenue (MRR)",
        "Customer Acquisition Cost (CAC)",
        "Win Rate",
        "Sales Cycle Length",
        "Pipeline Value",
    ],
    DepartmentType.MARKETING: [
        "Lead Generation Volume",
        "Conversion Rate",
        "Cost per Lead",
        "Brand Awareness",
        "Content Performance",
    ],
    DepartmentType.CUSTOMER_SUCCESS: [
        "Net Retention Rate",
        "Churn Rate",
        "Customer Health Score",
        "Support Ticket Resolution Time",
        "Customer Satisfaction (CSAT)",
    ],
    DepartmentType.FINANCE: [
        "Burn Rate",
        "Runway (months)",
        "Gross Margin",
        "Cash Flow",
        "Unit Economics",
    ],
    DepartmentType.OPERATIONS: [
        "Process Efficiency",
        "Tool Utilization",
        "Vendor Performance",
        "Cost per Transaction",
    ],
    DepartmentType.HR: [
        "Employee Retention Rate",
        "Time to Hire",
        "Employee Satisfaction",
        "Diversity Metrics",
    ],
    DepartmentType.LEGAL: [
        "Contract Processing Time",
        "Compliance Score",
        "Legal Spend",
        "Risk Assessment Score",
    ],
    DepartmentType.DATA_ANALYTICS: [
        "Data Quality Score",
        "Report Delivery Time",
        "Analytics Adoption",
        "Data Pipeline Uptime",
    ],
    DepartmentType.CORPORATE_DEVELOPMENT: [
        "Partnership Pipeline",
        "M&A Opportunities",
        "Strategic Initiative Progress",
    ],
    DepartmentType.SECURITY_COMPLIANCE: [
        "Security Score",
        "Compliance Audit Results",
        "Incident Response Time",
        "Vulnerability Count",
    ],
}

DEPARTMENT_NAMES: dict[DepartmentType, str] = {
    DepartmentType.PRODUCT: "Product",
    DepartmentType.ENGINEERING: "Engineering",
    DepartmentType.SALES: "Sales",
    DepartmentType.MARKETING: "Marketing",
    DepartmentType.CUSTOMER_SUCCESS: "Customer Success",
    DepartmentType.FINANCE: "Finance",
    DepartmentType.OPERATIONS: "Operations",
    DepartmentType.HR: "HR/People",
    DepartmentType.LEGAL: "Legal",
    DepartmentType.DATA_ANALYTICS: "Data & Analytics",
    DepartmentType.CORPORATE_DEVELOPMENT: "Corporate Development",
    DepartmentType.SECURITY_COMPLIANCE: "Security & Compliance",
}

# Display order for context documents
DOCUMENT_CATEGORIES = (
    "role", "kpis", "monitoring", "actions", "improvements", "general",
)

_TREND_ARROWS = {Trend.UP: "↑", Trend.DOWN: "↓", Trend.STABLE: "→"}


def department_name(department_type: DepartmentType | str) -> str:
    return DEPARTMENT_NAMES.get(DepartmentType(department_type), str(department_type))


def _metric_line(metric: MetricData) -> str:
    unit = f" {metric.unit}" if metric.unit else ""
    change = format_change_percent(metric.change_percent)
    change = f" {change}" if change else ""
    return (
        f"- {metric.name}: {format_number(metric.value)}{unit} "
        f"({_TREND_ARROWS[metric.trend]}{change})"
    )


def _sorted_documents(
    documents: Sequence[DepartmentDocument],
) -> list[DepartmentDocument]:
    def rank(doc: DepartmentDocument) -> int:
        if doc.category in DOCUMENT_CATEGORIES:
            return DOCUMENT_CATEGORIES.index(doc.category)
        return len(DOCUMENT_CATEGORIES)

    # sorted() is stable: caller order survives within a category
    return sorted(
        (d for d in documents if d.content.strip()),
        key=rank,
    )


# ---------------------------------------------------------------------------
# Department agent
# ---------------------------------------------------------------------------

def department_system_prompt(
    context: DepartmentContext,
    metrics: Optional[Sequence[MetricData]] = None,
    learning_guidance: Optional[str] = None,
) -> str:
    """Render the system prompt for one company department."""
    name = department_name(context.department_type)
    kpis = DEPARTMENT_KPIS[context.department_type]

    current = [f"- Company Stage: {context.company_stage.value}"]
    if context.headcount:
        current.append(f"- Department Size: {context.headcount} people")
    if context.goals:
        current.append(f"- Key Goals: {', '.join(context.goals)}")

    sections = [
        f"You are the AI agent for the {name} department at {context.company_name}.",
        "ROLE & RESPONSIBILITIES:\n"
        f"- Monitor key metrics: {', '.join(kpis)}\n"
        "- Analyze performance trends\n"
        "- Identify issues and opportunities\n"
        "- Provide actionable recommendations\n"
        "- Help the team make data-driven decisions",
        "CURRENT CONTEXT:\n" + "\n".join(current),
    ]

    if metrics:
        sections.append(
            "CURRENT METRICS:\n" + "\n".join(_metric_line(m) for m in metrics)
        )

    documents = _sorted_documents(context.documents or [])
    if documents:
        sections.append(
            "DEPARTMENT KNOWLEDGE:\n"
            + "\n\n".join(
                f"### {doc.title} ({doc.category})\n{doc.content.strip()}"
                for doc in documents
            )
        )

    if context.custom_instructions:
        sections.append(f"ADDITIONAL INSTRUCTIONS:\n{context.custom_instructions}")

    if learning_guidance:
        sections.append(learning_guidance.strip())

    sections.append(
        "COMMUNICATION STYLE:\n"
        "- Be concise and actionable\n"
        "- Use data to support recommendations\n"
        "- Highlight both problems and opportunities\n"
        "- Consider cross-department impact\n"
        "- Be proactive, not just reactive\n"
        "\n"
        "When responding:\n"
        "1. Analyze the current situation based on available data\n"
        "2. Identify key issues or opportunities\n"
        "3. Provide specific, actionable recommendations\n"
        "4. Explain impact and trade-offs\n"
        "5. Suggest metrics to track for measuring success"
    )
    return "\n\n".join(sections)


# ---------------------------------------------------------------------------
# Orchestration agent
# ---------------------------------------------------------------------------

def orchestration_system_prompt(
    context: CompanyContext,
    department_summaries: Optional[Mapping[DepartmentType, str]] = None,
) -> str:
    """Render the system prompt for the company-wide orchestration agent."""
    state = [f"- Stage: {context.stage.value}"]
    if context.arr_cents:
        state.append(f"- Revenue: {format_currency_cents(context.arr_cents)} ARR")
    if context.employee_count:
        state.append(f"- Team Size: {context.employee_count} people")
    if context.runway_months:
        state.append(f"- Runway: {format_number(context.runway_months)} months")
    if context.industry:
        state.append(f"- Industry: {context.industry}")
    if context.objectives:
        state.append(f"- Key Objectives: {', '.join(context.objectives)}")

    sections = [
        f"You are the Orchestration AI for {context.name}, acting as a "
        "strategic advisor with visibility across all departments.",
        "YOUR ROLE:\n"
        "- Synthesize insights from all department AIs\n"
        "- Identify company-wide patterns and bottlenecks\n"
        "- Make strategic recommendations\n"
        "- Suggest when to add/change departments\n"
        "- Recommend resource reallocation\n"
        "- Alert to critical company risks\n"
        "- Identify growth opportunities",
        "CURRENT COMPANY STATE:\n" + "\n".join(state),
    ]

    if department_summaries:
        sections.append(
            "DEPARTMENT SUMMARIES:\n"
            + "\n\n".join(
                f"{department_name(dept)}:\n{summary}"
                for dept, summary in department_summaries.items()
            )
        )

    sections.append(
        "DECISION FRAMEWORK:\n"
        "1. Assess urgency (critical vs important vs nice-to-have)\n"
        "2. Consider cross-department impact\n"
        "3. Evaluate resource requirements\n"
        "4. Estimate time to impact\n"
        "5. Identify risks and mitigations\n"
        "\n"
        "When making recommendations:\n"
        "- Think like a CEO, not just an analyst\n"
        "- Balance short-term needs with long-term strategy\n"
        "- Consider company stage and resources\n"
        "- Be bold but pragmatic\n"
        "- Explain reasoning clearly"
    )
    sections.append(
        "STAGE TRANSITION GUIDELINES:\n"
        "- Bootstrap (0-10 employees, <$500K ARR): Focus on product-market fit\n"
        "- Early Stage (10-50 employees, $500K-$5M ARR): Scale revenue, build processes\n"
        "- Growth Stage (50-200 employees, $5M-$50M ARR): Market expansion, "
        "operational excellence\n"
        "- Scale Stage (200+ employees, $50M+ ARR): Sustainable growth, market leadership"
    )
    return "\n\n".join(sections)
