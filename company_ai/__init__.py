"""
Company AI: agent orchestration engine for a multi-tenant business dashboard.

Turns stored metrics and department context into department analyses,
company-wide synthesis, recommendations and alerts, using pluggable LLM
providers. Entry point for callers is company_ai.service.AgentService.
"""

__version__ = "0.1.0"
