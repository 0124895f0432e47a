"""
Agents: a provider plus a rendered system prompt, scoped to one department
or one company.
"""
