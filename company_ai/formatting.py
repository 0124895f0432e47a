"""Number and currency rendering shared by prompts and alert messages."""

from __future__ import annotations

from typing import Optional


def format_number(value: Optional[float]) -> str:
    """
    Render a metric value the way it is shown to users and models.

    Integral floats drop the trailing ".0" so 95000.0 renders as "95000".
    """
    if value is None:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_currency_cents(cents: Optional[int]) -> str:
    """Render an amount in cents as "$1,234,567", or "Unknown" when unset."""
    if not cents:
        return "Unknown"
    dollars = cents / 100
    if dollars.is_integer():
        return f"${int(dollars):,}"
    return f"${dollars:,.2f}"


def format_change_percent(change: Optional[float]) -> str:
    """Render a signed percentage with one decimal ("+4.2%", "-3.0%")."""
    if not change:
        return ""
    sign = "+" if change > 0 else ""
    return f"{sign}{change:.1f}%"
