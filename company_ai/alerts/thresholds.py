"""
Pure threshold evaluation.

Thresholds are checked in a fixed precedence; the first match wins so a
critical breach always dominates a warning breach on the same value:

    critical_min -> critical_max -> warning_min -> warning_max
    -> watch_min -> watch_max

"min" bounds fire when value < bound, "max" bounds when value > bound.
A value exactly on a bound does not breach it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from company_ai.formatting import format_number
from company_ai.metrics import derive_trend
from company_ai.models import AlertSeverity, KpiThresholds

__all__ = [
    "ThresholdBreach",
    "derive_trend",
    "evaluate_thresholds",
    "reached_target",
    "alert_title",
    "alert_message",
]

# (field name, severity, bound kind, stored threshold type)
_PRECEDENCE = (
    ("critical_min", AlertSeverity.CRITICAL, "min", "criticalMin"),
    ("critical_max", AlertSeverity.CRITICAL, "max", "criticalMax"),
    ("warning_min", AlertSeverity.WARNING, "min", "warningMin"),
    ("warning_max", AlertSeverity.WARNING, "max", "warningMax"),
    ("watch_min", AlertSeverity.WATCH, "min", "watchMin"),
    ("watch_max", AlertSeverity.WATCH, "max", "watchMax"),
)


@dataclass(frozen=True)
class ThresholdBreach:
    """The first threshold a value breaches."""

    severity: AlertSeverity
    bound: str              # "min" or "max"
    threshold: float
    threshold_type: str     # "criticalMin", "warningMax", ...

    @property
    def label(self) -> str:
        """Human label such as "min: 95000"."""
        return f"{self.bound}: {format_number(self.threshold)}"


def evaluate_thresholds(
    value: float, thresholds: Optional[KpiThresholds]
) -> Optional[ThresholdBreach]:
    """Return the first breached threshold, or None."""
    if thresholds is None:
        return None

    for field_name, severity, bound, threshold_type in _PRECEDENCE:
        limit = getattr(thresholds, field_name)
        if limit is None:
            continue
        breached = value < limit if bound == "min" else value > limit
        if breached:
            return ThresholdBreach(
                severity=severity,
                bound=bound,
                threshold=limit,
                threshold_type=threshold_type,
            )
    return None


def reached_target(
    latest: float, previous: Optional[float], thresholds: Optional[KpiThresholds]
) -> bool:
    """
    True only on the reading where the metric crosses into its target.

    A metric that was already past the target on the previous reading
    does not count.
    """
    if previous is None or thresholds is None:
        return False
    target = thresholds.target
    if not target or not thresholds.good_direction:
        return False

    if thresholds.good_direction == "up":
        return latest >= target > previous
    if thresholds.good_direction == "down":
        return latest <= target < previous
    return False


def alert_title(metric_name: str, severity: AlertSeverity) -> str:
    return f"{metric_name} {severity.value.capitalize()}"


def alert_message(
    metric_name: str,
    value: float,
    unit: Optional[str],
    breach: ThresholdBreach,
) -> str:
    unit_text = f" {unit}" if unit else ""
    return (
        f"{metric_name} is {format_number(value)}{unit_text}, "
        f"which breaches the {breach.label} threshold."
    )
