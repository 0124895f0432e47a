"""
Metric snapshot construction.

Trend and change percent are always derived from the two most recent
readings, never stored:

    change = (latest - previous) / |previous| * 100
    up if change > 1, down if change < -1, otherwise stable

A missing or zero previous reading yields `stable` with no change percent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from company_ai.models import MetricData, Trend

TREND_THRESHOLD_PERCENT = 1.0


def derive_trend(
    latest: float, previous: Optional[float]
) -> tuple[Trend, Optional[float]]:
    """Return (trend, change_percent) for a pair of readings."""
    if previous is None or previous == 0:
        return Trend.STABLE, None

    change = (latest - previous) / abs(previous) * 100
    if change > TREND_THRESHOLD_PERCENT:
        return Trend.UP, change
    if change < -TREND_THRESHOLD_PERCENT:
        return Trend.DOWN, change
    return Trend.STABLE, change


def build_metric(
    name: str,
    slug: str,
    values: Sequence[float],
    *,
    unit: Optional[str] = None,
    recorded_at: Optional[datetime] = None,
) -> MetricData:
    """
    Build a MetricData from readings ordered latest first.

    Only the first two readings are used. A KPI with no readings is
    reported at value 0 so it still appears in prompts.
    """
    latest = float(values[0]) if len(values) > 0 else 0.0
    previous = float(values[1]) if len(values) > 1 else None
    trend, change = derive_trend(latest, previous)

    return MetricData(
        name=name,
        slug=slug,
        value=latest,
        previous_value=previous,
        unit=unit,
        trend=trend,
        change_percent=change,
        recorded_at=recorded_at or datetime.now(timezone.utc),
    )
