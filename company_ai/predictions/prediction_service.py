"""
Forecasting and risk predictions.

Same discipline as the agents (ask for one JSON object, extract, validate)
but with defined fallbacks: an unusable reply yields an empty list, a
skipped item or a neutral default instead of an error. Provider errors
still propagate.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from company_ai.exceptions import StructuredResponseError
from company_ai.formatting import format_currency_cents, format_number
from company_ai.llm.base import ChatMessage, ChatRequest, ModelProvider
from company_ai.llm.json_extract import extract_json_object
from company_ai.models import CamelModel, CompanyContext, MetricData

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

MIN_HISTORY_POINTS = 3


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class CustomerSnapshot(CamelModel):
    customer_id: str
    metrics: dict[str, float] = Field(default_factory=dict)
    last_activity: datetime
    subscription_age_days: int


class RevenuePoint(CamelModel):
    period: str
    revenue: float


class Deal(CamelModel):
    value: float
    stage: str
    days_in_stage: int
    interactions: int
    competitor_mentioned: bool = False


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class PredictionResult(CamelModel):
    metric: str
    current_value: float
    predicted_value: float
    confidence: float
    timeframe: str
    reasoning: str
    factors: list[str] = Field(default_factory=list)


class ChurnPrediction(CamelModel):
    customer_id: Optional[str] = None
    risk_score: float = Field(..., ge=0, le=100)
    risk_level: Literal["low", "medium", "high", "critical"]
    signals: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)


class RevenueForecast(CamelModel):
    period: str
    predicted_revenue: float
    confidence: float
    growth_rate: float
    assumptions: list[str] = Field(default_factory=list)


class DealFactor(CamelModel):
    factor: str
    impact: Literal["positive", "negative", "neutral"]


class DealPrediction(CamelModel):
    probability: float = 50
    confidence: float = 0
    factors: list[DealFactor] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)


# Reply shapes

class _PeriodPrediction(CamelModel):
    period: str
    predicted_value: float
    confidence: float
    reasoning: str


class _MetricPredictionReply(CamelModel):
    predictions: list[_PeriodPrediction]
    factors: list[str] = Field(default_factory=list)


class _MonthForecast(CamelModel):
    period: str
    predicted_revenue: float
    confidence: float
    growth_rate: float


class _RevenueForecastReply(CamelModel):
    forecasts: list[_MonthForecast]
    assumptions: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class PredictionService:
    def __init__(self, provider: ModelProvider, model: Optional[str] = None):
        self.provider = provider
        self.model = model or provider.default_model or "default"

    async def _ask(
        self, prompt: str, schema: Type[ModelT], max_tokens: int = 1024
    ) -> Optional[ModelT]:
        """One-shot JSON request; None when the reply is unusable."""
        result = await self.provider.chat(ChatRequest(
            model=self.model,
            messages=[ChatMessage(role="user", content=prompt)],
            max_tokens=max_tokens,
        ))
        try:
            return schema.model_validate(extract_json_object(result.content))
        except (StructuredResponseError, ValidationError) as e:
            logger.warning(
                "prediction_reply_unusable",
                extra={"schema": schema.__name__, "error": str(e)[:200]},
            )
            return None

    async def predict_metric(
        self,
        history: Sequence[MetricData],
        forecast_periods: int = 3,
    ) -> list[PredictionResult]:
        """Predict the next periods of one metric; needs at least 3 readings."""
        if len(history) < MIN_HISTORY_POINTS:
            return []

        ordered = sorted(history, key=lambda m: m.recorded_at)
        name = ordered[0].name
        lines = "\n".join(
            f"- {m.recorded_at.date().isoformat()}: {format_number(m.value)}"
            + (f" {m.unit}" if m.unit else "")
            for m in ordered
        )
        prompt = f"""Analyze this metric history and predict future values:

Metric: {name}
History (oldest to newest):
{lines}

Predict the next {forecast_periods} periods. Provide your response as JSON:
{{
  "predictions": [
    {{
      "period": "description of time period",
      "predictedValue": number,
      "confidence": number (0-100),
      "reasoning": "brief explanation"
    }}
  ],
  "factors": ["key factor 1", "key factor 2"]
}}"""

        reply = await self._ask(prompt, _MetricPredictionReply)
        if reply is None:
            return []

        return [
            PredictionResult(
                metric=name,
                current_value=ordered[-1].value,
                predicted_value=p.predicted_value,
                confidence=p.confidence,
                timeframe=p.period,
                reasoning=p.reasoning,
                factors=reply.factors,
            )
            for p in reply.predictions
        ]

    async def predict_churn(
        self, customers: Sequence[CustomerSnapshot]
    ) -> list[ChurnPrediction]:
        """One call per customer; customers with an unusable reply are skipped."""
        predictions: list[ChurnPrediction] = []
        for customer in customers:
            metric_lines = "\n".join(
                f"- {k}: {format_number(v)}" for k, v in customer.metrics.items()
            )
            prompt = f"""Analyze this customer and predict churn risk:

Customer Metrics:
{metric_lines}
- Last Activity: {customer.last_activity.date().isoformat()}
- Subscription Age: {customer.subscription_age_days} days

Provide churn prediction as JSON:
{{
  "riskScore": number (0-100),
  "riskLevel": "low" | "medium" | "high" | "critical",
  "signals": ["warning signal 1", "warning signal 2"],
  "recommendedActions": ["action 1", "action 2"]
}}"""
            prediction = await self._ask(prompt, ChurnPrediction, max_tokens=512)
            if prediction is not None:
                predictions.append(
                    prediction.model_copy(update={"customer_id": customer.customer_id})
                )
        return predictions

    async def forecast_revenue(
        self,
        history: Sequence[RevenuePoint],
        company: CompanyContext,
        forecast_months: int = 6,
    ) -> list[RevenueForecast]:
        revenue_lines = "\n".join(
            f"- {p.period}: ${p.revenue:,.0f}" for p in history
        )
        prompt = f"""Forecast revenue for the next {forecast_months} months:

Company Context:
- Stage: {company.stage.value}
- Current ARR: {format_currency_cents(company.arr_cents)}
- Team Size: {company.employee_count or "Unknown"}
- Industry: {company.industry or "Unknown"}

Historical Revenue:
{revenue_lines}

Provide forecast as JSON:
{{
  "forecasts": [
    {{
      "period": "Month Year",
      "predictedRevenue": number,
      "confidence": number (0-100),
      "growthRate": number (percentage)
    }}
  ],
  "assumptions": ["assumption 1", "assumption 2"]
}}"""

        reply = await self._ask(prompt, _RevenueForecastReply)
        if reply is None:
            return []

        return [
            RevenueForecast(
                period=f.period,
                predicted_revenue=f.predicted_revenue,
                confidence=f.confidence,
                growth_rate=f.growth_rate,
                assumptions=reply.assumptions,
            )
            for f in reply.forecasts
        ]

    async def predict_deal_probability(self, deal: Deal) -> DealPrediction:
        """Win probability for a deal; 50% with zero confidence when unusable."""
        prompt = f"""Analyze this deal and predict win probability:

Deal Information:
- Value: ${deal.value:,.0f}
- Current Stage: {deal.stage}
- Days in Current Stage: {deal.days_in_stage}
- Number of Interactions: {deal.interactions}
- Competitor Mentioned: {"Yes" if deal.competitor_mentioned else "No"}

Provide prediction as JSON:
{{
  "probability": number (0-100),
  "confidence": number (0-100),
  "factors": [
    {{ "factor": "description", "impact": "positive" | "negative" | "neutral" }}
  ],
  "recommendedActions": ["action 1", "action 2"]
}}"""

        prediction = await self._ask(prompt, DealPrediction, max_tokens=512)
        return prediction or DealPrediction()
