"""
Advisory insight service.

Sends the monthly trend and a totals triple to Gemini and returns a short
summary, a recommendation and a risk label. Independent of the acquisition
layer: every failure is absorbed here and replaced by FALLBACK_INSIGHT.
"""
from __future__ import annotations
import json
from typing import Awaitable, Callable, Optional, Sequence
import google.generativeai as genai
from loguru import logger
from pydantic import ValidationError

from .config import DashboardConfig
from .models import AdvisoryInsight, AdvisoryTotals, MonthlyDataPoint, RiskLevel

FALLBACK_INSIGHT = AdvisoryInsight(
    summary="Unable to generate insights at this time.",
    recommendation="Please check your connection.",
    risk_assessment=RiskLevel.LOW,
)

PROMPT_TEMPLATE = """
Analyze the following financial data from a company's Tally Prime dashboard.

Totals:
Total Sales: {sales}
Total Purchase: {purchase}
Cash in Hand: {cash}

Monthly Trend (Last {months} months):
{monthly}

Provide a JSON response with:
1. "summary": a short summary of financial health.
2. "recommendation": a strategic recommendation.
3. "riskAssessment": a risk assessment level, one of Low, Medium, High.
""".strip()

TextGenerator = Callable[[str], Awaitable[str]]


class AdvisoryServiceError(Exception):
    """Raised when the text service fails or returns unusable content."""
    pass


class GeminiTextGenerator:
    """Calls a Gemini model and returns the raw response text."""

    def __init__(self, api_key: Optional[str], model_name: str):
        if not api_key:
            raise AdvisoryServiceError("Missing GEMINI_API_KEY or GOOGLE_API_KEY")
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)

    async def __call__(self, prompt: str) -> str:
        response = await self.model.generate_content_async(
            prompt,
            generation_config={"response_mime_type": "application/json"},
        )
        return response.text


def build_prompt(monthly: Sequence[MonthlyDataPoint], totals: AdvisoryTotals) -> str:
    return PROMPT_TEMPLATE.format(
        sales=totals.sales,
        purchase=totals.purchase,
        cash=totals.cash,
        months=len(monthly),
        monthly=json.dumps([m.model_dump() for m in monthly]),
    )


def parse_insight(text: str | None) -> AdvisoryInsight:
    if not text:
        raise AdvisoryServiceError("No response from the advisory service")
    try:
        return AdvisoryInsight.model_validate_json(text)
    except ValidationError as e:
        raise AdvisoryServiceError(f"Unusable advisory response: {e}") from e


class AdvisoryService:
    """
    Usage:
        service = AdvisoryService(config)
        insight = await service.generate_insight(bundle.monthly, advisory_totals(bundle))

    ``generator`` replaces the Gemini call (tests inject a coroutine function).
    """

    def __init__(self, config: Optional[DashboardConfig] = None, generator: Optional[TextGenerator] = None):
        self.config = config or DashboardConfig.from_env()
        self._generator = generator

    def _get_generator(self) -> TextGenerator:
        if self._generator is None:
            self._generator = GeminiTextGenerator(self.config.gemini_api_key, self.config.gemini_model)
        return self._generator

    async def generate_insight(
        self, monthly: Sequence[MonthlyDataPoint], totals: AdvisoryTotals
    ) -> AdvisoryInsight:
        try:
            generator = self._get_generator()
            text = await generator(build_prompt(monthly, totals))
            return parse_insight(text)
        except Exception as e:
            logger.warning(f"Advisory service failed, using fallback insight: {e}")
            return FALLBACK_INSIGHT.model_copy()
