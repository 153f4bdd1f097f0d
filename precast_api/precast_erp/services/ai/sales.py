from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class SalesAIService(BaseAIService):
    """Lead scoring, win prediction, forecasting and pricing advice."""

    actions = (
        "score_lead",
        "predict_opportunity_win",
        "forecast_sales",
        "recommend_next_action",
        "recommend_optimal_pricing",
        "generate_email_response",
    )

    async def score_lead(self, lead_id: str) -> dict[str, Any]:
        body = self.payload("LEAD_SCORING", lead_id=lead_id)
        result = await self._call(self.client.analyze_data(body), "Failed to score lead")
        return self.pick(
            result,
            ("score", "conversion_probability", "qualification_factors", "disqualification_factors",
             "recommended_actions"),
        )

    async def predict_opportunity_win(self, opportunity_id: str) -> dict[str, Any]:
        body = self.payload("OPPORTUNITY_WIN_PREDICTION", opportunity_id=opportunity_id)
        result = await self._call(self.client.get_prediction(body), "Failed to predict opportunity win")
        return self.pick(
            result,
            ("win_probability", "key_factors", "competitive_analysis", "strengths_weaknesses",
             "recommended_actions"),
        )

    async def forecast_sales(self, timeframe: str = "QUARTER") -> dict[str, Any]:
        body = self.payload("SALES_FORECASTING", timeframe=timeframe)
        result = await self._call(self.client.get_prediction(body), "Failed to forecast sales")
        return self.pick(
            result,
            ("forecasted_revenue", "forecasted_deals", "confidence_interval", "trend_analysis",
             "seasonal_factors"),
        )

    async def recommend_next_action(self, entity_id: str, entity_type: str = "LEAD") -> dict[str, Any]:
        """`entity_type` is LEAD or OPPORTUNITY."""
        body = self.payload("NEXT_BEST_ACTION", entity_id=entity_id, entity_type=entity_type)
        result = await self._call(self.client.get_recommendations(body), "Failed to recommend next action")
        return self.pick(
            result,
            ("recommended_actions", "priority_ranking", "expected_outcomes", "timing", "personalization"),
        )

    async def recommend_optimal_pricing(self, opportunity_id: str, products: Optional[list] = None) -> dict[str, Any]:
        body = self.payload("OPTIMAL_PRICING", opportunity_id=opportunity_id, products=products)
        result = await self._call(self.client.get_recommendations(body), "Failed to recommend optimal pricing")
        return self.pick(
            result,
            ("recommended_prices", "price_ranges", "competitive_analysis", "value_justification",
             "discount_strategy"),
        )

    async def generate_email_response(self, email_content: str, contact_id: Optional[str] = None) -> dict[str, Any]:
        body = self.payload("EMAIL_RESPONSE_GENERATION", email_content=email_content, contact_id=contact_id)
        result = await self._call(self.client.generate_content(body), "Failed to generate email response")
        return self.pick(
            result,
            ("response_content", "suggested_subject", "alternative_versions", "follow_up_suggestions",
             "attachment_recommendations"),
        )
