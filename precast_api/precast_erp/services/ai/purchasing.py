from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class PurchasingAIService(BaseAIService):
    """Sourcing, pricing and spend analysis through the generic AI endpoints."""

    actions = (
        "recommend_vendors",
        "optimize_pricing",
        "forecast_demand",
        "optimize_inventory",
        "analyze_vendor_performance",
        "detect_cost_saving_opportunities",
        "detect_purchase_order_anomalies",
        "analyze_spend_patterns",
    )

    async def recommend_vendors(
        self, material_ids: list, quantities: Optional[list] = None, delivery_date: Optional[str] = None
    ) -> dict[str, Any]:
        body = self.payload(
            "VENDOR_RECOMMENDATION", material_ids=material_ids, quantities=quantities, delivery_date=delivery_date
        )
        result = await self._call(self.client.get_recommendations(body), "Failed to recommend vendors")
        return self.pick(
            result,
            ("recommended_vendors", "rationale", "alternative_options", "risk_assessment", "cost_comparison"),
            aliases={"recommended_vendors": "recommendations"},
        )

    async def optimize_pricing(
        self, material_ids: list, quantities: Optional[list] = None, vendor_ids: Optional[list] = None
    ) -> dict[str, Any]:
        body = self.payload("PRICE_OPTIMIZATION", material_ids=material_ids, quantities=quantities, vendor_ids=vendor_ids)
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize pricing")
        return self.pick(
            result,
            ("optimized_prices", "negotiation_strategies", "market_insights", "potential_savings",
             "implementation_steps"),
        )

    async def forecast_demand(self, material_ids: list, timeframe: Optional[str] = None) -> dict[str, Any]:
        body = self.payload("DEMAND_FORECAST", material_ids=material_ids, timeframe=timeframe)
        result = await self._call(self.client.get_prediction(body), "Failed to forecast demand")
        return self.pick(
            result,
            ("forecasted_demand", "confidence_intervals", "seasonality_factors", "trend_analysis",
             "anomaly_detection"),
        )

    async def optimize_inventory(self, material_ids: list) -> dict[str, Any]:
        body = self.payload("INVENTORY_OPTIMIZATION", material_ids=material_ids)
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize inventory")
        return self.pick(
            result,
            ("optimized_levels", "reorder_points", "safety_stock_levels", "economic_order_quantities",
             "cost_impact"),
        )

    async def analyze_vendor_performance(self, vendor_id: str, timeframe: Optional[str] = None) -> dict[str, Any]:
        body = self.payload("VENDOR_PERFORMANCE_ANALYSIS", vendor_id=vendor_id, timeframe=timeframe)
        result = await self._call(self.client.analyze_data(body), "Failed to analyze vendor performance")
        return self.pick(
            result,
            ("performance_metrics", "trend_analysis", "benchmark_comparison", "improvement_opportunities",
             "risk_factors"),
        )

    async def detect_cost_saving_opportunities(self) -> dict[str, Any]:
        body = self.payload("COST_SAVING_DETECTION")
        result = await self._call(self.client.analyze_data(body), "Failed to detect cost saving opportunities")
        return self.pick(
            result,
            ("opportunities", "estimated_savings", "implementation_complexity", "time_to_realization",
             "recommended_actions"),
        )

    async def detect_purchase_order_anomalies(self, purchase_order_id: str) -> dict[str, Any]:
        body = self.payload("PO_ANOMALY_DETECTION", purchase_order_id=purchase_order_id)
        result = await self._call(self.client.analyze_data(body), "Failed to detect purchase order anomalies")
        return self.pick(result, ("anomalies", "risk_level", "similar_cases", "recommended_checks", "explanation"))

    async def analyze_spend_patterns(
        self, timeframe: Optional[str] = None, categories: Optional[list] = None
    ) -> dict[str, Any]:
        body = self.payload("SPEND_PATTERN_ANALYSIS", timeframe=timeframe, categories=categories)
        result = await self._call(self.client.analyze_data(body), "Failed to analyze spend patterns")
        return self.pick(
            result,
            ("spend_trends", "category_insights", "anomalies", "savings_opportunities", "benchmark_comparison"),
        )
