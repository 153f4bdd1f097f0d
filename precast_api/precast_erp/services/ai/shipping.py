from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class ShippingAIService(BaseAIService):
    """Load, route and delivery predictions for shipments and dispatches."""

    actions = (
        "optimize_load",
        "optimize_route",
        "predict_delivery_time",
        "assess_delivery_risks",
        "generate_shipping_documentation",
        "optimize_dispatch_routes",
        "optimize_delivery_schedule",
        "recommend_issue_resolution",
    )

    async def optimize_load(self, shipment_id: str, vehicle_id: Optional[str] = None, piece_ids: Optional[list] = None):
        body = self.payload("LOAD_OPTIMIZATION", shipment_id=shipment_id, vehicle_id=vehicle_id, piece_ids=piece_ids)
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize load")
        return self.pick(
            result,
            ("loading_sequence", "loading_diagram", "weight_distribution", "stability_analysis",
             "special_handling_instructions", "alternative_configurations"),
        )

    async def optimize_route(self, shipment_id: str, constraints: Optional[dict] = None) -> dict[str, Any]:
        body = self.payload("ROUTE_OPTIMIZATION", shipment_id=shipment_id, constraints=constraints)
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize route")
        return self.pick(
            result,
            ("optimized_route", "waypoints", "estimated_times", "traffic_considerations", "fuel_efficiency",
             "alternative_routes"),
        )

    async def predict_delivery_time(self, shipment_id: str) -> dict[str, Any]:
        body = self.payload("DELIVERY_TIME_PREDICTION", shipment_id=shipment_id)
        result = await self._call(self.client.get_prediction(body), "Failed to predict delivery time")
        return self.pick(
            result,
            ("predicted_delivery_time", "confidence_interval", "factors_affecting_delivery", "delay_probability",
             "early_arrival_probability", "timeline_breakdown"),
        )

    async def assess_delivery_risks(self, shipment_id: str) -> dict[str, Any]:
        body = self.payload("DELIVERY_RISK_ASSESSMENT", shipment_id=shipment_id)
        result = await self._call(self.client.analyze_data(body), "Failed to assess delivery risks")
        return self.pick(
            result,
            ("risk_factors", "risk_scores", "weather_impact", "traffic_risks", "site_access_risks",
             "mitigation_strategies"),
        )

    async def generate_shipping_documentation(self, shipment_id: str, document_type: str) -> dict[str, Any]:
        body = self.payload(
            "SHIPPING_DOCUMENTATION_GENERATION", shipment_id=shipment_id, document_type=document_type
        )
        result = await self._call(self.client.generate_content(body), "Failed to generate shipping documentation")
        return self.pick(
            result,
            ("document_content", "document_format", "document_metadata", "generation_context",
             "validation_results"),
        )

    async def optimize_dispatch_routes(
        self, deliveries: list, vehicles: Optional[list] = None, constraints: Optional[dict] = None
    ) -> Any:
        """Route plan across several dispatches."""
        body = self.payload(
            "DISPATCH_ROUTE_OPTIMIZATION", deliveries=deliveries, vehicles=vehicles, constraints=constraints
        )
        return await self._call(self.client.get_optimization_plan(body), "Failed to optimize routes")

    async def optimize_delivery_schedule(self, job_ids: list, constraints: Optional[dict] = None) -> dict[str, Any]:
        body = self.payload("DELIVERY_SCHEDULE_OPTIMIZATION", job_ids=job_ids, constraints=constraints)
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize delivery schedule")
        return self.pick(
            result,
            ("optimized_schedule", "resource_allocation", "priority_analysis", "constraint_satisfaction",
             "risk_assessment", "alternative_schedules"),
        )

    async def recommend_issue_resolution(
        self, delivery_id: str, issue_type: str, issue_details: Optional[dict] = None
    ) -> dict[str, Any]:
        body = self.payload(
            "DELIVERY_ISSUE_RESOLUTION", delivery_id=delivery_id, issue_type=issue_type, issue_details=issue_details
        )
        result = await self._call(self.client.get_recommendations(body), "Failed to recommend issue resolution")
        return self.pick(
            result,
            ("recommended_actions", "priority_level", "stakeholders_to_notify", "resolution_steps",
             "escalation_path", "prevention_strategies"),
        )
