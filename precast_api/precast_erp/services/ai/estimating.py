from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class EstimatingAIService(BaseAIService):
    """Cost estimation helpers; the AI API answers these with free-form JSON."""

    actions = ("generate_cost_estimate", "predict_win_probability", "optimize_materials")

    async def generate_cost_estimate(self, project: dict, historical_projects: Optional[list] = None) -> Any:
        body = self.payload(project=project, historical_projects=historical_projects or [])
        return await self._call(
            self.client.post("estimating/cost-estimate", body), "Failed to generate cost estimate"
        )

    async def predict_win_probability(
        self, quote: dict, customer: Optional[dict] = None, historical_quotes: Optional[list] = None
    ) -> Any:
        body = self.payload(quote=quote, customer=customer or {}, historical_quotes=historical_quotes or [])
        return await self._call(
            self.client.post("estimating/win-probability", body), "Failed to predict win probability"
        )

    async def optimize_materials(self, project: dict, materials: list) -> Any:
        body = self.payload(project=project, materials=materials)
        return await self._call(
            self.client.post("estimating/optimize-materials", body), "Failed to optimize materials"
        )
