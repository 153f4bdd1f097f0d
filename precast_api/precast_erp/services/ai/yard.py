from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class YardAIService(BaseAIService):
    """Storage and capacity predictions served under `/api/ai/yard`."""

    actions = (
        "storage_recommendation",
        "optimal_layout",
        "detect_anomalies",
        "movement_patterns",
        "piece_readiness",
        "capacity_prediction",
        "optimization_recommendations",
        "identify_piece",
    )

    async def storage_recommendation(self, piece_id: str) -> Any:
        return await self._call(
            self.client.post("yard/storage-recommendation", self.payload(piece_id=piece_id)),
            f"Failed to get storage recommendation for piece {piece_id}",
        )

    async def optimal_layout(self, constraints: Optional[dict] = None, horizon_days: Optional[int] = None) -> Any:
        body = self.payload(constraints=constraints, horizon_days=horizon_days)
        return await self._call(self.client.post("yard/optimal-layout", body), "Failed to predict optimal yard layout")

    async def detect_anomalies(self, location_ids: Optional[list] = None, timeframe: Optional[str] = None) -> Any:
        body = self.payload(location_ids=location_ids, timeframe=timeframe)
        result = await self._call(self.client.post("yard/anomalies", body), "Failed to detect yard anomalies")
        return result.get("anomalies", result) if isinstance(result, dict) else result

    async def movement_patterns(self, timeframe: Optional[str] = None, material_ids: Optional[list] = None) -> Any:
        body = self.payload(timeframe=timeframe, material_ids=material_ids)
        return await self._call(
            self.client.post("yard/movement-patterns", body), "Failed to analyze movement patterns"
        )

    async def piece_readiness(self, piece_id: str) -> Any:
        return await self._call(
            self.client.post("yard/piece-readiness", self.payload(piece_id=piece_id)),
            f"Failed to predict readiness for piece {piece_id}",
        )

    async def capacity_prediction(self, horizon_days: Optional[int] = None, projects: Optional[list] = None) -> Any:
        body = self.payload(horizon_days=horizon_days, projects=projects)
        return await self._call(
            self.client.post("yard/capacity-prediction", body), "Failed to predict future capacity needs"
        )

    async def optimization_recommendations(self) -> Any:
        return await self._call(
            self.client.post("yard/optimization-recommendations", self.payload()),
            "Failed to get yard optimization recommendations",
        )

    async def identify_piece(self, image: str) -> Any:
        """`image` is a URL or base64 payload understood by the AI service."""
        body = self.payload("PIECE_IDENTIFICATION", images=[image])
        return await self._call(self.client.analyze_images(body), "Failed to identify piece from image")
