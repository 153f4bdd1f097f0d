from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class DraftingAIService(BaseAIService):
    """Drawing analysis endpoints under `/api/ai/drafting`."""

    actions = (
        "extract_elements",
        "generate_revision_description",
        "detect_conflicts",
        "analyze_quality",
        "suggest_improvements",
        "generate_annotations",
    )

    @staticmethod
    def _drawing(drawing: dict) -> dict[str, Any]:
        return {
            "id": drawing.get("id"),
            "fileUrl": drawing.get("file_url") or drawing.get("fileUrl"),
            "fileType": drawing.get("file_type") or drawing.get("fileType"),
            "metadata": drawing.get("metadata") or {},
        }

    async def extract_elements(self, drawing: dict) -> Any:
        body = self.payload(drawing=self._drawing(drawing))
        result = await self._call(
            self.client.post("drafting/extract-elements", body), "Failed to extract elements from drawing"
        )
        return result.get("elements") if isinstance(result, dict) else result

    async def generate_revision_description(self, current_drawing: dict, previous_drawing: dict) -> Any:
        body = self.payload(current_drawing=current_drawing, previous_drawing=previous_drawing)
        return await self._call(
            self.client.post("drafting/revision-description", body), "Failed to generate revision description"
        )

    async def detect_conflicts(self, drawings: list) -> Any:
        body = self.payload(drawings=drawings)
        result = await self._call(
            self.client.post("drafting/detect-conflicts", body), "Failed to detect drawing conflicts"
        )
        return result.get("conflicts") if isinstance(result, dict) else result

    async def analyze_quality(self, drawing: dict) -> Any:
        body = self.payload(drawing=self._drawing(drawing))
        return await self._call(
            self.client.post("drafting/analyze-quality", body), "Failed to analyze drawing quality"
        )

    async def suggest_improvements(self, drawing: dict) -> Any:
        body = self.payload(drawing=self._drawing(drawing))
        result = await self._call(
            self.client.post("drafting/suggest-improvements", body), "Failed to suggest drawing improvements"
        )
        return result.get("suggestions") if isinstance(result, dict) else result

    async def generate_annotations(self, drawing: dict, context: Optional[dict] = None) -> Any:
        body = self.payload(drawing=self._drawing(drawing), context=context or {})
        result = await self._call(
            self.client.post("drafting/generate-annotations", body), "Failed to generate drawing annotations"
        )
        return result.get("annotations") if isinstance(result, dict) else result
