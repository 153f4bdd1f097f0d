from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class ContactAIService(BaseAIService):
    """AI features of contact management: prioritisation, scoring, enrichment."""

    actions = (
        "prioritize_contacts",
        "score_leads",
        "segment_contacts",
        "recommend_next_best_action",
        "predict_churn_risk",
        "generate_personalized_content",
        "enrich_contact_data",
        "detect_duplicates",
        "get_follow_up_recommendations",
        "extract_action_items",
    )

    async def prioritize_contacts(self, filters: Optional[dict] = None) -> dict[str, Any]:
        body = self.payload("CONTACT_PRIORITIZATION", filters=filters or {})
        result = await self._call(self.client.get_recommendations(body), "Failed to prioritize contacts")
        return self.pick(
            result,
            ("prioritized_contacts", "prioritization_rationale", "engagement_scores",
             "value_scores", "relationship_scores"),
            aliases={"prioritization_rationale": "rationale"},
        )

    async def score_leads(self, contact_ids: list[str]) -> dict[str, Any]:
        body = self.payload("LEAD_SCORING", contact_ids=contact_ids)
        result = await self._call(self.client.analyze_data(body), "Failed to score leads")
        return self.pick(
            result,
            ("scored_leads", "scoring_factors", "conversion_probabilities",
             "recommended_actions", "segment_analysis"),
        )

    async def segment_contacts(self, criteria: Optional[dict] = None) -> dict[str, Any]:
        body = self.payload("CONTACT_SEGMENTATION", criteria=criteria or {})
        result = await self._call(self.client.analyze_data(body), "Failed to segment contacts")
        return self.pick(
            result,
            ("segments", "segment_profiles", "segment_sizes",
             "recommended_approaches", "cross_segment_insights"),
        )

    async def recommend_next_best_action(self, contact_id: str) -> dict[str, Any]:
        body = self.payload("NEXT_BEST_ACTION", contact_id=contact_id)
        result = await self._call(
            self.client.get_recommendations(body), "Failed to recommend next best action"
        )
        return self.pick(
            result,
            ("recommended_action", "action_type", "priority", "timing",
             "expected_outcome", "alternative_actions"),
        )

    async def predict_churn_risk(self, contact_ids: list[str]) -> dict[str, Any]:
        body = self.payload("CHURN_RISK_PREDICTION", contact_ids=contact_ids)
        result = await self._call(self.client.get_prediction(body), "Failed to predict churn risk")
        return self.pick(
            result,
            ("churn_risk_scores", "risk_factors", "timeframe_estimates",
             "retention_strategies", "early_warning_signals"),
        )

    async def generate_personalized_content(
        self, contact_id: str, content_type: str, purpose: Optional[str] = None
    ) -> dict[str, Any]:
        body = self.payload(
            "PERSONALIZED_CONTENT_GENERATION",
            contact_id=contact_id,
            content_type=content_type,
            purpose=purpose,
        )
        result = await self._call(
            self.client.generate_content(body), "Failed to generate personalized content"
        )
        return self.pick(
            result,
            ("generated_content", "personalization_factors", "content_variations",
             "recommended_subject", "call_to_action"),
        )

    async def enrich_contact_data(self, contact_id: str) -> dict[str, Any]:
        body = self.payload("CONTACT_DATA_ENRICHMENT", contact_id=contact_id)
        result = await self._call(self.client.extract_data(body), "Failed to enrich contact data")
        return self.pick(
            result,
            ("enriched_data", "data_sources", "confidence_scores",
             "missing_data_fields", "data_quality_assessment"),
        )

    async def detect_duplicates(self, threshold: float = 0.8) -> dict[str, Any]:
        body = self.payload("DUPLICATE_DETECTION", threshold=threshold)
        result = await self._call(self.client.analyze_data(body), "Failed to detect duplicates")
        return self.pick(
            result,
            ("potential_duplicates", "similarity_scores", "matching_criteria",
             "merge_recommendations", "confidence_assessment"),
        )

    async def get_follow_up_recommendations(
        self, contact: dict, interactions: Optional[list] = None
    ) -> Any:
        body = {"contact": contact, "interactions": interactions or []}
        result = await self._call(
            self.client.post("contacts/follow-up", body), "Failed to get follow-up recommendations"
        )
        return self.pick(result, ("recommendations",))["recommendations"]

    async def extract_action_items(self, notes: str) -> Any:
        result = await self._call(
            self.client.post("contacts/extract-actions", {"notes": notes}),
            "Failed to extract action items",
        )
        return self.pick(result, ("action_items",))["action_items"]
