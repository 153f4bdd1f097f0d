from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class QualityAIService(BaseAIService):
    """Defect detection, root-cause analysis and mix-design optimisation."""

    actions = (
        "detect_defects",
        "analyze_defect_root_cause",
        "recommend_repair_method",
        "predict_quality",
        "optimize_mix_design",
        "generate_checklist",
        "optimize_inspection_schedule",
        "analyze_test_results",
        "assess_quality_risks",
    )

    async def detect_defects(self, image_urls: list, piece_id: Optional[str] = None) -> dict[str, Any]:
        body = self.payload("DEFECT_DETECTION", image_urls=image_urls, piece_id=piece_id)
        result = await self._call(self.client.analyze_images(body), "Failed to detect defects")
        return self.pick(
            result,
            ("detected_defects", "defect_locations", "defect_severities", "defect_classifications",
             "confidence_scores", "annotated_image_urls"),
        )

    async def analyze_defect_root_cause(self, defect_id: str) -> dict[str, Any]:
        body = self.payload("DEFECT_ROOT_CAUSE_ANALYSIS", defect_id=defect_id)
        result = await self._call(self.client.analyze_data(body), "Failed to analyze defect root cause")
        return self.pick(
            result,
            ("potential_causes", "probability_ranking", "contributing_factors", "similar_defects",
             "prevention_recommendations"),
        )

    async def recommend_repair_method(self, defect_id: str) -> dict[str, Any]:
        body = self.payload("REPAIR_METHOD_RECOMMENDATION", defect_id=defect_id)
        result = await self._call(self.client.get_recommendations(body), "Failed to recommend repair method")
        return self.pick(
            result,
            ("recommended_methods", "method_ranking", "material_requirements", "procedure_steps",
             "expected_outcomes", "alternative_methods"),
        )

    async def predict_quality(
        self,
        mix_design_id: str,
        environmental_conditions: Optional[dict] = None,
        process_parameters: Optional[dict] = None,
    ) -> dict[str, Any]:
        body = self.payload(
            "QUALITY_PREDICTION",
            mix_design_id=mix_design_id,
            environmental_conditions=environmental_conditions,
            process_parameters=process_parameters,
        )
        result = await self._call(self.client.get_prediction(body), "Failed to predict quality")
        return self.pick(
            result,
            ("predicted_strength", "predicted_durability", "quality_risks", "confidence_interval",
             "sensitivity_analysis", "optimization_suggestions"),
        )

    async def optimize_mix_design(
        self, performance_requirements: dict, constraints: Optional[dict] = None
    ) -> dict[str, Any]:
        body = self.payload(
            "MIX_DESIGN_OPTIMIZATION", performance_requirements=performance_requirements, constraints=constraints
        )
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize mix design")
        return self.pick(
            result,
            ("optimized_mix_design", "predicted_performance", "cost_analysis", "sustainability_metrics",
             "sensitivity_analysis", "alternative_designs"),
        )

    async def generate_checklist(self, piece_id: str, inspection_type: str) -> dict[str, Any]:
        body = self.payload("CHECKLIST_GENERATION", piece_id=piece_id, inspection_type=inspection_type)
        result = await self._call(self.client.generate_content(body), "Failed to generate checklist")
        return self.pick(
            result,
            ("checklist_items", "critical_items", "customization_rationale", "referenced_standards",
             "historical_context"),
        )

    async def optimize_inspection_schedule(
        self, job_id: str, risk_factors: Optional[list] = None, resources: Optional[list] = None
    ) -> dict[str, Any]:
        body = self.payload(
            "INSPECTION_SCHEDULE_OPTIMIZATION", job_id=job_id, risk_factors=risk_factors, resources=resources
        )
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize inspection schedule")
        return self.pick(
            result,
            ("optimized_schedule", "inspection_priorities", "resource_allocation", "risk_mitigation",
             "coverage_analysis", "contingency_plans"),
        )

    async def analyze_test_results(self, test_result_ids: list) -> dict[str, Any]:
        body = self.payload("TEST_RESULT_ANALYSIS", test_result_ids=test_result_ids)
        result = await self._call(self.client.analyze_data(body), "Failed to analyze test results")
        return self.pick(
            result,
            ("statistical_analysis", "trend_analysis", "anomaly_detection", "correlation_analysis",
             "insights_and_recommendations"),
        )

    async def assess_quality_risks(self, entity_id: str, entity_type: str = "JOB") -> dict[str, Any]:
        """`entity_type` is JOB, PIECE or PROCESS."""
        body = self.payload("QUALITY_RISK_ASSESSMENT", entity_id=entity_id, entity_type=entity_type)
        result = await self._call(self.client.analyze_data(body), "Failed to assess quality risks")
        return self.pick(
            result,
            ("risk_factors", "risk_scores", "risk_categories", "mitigation_strategies",
             "monitoring_recommendations"),
        )
