from __future__ import annotations

from typing import Any

from .base import BaseAIService


class ProjectAIService(BaseAIService):
    actions = (
        "optimize_project_schedule",
        "optimize_resource_allocation",
        "predict_project_risks",
        "forecast_project_budget",
        "prioritize_tasks",
        "generate_status_report",
        "analyze_team_performance",
    )

    async def optimize_project_schedule(self, project_id: str) -> dict[str, Any]:
        body = self.payload("SCHEDULE_OPTIMIZATION", project_id=project_id)
        result = await self._call(self.client.get_optimization_plan(body), "Failed to optimize project schedule")
        return self.pick(
            result,
            ("optimized_schedule", "critical_path", "resource_allocation", "timeline_impact", "risk_assessment"),
        )

    async def optimize_resource_allocation(self, project_id: str) -> dict[str, Any]:
        body = self.payload("RESOURCE_OPTIMIZATION", project_id=project_id)
        result = await self._call(
            self.client.get_optimization_plan(body), "Failed to optimize resource allocation"
        )
        return self.pick(
            result,
            ("recommended_allocations", "skill_match_analysis", "workload_balancing",
             "efficiency_gains", "alternative_options"),
        )

    async def predict_project_risks(self, project_id: str) -> dict[str, Any]:
        body = self.payload("RISK_PREDICTION", project_id=project_id)
        result = await self._call(self.client.get_prediction(body), "Failed to predict project risks")
        return self.pick(
            result,
            ("predicted_risks", "risk_probabilities", "impact_assessment",
             "mitigation_strategies", "historical_comparison"),
        )

    async def forecast_project_budget(self, project_id: str) -> dict[str, Any]:
        body = self.payload("BUDGET_FORECAST", project_id=project_id)
        result = await self._call(self.client.get_prediction(body), "Failed to forecast project budget")
        return self.pick(
            result,
            ("forecasted_spending", "variance_analysis", "cost_trends", "savings_opportunities", "budget_risks"),
        )

    async def prioritize_tasks(self, project_id: str) -> dict[str, Any]:
        body = self.payload("TASK_PRIORITIZATION", project_id=project_id)
        result = await self._call(self.client.get_recommendations(body), "Failed to prioritize tasks")
        return self.pick(
            result,
            ("prioritized_tasks", "prioritization_rationale", "impact_analysis",
             "dependency_chains", "resource_considerations"),
            aliases={"prioritization_rationale": "rationale"},
        )

    async def generate_status_report(self, project_id: str) -> dict[str, Any]:
        body = self.payload("STATUS_REPORT_GENERATION", project_id=project_id)
        result = await self._call(self.client.generate_content(body), "Failed to generate status report")
        return self.pick(
            result,
            ("report_content", "key_highlights", "issues_and_risks", "progress_metrics", "recommended_actions"),
            aliases={"report_content": "generatedContent", "key_highlights": "highlights"},
        )

    async def analyze_team_performance(self, project_id: str) -> dict[str, Any]:
        body = self.payload("TEAM_PERFORMANCE_ANALYSIS", project_id=project_id)
        result = await self._call(self.client.analyze_data(body), "Failed to analyze team performance")
        return self.pick(
            result,
            ("performance_metrics", "strengths_and_weaknesses", "productivity_trends",
             "improvement_recommendations", "team_dynamics_insights"),
            aliases={"improvement_recommendations": "recommendations", "team_dynamics_insights": "teamDynamics"},
        )
