from __future__ import annotations

from typing import Any, Optional

from .base import BaseAIService


class HRAIService(BaseAIService):
    actions = (
        "generate_optimal_schedule",
        "analyze_employee_performance",
        "assess_training_needs",
        "predict_certification_expirations",
        "optimize_workforce_planning",
    )

    async def generate_optimal_schedule(self, employees: list, projects: list) -> Any:
        body = self.payload("WORKFORCE_SCHEDULING", employees=employees, projects=projects)
        return await self._call(self.client.get_optimization_plan(body), "Failed to generate optimal schedule")

    async def analyze_employee_performance(self, employee_data: dict) -> dict[str, Any]:
        body = self.payload("EMPLOYEE_PERFORMANCE_ANALYSIS", employee_data=employee_data)
        result = await self._call(self.client.analyze_data(body), "Failed to analyze employee performance")
        return self.pick(result, ("metrics", "trends", "benchmark_comparison", "recommendations"))

    async def assess_training_needs(self, employee_data: dict, project_requirements: Optional[list] = None) -> Any:
        body = self.payload(
            "TRAINING_NEEDS_ASSESSMENT",
            employee_data=employee_data,
            project_requirements=project_requirements or [],
        )
        return await self._call(self.client.analyze_data(body), "Failed to assess training needs")

    async def predict_certification_expirations(self, certifications: list) -> Any:
        body = self.payload("CERTIFICATION_EXPIRATION_PREDICTION", certifications=certifications)
        return await self._call(self.client.get_prediction(body), "Failed to predict certification expirations")

    async def optimize_workforce_planning(self, current_workforce: list, project_forecasts: list) -> Any:
        body = self.payload(
            "WORKFORCE_PLANNING_OPTIMIZATION",
            current_workforce=current_workforce,
            project_forecasts=project_forecasts,
        )
        return await self._call(self.client.get_optimization_plan(body), "Failed to optimize workforce planning")
