from __future__ import annotations

from precast_erp.db.models.estimating import Estimate
from .base import ModelRepository


class EstimateRepository(ModelRepository[Estimate]):
    """Repository for estimates, newest issue date first."""

    model = Estimate
    search_columns = ("estimate_number", "project_name", "description")
    default_order = ("-issue_date", "-estimate_number")
