"""
Database seeding utilities for minimal reference data.

Seeds:
- Yard hierarchy (Main Yard > Zone A/B > bays)
- A concrete supplier
- A plant manager employee with a current leave balance
- The standard drawing approval workflow template

Every step is skipped when its record already exists, so seeding can run on
each start.

Usage:
  python -m precast_erp.db.run_migrations upgrade head
  python -m precast_erp.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.db.session import get_async_session
from precast_erp.schemas.drafting import TemplateCreate, WorkflowStepIn
from precast_erp.schemas.hr import EmployeeCreate
from precast_erp.schemas.purchasing import VendorCreate
from precast_erp.schemas.yard import LocationCreate
from precast_erp.services.drafting import WorkflowService
from precast_erp.services.hr import HRService
from precast_erp.services.purchasing import PurchasingService
from precast_erp.services.yard import YardLocationService

logger = logging.getLogger(__name__)

# (name, type, capacity, parent name)
YARD_LOCATIONS = [
    ("Main Yard", "yard", 1000, None),
    ("Zone A", "zone", 400, "Main Yard"),
    ("Zone B", "zone", 400, "Main Yard"),
    ("Bay A1", "bay", 100, "Zone A"),
    ("Bay A2", "bay", 100, "Zone A"),
    ("Bay B1", "bay", 100, "Zone B"),
]

APPROVAL_STEPS = ["Draft", "Check", "Engineer review", "Client approval", "Issued for fabrication"]


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with minimal reference data.

    Uses one session from get_async_session and the domain services, so the
    seeded rows pass the same validation as API input.
    """
    async for session in get_async_session():
        await seed_session(session)


# PUBLIC_INTERFACE
async def seed_session(session: AsyncSession) -> None:
    """Seed through an existing session; each helper commits its own rows."""
    await _seed_yard(session)
    await _seed_vendor(session)
    await _seed_employee(session)
    await _seed_workflow_template(session)


async def _seed_yard(session: AsyncSession) -> None:
    service = YardLocationService(session)
    existing = {loc.name: loc.id for loc in await service.locations.list(limit=None)}
    for name, type_, capacity, parent in YARD_LOCATIONS:
        if name in existing:
            continue
        parent_id: Optional[UUID] = existing.get(parent) if parent else None
        location = await service.create_location(
            LocationCreate(name=name, type=type_, capacity=capacity, parent_id=parent_id)
        )
        existing[name] = location.id
        logger.info("Seeded yard location %s", name)


async def _seed_vendor(session: AsyncSession) -> None:
    service = PurchasingService(session)
    if await service.vendors.find_by_name_or_code("Ready Mix Supply", "RMS001"):
        return
    await service.create_vendor(
        VendorCreate(
            name="Ready Mix Supply",
            code="RMS001",
            contact_name="Dispatch desk",
            category="Concrete",
            payment_terms="NET30",
        )
    )
    logger.info("Seeded vendor Ready Mix Supply")


async def _seed_employee(session: AsyncSession) -> None:
    service = HRService(session)
    if await service.employees.list(filters={"employee_code": "EMP-0001"}, limit=1):
        return
    await service.create_employee(
        EmployeeCreate(
            employee_code="EMP-0001",
            first_name="Plant",
            last_name="Manager",
            department="Production",
            position="Plant Manager",
        )
    )
    logger.info("Seeded employee EMP-0001")


async def _seed_workflow_template(session: AsyncSession) -> None:
    service = WorkflowService(session)
    name = "Drawing approval"
    if any(t.name == name for t in await service.get_templates()):
        return
    await service.create_template(
        TemplateCreate(
            name=name,
            description="Standard shop drawing approval sequence",
            steps=[WorkflowStepIn(name=step) for step in APPROVAL_STEPS],
        )
    )
    logger.info("Seeded workflow template %s", name)


if __name__ == "__main__":
    from precast_erp.core.logging import configure_logging

    configure_logging()
    asyncio.run(seed_all())
