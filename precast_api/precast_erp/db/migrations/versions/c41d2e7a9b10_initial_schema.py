"""Initial precast ERP schema.

- contacts, contact_interactions
- estimates
- projects
- drawings, drawing_revisions, drawing_markups, drafting_workflows, drafting_workflow_templates
- employees, employee_certifications, employee_training_records, time_entries,
  timesheets, leave_requests, leave_balances
- vendors, vendor_status_logs, purchase_orders, purchase_order_items,
  receiving_records, receiving_items
- yard_locations, yard_materials, yard_movements, yard_equipment
- pieces, qc_inspections, qc_defects, mix_designs, qc_test_results
- shipments, deliveries, delivery_status_events, drivers, vehicles, load_plans, dispatches
- leads, opportunities, quotes, jobs

Tables are created from the ORM metadata as it stood for this revision, so the
same revision runs on PostgreSQL and SQLite. Later revisions use explicit
op.* operations.
"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c41d2e7a9b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _metadata():
    from precast_erp.db import models  # noqa: F401  registers every table
    from precast_erp.db.base import Base

    return Base.metadata


def upgrade() -> None:
    _metadata().create_all(bind=op.get_bind())


def downgrade() -> None:
    _metadata().drop_all(bind=op.get_bind())
