"""Job lifecycle, equipment positions and piece readiness.

- vehicles.current_shipment_id
- jobs: target/actual completion dates, actual_hours, completion and cancellation stamps
- yard_equipment.position
- pieces: yard_location_id, scheduled_ship_date, ready_for_shipping_at, shipping_notes

Databases created from the current metadata by the initial revision already
carry these columns, so only missing ones are added.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from precast_erp.db.base import Amount, JSONType, UTCDateTime

# revision identifiers, used by Alembic.
revision: str = "d52e8f1a3c20"
down_revision: Union[str, None] = "c41d2e7a9b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _columns() -> dict[str, list[sa.Column]]:
    return {
        "vehicles": [sa.Column("current_shipment_id", sa.Uuid(), nullable=True)],
        "jobs": [
            sa.Column("target_completion_date", sa.Date(), nullable=True),
            sa.Column("actual_completion_date", sa.Date(), nullable=True),
            sa.Column("actual_hours", Amount, nullable=False, server_default="0"),
            sa.Column("completed_by", sa.Text(), nullable=True),
            sa.Column("completed_at", UTCDateTime(), nullable=True),
            sa.Column("cancelled_by", sa.Text(), nullable=True),
            sa.Column("cancelled_at", UTCDateTime(), nullable=True),
            sa.Column("cancellation_reason", sa.Text(), nullable=False, server_default=""),
        ],
        "yard_equipment": [sa.Column("position", JSONType, nullable=False, server_default="{}")],
        "pieces": [
            sa.Column("yard_location_id", sa.Uuid(), nullable=True),
            sa.Column("scheduled_ship_date", sa.Date(), nullable=True),
            sa.Column("ready_for_shipping_at", UTCDateTime(), nullable=True),
            sa.Column("shipping_notes", sa.Text(), nullable=False, server_default=""),
        ],
    }


def _existing(table: str) -> set[str]:
    return {c["name"] for c in sa.inspect(op.get_bind()).get_columns(table)}


def upgrade() -> None:
    for table, columns in _columns().items():
        present = _existing(table)
        missing = [c for c in columns if c.name not in present]
        if not missing:
            continue
        with op.batch_alter_table(table) as batch:
            for column in missing:
                batch.add_column(column)
    if "ix_pieces_yard_location_id" not in {
        ix["name"] for ix in sa.inspect(op.get_bind()).get_indexes("pieces")
    }:
        op.create_index("ix_pieces_yard_location_id", "pieces", ["yard_location_id"])


def downgrade() -> None:
    op.drop_index("ix_pieces_yard_location_id", table_name="pieces")
    for table, columns in _columns().items():
        with op.batch_alter_table(table) as batch:
            for column in columns:
                batch.drop_column(column.name)
