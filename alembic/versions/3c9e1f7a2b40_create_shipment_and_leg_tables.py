"""create shipment and leg tables

Revision ID: 3c9e1f7a2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c9e1f7a2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "created_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
        sa.Column(
            "last_changed_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "shipment",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("serial_number", sa.String(length=30), nullable=False),
        sa.Column("order_status", sa.String(length=20), nullable=False),
        sa.Column("shipment_status", sa.String(length=60), nullable=False),
        sa.Column("routing", sa.String(length=255), nullable=False),
        sa.Column("customer", sa.String(length=255), nullable=False),
        sa.Column("shipper_name", sa.String(length=255), nullable=False),
        sa.Column("consignee_name", sa.String(length=255), nullable=False),
        sa.Column("notify_party", sa.String(length=255), nullable=True),
        sa.Column("awb_number_1", sa.String(length=50), nullable=True),
        sa.Column("awb_number_2", sa.String(length=50), nullable=True),
        sa.Column("date_added", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("scheduled_arrival", sa.DateTime(), nullable=True),
        sa.Column("pieces", sa.Integer(), nullable=True),
        sa.Column("weight_kg", sa.Numeric(12, 3), nullable=True),
        sa.Column("chargeable_weight_kg", sa.Numeric(12, 3), nullable=True),
        sa.Column("dimensions", sa.String(length=255), nullable=True),
        sa.Column("file_number", sa.String(length=50), nullable=True),
        sa.Column("invoiced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("invoice_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("invoice_number", sa.String(length=50), nullable=True),
        sa.Column("invoice_status", sa.String(length=20), nullable=False),
        sa.Column("cost", sa.Numeric(14, 2), nullable=True),
        sa.Column("receivables", sa.Numeric(14, 2), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_shipment_serial_number", "shipment", ["serial_number"], unique=True)

    op.create_table(
        "shipment_leg_ref",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "shipment_id",
            sa.String(length=64),
            sa.ForeignKey("shipment.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("leg_id", sa.String(length=64), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("shipment_id", "leg_id", name="uq_shipment_leg_ref"),
    )
    op.create_index("ix_shipment_leg_ref_shipment_id", "shipment_leg_ref", ["shipment_id"])
    op.create_index("ix_shipment_leg_ref_leg_id", "shipment_leg_ref", ["leg_id"])

    op.create_table(
        "shipment_change_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "shipment_id",
            sa.String(length=64),
            sa.ForeignKey("shipment.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "actor",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
        sa.Column("action", sa.String(length=40), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("fields", sa.JSON(), nullable=True),
    )
    op.create_index("ix_shipment_change_log_shipment_id", "shipment_change_log", ["shipment_id"])

    op.create_table(
        "shipment_leg",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("shipment_id", sa.String(length=64), nullable=False),
        sa.Column("leg_order", sa.Integer(), nullable=False),
        sa.Column("origin", sa.String(length=100), nullable=False),
        sa.Column("destination", sa.String(length=100), nullable=False),
        sa.Column("carrier", sa.String(length=100), nullable=True),
        sa.Column("departure_time", sa.DateTime(), nullable=True),
        sa.Column("arrival_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("tracking_number", sa.String(length=50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.UniqueConstraint("shipment_id", "leg_order", name="uq_shipment_leg_order"),
    )
    op.create_index("ix_shipment_leg_shipment_id", "shipment_leg", ["shipment_id"])
    op.create_index("ix_shipment_leg_tracking_number", "shipment_leg", ["tracking_number"])

    op.create_table(
        "shipment_leg_status_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "leg_id",
            sa.String(length=64),
            sa.ForeignKey("shipment_leg.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("changed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("changed_by", sa.String(length=255), nullable=True),
    )
    op.create_index(
        "ix_shipment_leg_status_history_leg_id",
        "shipment_leg_status_history",
        ["leg_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_shipment_leg_status_history_leg_id", table_name="shipment_leg_status_history")
    op.drop_table("shipment_leg_status_history")
    op.drop_index("ix_shipment_leg_tracking_number", table_name="shipment_leg")
    op.drop_index("ix_shipment_leg_shipment_id", table_name="shipment_leg")
    op.drop_table("shipment_leg")
    op.drop_index("ix_shipment_change_log_shipment_id", table_name="shipment_change_log")
    op.drop_table("shipment_change_log")
    op.drop_index("ix_shipment_leg_ref_leg_id", table_name="shipment_leg_ref")
    op.drop_index("ix_shipment_leg_ref_shipment_id", table_name="shipment_leg_ref")
    op.drop_table("shipment_leg_ref")
    op.drop_index("ix_shipment_serial_number", table_name="shipment")
    op.drop_table("shipment")
