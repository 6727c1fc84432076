from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from legtrack.db.base import Base
from legtrack.models.enums import InvoiceStatus, LegStatus, OrderStatus
from legtrack.models.mixins import AuditMixin, new_identifier

NO_ROUTING = "No routing"


class Shipment(AuditMixin, Base):
    """
    The booking record the admin UI works on.

    `routing` and `shipment_status` are derived from the shipment's legs and
    are rewritten on every leg mutation; they are stored only so list views
    do not have to join the leg table.
    """
    __tablename__ = "shipment"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_identifier)
    serial_number: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)

    order_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PLANNED.value
    )
    shipment_status: Mapped[str] = mapped_column(
        String(60), nullable=False, default=LegStatus.PENDING.value
    )
    routing: Mapped[str] = mapped_column(String(255), nullable=False, default=NO_ROUTING)

    # Parties
    customer: Mapped[str] = mapped_column(String(255), nullable=False)
    shipper_name: Mapped[str] = mapped_column(String(255), nullable=False)
    consignee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    notify_party: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Air waybills
    awb_number_1: Mapped[str | None] = mapped_column(String(50), nullable=True)
    awb_number_2: Mapped[str | None] = mapped_column(String(50), nullable=True)

    date_added: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    scheduled_arrival: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Weight / dimensions
    pieces: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight_kg: Mapped[float | None] = mapped_column(Numeric(12, 3), nullable=True)
    chargeable_weight_kg: Mapped[float | None] = mapped_column(Numeric(12, 3), nullable=True)
    dimensions: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Invoicing
    file_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoiced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoice_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.PENDING.value
    )
    cost: Mapped[float | None] = mapped_column(Numeric(14, 2), nullable=True)
    receivables: Mapped[float | None] = mapped_column(Numeric(14, 2), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    leg_refs: Mapped[list["ShipmentLegRef"]] = relationship(
        "ShipmentLegRef",
        back_populates="shipment",
        order_by="ShipmentLegRef.id",
        cascade="all, delete-orphan",
    )
    change_log: Mapped[list["ShipmentChangeLog"]] = relationship(
        "ShipmentChangeLog",
        back_populates="shipment",
        order_by="ShipmentChangeLog.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Shipment(id={self.id}, serial={self.serial_number})>"


class ShipmentLegRef(Base):
    """Ordered leg reference list of a shipment; row id gives insertion order."""
    __tablename__ = "shipment_leg_ref"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shipment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("shipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # No FK: a reference may briefly outlive its leg until repair runs.
    leg_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    added_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    shipment: Mapped["Shipment"] = relationship("Shipment", back_populates="leg_refs")

    __table_args__ = (
        UniqueConstraint("shipment_id", "leg_id", name="uq_shipment_leg_ref"),
    )


class ShipmentChangeLog(Base):
    """Append-only audit trail of a shipment."""
    __tablename__ = "shipment_change_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shipment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("shipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    actor: Mapped[str] = mapped_column(
        String(255), nullable=False, server_default=text("'system@local'")
    )
    action: Mapped[str] = mapped_column(String(40), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    fields: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    shipment: Mapped["Shipment"] = relationship("Shipment", back_populates="change_log")
