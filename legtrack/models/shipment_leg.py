from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from legtrack.db.base import Base
from legtrack.models.enums import LegStatus
from legtrack.models.mixins import AuditMixin, new_identifier


class ShipmentLeg(AuditMixin, Base):
    """
    One point-to-point segment of a shipment's journey.

    `shipment_id` is the owning reference and deliberately has no foreign
    key: legs entered on the booking form are saved against a temporary id
    and moved onto the real shipment afterwards (see reassign).
    """
    __tablename__ = "shipment_leg"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_identifier)
    shipment_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    leg_order: Mapped[int] = mapped_column(Integer, nullable=False)

    origin: Mapped[str] = mapped_column(String(100), nullable=False)
    destination: Mapped[str] = mapped_column(String(100), nullable=False)
    carrier: Mapped[str | None] = mapped_column(String(100), nullable=True)
    departure_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    arrival_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=LegStatus.PENDING.value)
    tracking_number: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status_history: Mapped[list["ShipmentLegStatusHistory"]] = relationship(
        "ShipmentLegStatusHistory",
        back_populates="leg",
        order_by="ShipmentLegStatusHistory.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("shipment_id", "leg_order", name="uq_shipment_leg_order"),
    )

    def __repr__(self) -> str:
        return f"<ShipmentLeg(shipment={self.shipment_id}, order={self.leg_order})>"


class ShipmentLegStatusHistory(Base):
    __tablename__ = "shipment_leg_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    leg_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("shipment_leg.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    changed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    leg: Mapped["ShipmentLeg"] = relationship("ShipmentLeg", back_populates="status_history")
