from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from legtrack.core.errors import DuplicateOrderError, NotFoundError, ValidationFailure
from legtrack.models.shipment_leg import ShipmentLeg, ShipmentLegStatusHistory
from legtrack.schemas.shipment_leg import ShipmentLegCreate

# Columns that may not be cleared by a partial update.
_REQUIRED_FIELDS = {"leg_order", "origin", "destination", "status"}
_IMMUTABLE_FIELDS = {"id", "shipment_id", "created_at", "created_by"}


def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _duplicate_order(shipment_id: str, leg_order: int) -> DuplicateOrderError:
    return DuplicateOrderError(
        f"Leg {leg_order} already exists for this shipment",
        context={"shipment_id": shipment_id, "leg_order": leg_order},
    )


def next_leg_order(db: Session, shipment_id: str) -> int:
    current = db.execute(
        select(func.max(ShipmentLeg.leg_order)).where(ShipmentLeg.shipment_id == shipment_id)
    ).scalar()
    return int(current or 0) + 1


def order_taken(db: Session, shipment_id: str, leg_order: int, exclude_leg_id: str | None = None) -> bool:
    stmt = (
        select(ShipmentLeg.id)
        .where(ShipmentLeg.shipment_id == shipment_id)
        .where(ShipmentLeg.leg_order == leg_order)
    )
    if exclude_leg_id is not None:
        stmt = stmt.where(ShipmentLeg.id != exclude_leg_id)
    return db.execute(stmt.limit(1)).first() is not None


def create_leg(
    db: Session,
    shipment_id: str,
    data: ShipmentLegCreate,
    actor: str,
) -> ShipmentLeg:
    payload = data.model_dump(exclude={"shipment_id"})
    leg_order = payload.pop("leg_order", None)
    if leg_order is not None and leg_order < 0:
        raise ValidationFailure("leg_order must be a positive integer.")
    if not leg_order:
        leg_order = next_leg_order(db, shipment_id)
    elif order_taken(db, shipment_id, leg_order):
        raise _duplicate_order(shipment_id, leg_order)

    obj = ShipmentLeg(
        shipment_id=shipment_id,
        leg_order=leg_order,
        created_by=actor,
        last_changed_by=actor,
        **payload,
    )
    obj.status_history.append(
        ShipmentLegStatusHistory(status=obj.status, changed_at=datetime.utcnow(), changed_by=actor)
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _duplicate_order(shipment_id, leg_order) from e
    db.refresh(obj)
    return obj


def get_leg(db: Session, leg_id: str) -> ShipmentLeg | None:
    return db.get(ShipmentLeg, leg_id)


def find_legs_by_shipment(db: Session, shipment_id: str) -> list[ShipmentLeg]:
    stmt = (
        select(ShipmentLeg)
        .where(ShipmentLeg.shipment_id == shipment_id)
        .order_by(ShipmentLeg.leg_order.asc(), ShipmentLeg.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def find_legs_by_tracking_number(db: Session, tracking_number: str) -> list[ShipmentLeg]:
    stmt = (
        select(ShipmentLeg)
        .where(ShipmentLeg.tracking_number == tracking_number)
        .order_by(ShipmentLeg.shipment_id.asc(), ShipmentLeg.leg_order.asc())
    )
    return list(db.execute(stmt).scalars().all())


def update_leg(
    db: Session,
    leg_id: str,
    patch: dict,
    actor: str,
) -> tuple[ShipmentLeg, dict]:
    """
    Apply a partial update and return the leg plus an old/new diff of the
    fields that actually changed.
    """
    obj = db.get(ShipmentLeg, leg_id)
    if not obj:
        raise NotFoundError("Shipment leg not found", context={"leg_id": leg_id})

    patch = {
        k: v
        for k, v in patch.items()
        if k not in _IMMUTABLE_FIELDS and not (k in _REQUIRED_FIELDS and v is None)
    }
    new_order = patch.get("leg_order")
    if new_order is not None:
        if new_order < 0:
            raise ValidationFailure("leg_order must be a positive integer.")
        if new_order == 0:
            # Zero means "unchanged" on update; auto-assignment is a create concern.
            patch.pop("leg_order")
        elif new_order != obj.leg_order and order_taken(db, obj.shipment_id, new_order, exclude_leg_id=obj.id):
            raise _duplicate_order(obj.shipment_id, new_order)

    changes: dict = {}
    for k, v in patch.items():
        old = getattr(obj, k)
        if old == v:
            continue
        changes[k] = {"old": _jsonable(old), "new": _jsonable(v)}
        setattr(obj, k, v)

    if not changes:
        return obj, changes

    if "status" in changes:
        obj.status_history.append(
            ShipmentLegStatusHistory(
                status=obj.status, changed_at=datetime.utcnow(), changed_by=actor
            )
        )
    obj.last_changed_by = actor

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _duplicate_order(obj.shipment_id, patch.get("leg_order", obj.leg_order)) from e

    db.refresh(obj)
    return obj, changes


def delete_leg(db: Session, leg_id: str) -> None:
    obj = db.get(ShipmentLeg, leg_id)
    if not obj:
        raise NotFoundError("Shipment leg not found", context={"leg_id": leg_id})
    db.delete(obj)
    db.commit()


def reassign_legs(db: Session, from_shipment_id: str, to_shipment_id: str, actor: str) -> int:
    """Move every leg owned by `from_shipment_id`; 0 when nothing matches."""
    stmt = (
        update(ShipmentLeg)
        .where(ShipmentLeg.shipment_id == from_shipment_id)
        .values(shipment_id=to_shipment_id, last_changed_by=actor)
        .execution_options(synchronize_session="fetch")
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateOrderError(
            "Target shipment already has legs with the same order.",
            context={"from_shipment_id": from_shipment_id, "to_shipment_id": to_shipment_id},
        ) from e
    return int(result.rowcount or 0)


def list_status_history(db: Session, leg_id: str) -> list[ShipmentLegStatusHistory]:
    stmt = (
        select(ShipmentLegStatusHistory)
        .where(ShipmentLegStatusHistory.leg_id == leg_id)
        .order_by(ShipmentLegStatusHistory.id.asc())
    )
    return list(db.execute(stmt).scalars().all())
