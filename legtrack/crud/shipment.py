from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, delete, insert, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from legtrack.core.errors import NotFoundError, ValidationFailure
from legtrack.models.shipment import Shipment, ShipmentChangeLog, ShipmentLegRef
from legtrack.schemas.shipment import ShipmentCreate, ShipmentUpdate
from legtrack.services.serial_number import SerialNumberService

_REQUIRED_FIELDS = ("customer", "shipper_name", "consignee_name")
# Maintained by the consistency coordinator only.
_DERIVED_FIELDS = {"routing", "shipment_status"}


def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def create_shipment(
    db: Session,
    data: ShipmentCreate,
    actor: str,
    now: datetime | None = None,
) -> Shipment:
    payload = data.model_dump()
    missing = [name for name in _REQUIRED_FIELDS if not (payload.get(name) or "").strip()]
    if missing:
        raise ValidationFailure(
            f"Missing required fields: {', '.join(missing)}",
            context={"fields": missing},
        )

    if not payload.get("serial_number"):
        payload["serial_number"] = SerialNumberService.get_next_number(db, now=now)
    if payload.get("date_added") is None:
        payload.pop("date_added", None)

    obj = Shipment(created_by=actor, last_changed_by=actor, **payload)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ValidationFailure(
            "Shipment serial number already exists.",
            context={"serial_number": payload["serial_number"]},
        ) from e
    db.refresh(obj)
    return obj


def get_shipment(db: Session, shipment_id: str) -> Shipment | None:
    return db.get(Shipment, shipment_id)


def shipment_exists(db: Session, shipment_id: str) -> bool:
    return db.execute(select(Shipment.id).where(Shipment.id == shipment_id)).first() is not None


def list_shipments(db: Session, skip: int = 0, limit: int = 50) -> list[Shipment]:
    stmt = select(Shipment).order_by(Shipment.date_added.desc(), Shipment.serial_number.desc())
    return list(db.execute(stmt.offset(skip).limit(limit)).scalars().all())


def update_shipment(
    db: Session,
    shipment_id: str,
    data: ShipmentUpdate,
    actor: str,
) -> tuple[Shipment, dict]:
    obj = db.get(Shipment, shipment_id)
    if not obj:
        raise NotFoundError("Shipment not found", context={"shipment_id": shipment_id})

    patch = data.model_dump(exclude_unset=True)
    changes: dict = {}
    for k, v in patch.items():
        if k in _DERIVED_FIELDS:
            continue
        if k in _REQUIRED_FIELDS and not (v or "").strip():
            raise ValidationFailure(f"{k} cannot be blank.", context={"fields": [k]})
        if k in ("invoiced", "invoice_sent", "order_status", "invoice_status") and v is None:
            continue
        old = getattr(obj, k)
        if old == v:
            continue
        changes[k] = {"old": _jsonable(old), "new": _jsonable(v)}
        setattr(obj, k, v)

    if changes:
        obj.last_changed_by = actor
        db.commit()
        db.refresh(obj)
    return obj, changes


# ---- leg reference list ---------------------------------------------------

def add_leg_ref(db: Session, shipment_id: str, leg_id: str) -> bool:
    """
    Add-to-set in one statement: INSERT ... SELECT ... WHERE NOT EXISTS.
    Returns True when the reference was not present before.
    """
    already = (
        select(ShipmentLegRef.id)
        .where(and_(ShipmentLegRef.shipment_id == shipment_id, ShipmentLegRef.leg_id == leg_id))
        .correlate(None)
        .exists()
    )
    source = select(literal(shipment_id), literal(leg_id)).where(~already)
    stmt = insert(ShipmentLegRef).from_select(["shipment_id", "leg_id"], source)
    try:
        result = db.execute(stmt)
        db.commit()
    except IntegrityError:
        # A concurrent add of the same reference won the race; the set is intact.
        db.rollback()
        return False
    return bool(result.rowcount)


def remove_leg_ref(db: Session, shipment_id: str, leg_id: str) -> bool:
    stmt = delete(ShipmentLegRef).where(
        ShipmentLegRef.shipment_id == shipment_id,
        ShipmentLegRef.leg_id == leg_id,
    )
    result = db.execute(stmt)
    db.commit()
    return bool(result.rowcount)


def list_leg_refs(db: Session, shipment_id: str) -> list[str]:
    stmt = (
        select(ShipmentLegRef.leg_id)
        .where(ShipmentLegRef.shipment_id == shipment_id)
        .order_by(ShipmentLegRef.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def replace_leg_refs(db: Session, shipment_id: str, leg_ids: list[str]) -> int:
    """Discard the stored reference list and write `leg_ids` in the given order."""
    db.execute(delete(ShipmentLegRef).where(ShipmentLegRef.shipment_id == shipment_id))
    seen: set[str] = set()
    for leg_id in leg_ids:
        if leg_id in seen:
            continue
        seen.add(leg_id)
        db.add(ShipmentLegRef(shipment_id=shipment_id, leg_id=leg_id))
    db.commit()
    return len(seen)


# ---- derived fields / change log -----------------------------------------

def set_derived_fields(db: Session, shipment_id: str, routing: str, shipment_status: str) -> None:
    stmt = (
        update(Shipment)
        .where(Shipment.id == shipment_id)
        .values(routing=routing, shipment_status=shipment_status)
        .execution_options(synchronize_session="fetch")
    )
    db.execute(stmt)
    db.commit()


def append_change_log(
    db: Session,
    shipment_id: str,
    actor: str,
    action: str,
    detail: str,
    fields: dict | None = None,
) -> ShipmentChangeLog:
    entry = ShipmentChangeLog(
        shipment_id=shipment_id,
        timestamp=datetime.utcnow(),
        actor=actor,
        action=action,
        details=detail,
        fields=fields or None,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def list_change_log(db: Session, shipment_id: str) -> list[ShipmentChangeLog]:
    stmt = (
        select(ShipmentChangeLog)
        .where(ShipmentChangeLog.shipment_id == shipment_id)
        .order_by(ShipmentChangeLog.id.asc())
    )
    return list(db.execute(stmt).scalars().all())
