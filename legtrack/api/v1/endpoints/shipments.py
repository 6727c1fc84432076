from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from legtrack.api.deps.request_identity import get_request_actor
from legtrack.core.errors import LegFailure
from legtrack.db.session import get_db
from legtrack.db.store import StoreHandle, get_store
from legtrack.schemas.shipment import (
    ChangeLogEntryOut,
    LegMutationResponse,
    RepairLegItem,
    RepairResponse,
    ShipmentCreate,
    ShipmentOut,
    ShipmentSummary,
    ShipmentUpdate,
)
from legtrack.schemas.shipment_leg import ShipmentLegCreate, ShipmentLegOut
from legtrack.services.leg_consistency_service import LegConsistencyService

router = APIRouter()


def _raise_failure(exc: LegFailure) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())


def get_leg_service(
    db: Session = Depends(get_db),
    store: StoreHandle = Depends(get_store),
) -> LegConsistencyService:
    return LegConsistencyService(db, store)


@router.post("", response_model=ShipmentOut, status_code=status.HTTP_201_CREATED)
def create_shipment(
    payload: ShipmentCreate,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        return service.create_shipment(payload, actor)
    except LegFailure as exc:
        _raise_failure(exc)


@router.get("", response_model=list[ShipmentOut])
def list_shipments(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    service: LegConsistencyService = Depends(get_leg_service),
):
    try:
        return service.list_shipments(skip=skip, limit=limit)
    except LegFailure as exc:
        _raise_failure(exc)


@router.get("/{shipment_id}", response_model=ShipmentOut)
def get_shipment(shipment_id: str, service: LegConsistencyService = Depends(get_leg_service)):
    try:
        return service.get_shipment(shipment_id)
    except LegFailure as exc:
        _raise_failure(exc)


@router.get("/{shipment_id}/summary", response_model=ShipmentSummary)
def get_shipment_summary(shipment_id: str, service: LegConsistencyService = Depends(get_leg_service)):
    try:
        return service.get_shipment_summary(shipment_id)
    except LegFailure as exc:
        _raise_failure(exc)


@router.patch("/{shipment_id}", response_model=ShipmentOut)
def update_shipment(
    shipment_id: str,
    payload: ShipmentUpdate,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        return service.update_shipment(shipment_id, payload, actor)
    except LegFailure as exc:
        _raise_failure(exc)


@router.get("/{shipment_id}/legs", response_model=list[ShipmentLegOut])
def get_shipment_legs(shipment_id: str, service: LegConsistencyService = Depends(get_leg_service)):
    try:
        return service.get_legs_for_shipment(shipment_id)
    except LegFailure as exc:
        _raise_failure(exc)


@router.post(
    "/{shipment_id}/legs",
    response_model=LegMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_shipment_leg(
    shipment_id: str,
    payload: ShipmentLegCreate,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        result = service.add_leg(shipment_id, payload, actor)
    except LegFailure as exc:
        _raise_failure(exc)
    return LegMutationResponse(
        leg=ShipmentLegOut.model_validate(result.leg),
        shipment=result.shipment,
    )


@router.post("/{shipment_id}/repair-legs", response_model=RepairResponse)
def repair_shipment_legs(
    shipment_id: str,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        result = service.repair_shipment_legs(shipment_id, actor)
    except LegFailure as exc:
        _raise_failure(exc)
    return RepairResponse(
        success=True,
        message=f"Repaired shipment legs: {result.before} -> {result.after}",
        shipment=result.shipment,
        before=result.before,
        after=result.after,
        legs=[RepairLegItem.model_validate(leg) for leg in result.legs],
    )


@router.get("/{shipment_id}/change-log", response_model=list[ChangeLogEntryOut])
def get_change_log(shipment_id: str, service: LegConsistencyService = Depends(get_leg_service)):
    try:
        return service.get_change_log(shipment_id)
    except LegFailure as exc:
        _raise_failure(exc)
