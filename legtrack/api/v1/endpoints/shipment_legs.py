from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from legtrack.api.deps.request_identity import get_request_actor
from legtrack.api.v1.endpoints.shipments import get_leg_service
from legtrack.core.errors import LegFailure
from legtrack.schemas.shipment_leg import (
    LegDeleteResponse,
    LegReassignResponse,
    LegStatusHistoryOut,
    ShipmentLegDraftCreate,
    ShipmentLegOut,
    ShipmentLegStatusUpdate,
    ShipmentLegUpdate,
)
from legtrack.services.leg_consistency_service import LegConsistencyService

router = APIRouter()


def _raise_failure(exc: LegFailure) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())


# Static paths first so they are not captured by "/{leg_id}".

@router.post("/drafts", response_model=ShipmentLegOut, status_code=status.HTTP_201_CREATED)
def create_draft_leg(
    payload: ShipmentLegDraftCreate,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        return service.create_draft_leg(payload.shipment_id, payload, actor)
    except LegFailure as exc:
        _raise_failure(exc)


@router.put("/reassign/{temp_shipment_id}/{shipment_id}", response_model=LegReassignResponse)
def reassign_legs(
    temp_shipment_id: str,
    shipment_id: str,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        count = service.reassign_legs(temp_shipment_id, shipment_id, actor)
    except LegFailure as exc:
        _raise_failure(exc)
    return LegReassignResponse(msg=f"{count} leg(s) reassigned", count=count)


@router.get("/by-tracking/{tracking_number}", response_model=list[ShipmentLegOut])
def find_legs_by_tracking_number(
    tracking_number: str,
    service: LegConsistencyService = Depends(get_leg_service),
):
    try:
        return service.find_legs_by_tracking_number(tracking_number)
    except LegFailure as exc:
        _raise_failure(exc)


@router.get("/{leg_id}", response_model=ShipmentLegOut)
def get_leg(leg_id: str, service: LegConsistencyService = Depends(get_leg_service)):
    try:
        return service.get_leg(leg_id)
    except LegFailure as exc:
        _raise_failure(exc)


@router.put("/{leg_id}", response_model=ShipmentLegOut)
def update_leg(
    leg_id: str,
    payload: ShipmentLegUpdate,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        return service.update_leg(leg_id, payload, actor)
    except LegFailure as exc:
        _raise_failure(exc)


@router.put("/{leg_id}/status", response_model=ShipmentLegOut)
def update_leg_status(
    leg_id: str,
    payload: ShipmentLegStatusUpdate,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        return service.update_leg_status(leg_id, payload.status, actor)
    except LegFailure as exc:
        _raise_failure(exc)


@router.get("/{leg_id}/history", response_model=list[LegStatusHistoryOut])
def get_leg_history(leg_id: str, service: LegConsistencyService = Depends(get_leg_service)):
    try:
        return service.get_leg_status_history(leg_id)
    except LegFailure as exc:
        _raise_failure(exc)


@router.delete("/{leg_id}", response_model=LegDeleteResponse)
def delete_leg(
    leg_id: str,
    service: LegConsistencyService = Depends(get_leg_service),
    actor: str = Depends(get_request_actor),
):
    try:
        return service.delete_leg(leg_id, actor)
    except LegFailure as exc:
        _raise_failure(exc)
