from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from legtrack.models.enums import LegStatus, normalize_leg_status
from .base import BaseSchema, InputSchema

# Wire aliases accepted from the two historical leg payload conventions.
_ORDER = AliasChoices("leg_order", "legOrder", "order")
_ORIGIN = AliasChoices("origin", "from")
_DESTINATION = AliasChoices("destination", "to")
_CARRIER = AliasChoices("carrier", "flightNumber", "flight_number", "airline")
_DEPARTURE = AliasChoices("departure_time", "departureTime", "departureDate", "departure_date")
_ARRIVAL = AliasChoices("arrival_time", "arrivalTime", "arrivalDate", "arrival_date")
_TRACKING = AliasChoices(
    "tracking_number", "trackingNumber", "awbNumber", "mawbNumber", "mawb_number"
)
_SHIPMENT = AliasChoices("shipment_id", "shipmentId", "shipment")


class _LegInput(InputSchema):
    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def _normalize_status(cls, value):
        if value is None:
            return value
        return normalize_leg_status(value)


class ShipmentLegCreate(_LegInput):
    leg_order: Optional[int] = Field(default=None, ge=0, validation_alias=_ORDER)
    origin: str = Field(min_length=1, max_length=100, validation_alias=_ORIGIN)
    destination: str = Field(min_length=1, max_length=100, validation_alias=_DESTINATION)
    carrier: Optional[str] = Field(default=None, max_length=100, validation_alias=_CARRIER)
    departure_time: Optional[datetime] = Field(default=None, validation_alias=_DEPARTURE)
    arrival_time: Optional[datetime] = Field(default=None, validation_alias=_ARRIVAL)
    status: LegStatus = LegStatus.PENDING.value
    tracking_number: Optional[str] = Field(default=None, max_length=50, validation_alias=_TRACKING)
    notes: Optional[str] = None


class ShipmentLegDraftCreate(ShipmentLegCreate):
    """Leg entered before its shipment is saved; owned by a temporary id."""

    shipment_id: str = Field(min_length=1, max_length=64, validation_alias=_SHIPMENT)


class ShipmentLegUpdate(_LegInput):
    leg_order: Optional[int] = Field(default=None, ge=0, validation_alias=_ORDER)
    origin: Optional[str] = Field(default=None, min_length=1, max_length=100, validation_alias=_ORIGIN)
    destination: Optional[str] = Field(
        default=None, min_length=1, max_length=100, validation_alias=_DESTINATION
    )
    carrier: Optional[str] = Field(default=None, max_length=100, validation_alias=_CARRIER)
    departure_time: Optional[datetime] = Field(default=None, validation_alias=_DEPARTURE)
    arrival_time: Optional[datetime] = Field(default=None, validation_alias=_ARRIVAL)
    status: Optional[LegStatus] = None
    tracking_number: Optional[str] = Field(default=None, max_length=50, validation_alias=_TRACKING)
    notes: Optional[str] = None


class ShipmentLegStatusUpdate(_LegInput):
    status: LegStatus


class ShipmentLegOut(BaseSchema):
    id: str
    shipment_id: str
    leg_order: int
    origin: str
    destination: str
    carrier: Optional[str] = None
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    status: str
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    last_changed_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LegStatusHistoryOut(BaseSchema):
    status: str
    changed_at: datetime
    changed_by: Optional[str] = None


class LegReassignResponse(BaseSchema):
    msg: str
    count: int


class LegDeleteResponse(BaseSchema):
    msg: str
    leg_id: str
    shipment_id: str
