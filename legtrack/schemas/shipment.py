from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from legtrack.models.enums import InvoiceStatus, OrderStatus, normalize_order_status
from .base import BaseSchema, InputSchema
from .shipment_leg import ShipmentLegOut


class _ShipmentInput(InputSchema):
    @field_validator("order_status", mode="before", check_fields=False)
    @classmethod
    def _normalize_order_status(cls, value):
        if value is None:
            return value
        return normalize_order_status(value)


class ShipmentCreate(_ShipmentInput):
    serial_number: Optional[str] = Field(
        default=None, max_length=30, validation_alias=AliasChoices("serial_number", "serialNumber")
    )
    order_status: OrderStatus = Field(
        default=OrderStatus.PLANNED.value,
        validation_alias=AliasChoices("order_status", "orderStatus"),
    )
    # Presence of the three party fields is checked by the shipment store.
    customer: Optional[str] = Field(default=None, max_length=255)
    shipper_name: Optional[str] = Field(
        default=None, max_length=255, validation_alias=AliasChoices("shipper_name", "shipperName")
    )
    consignee_name: Optional[str] = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("consignee_name", "consigneeName"),
    )
    notify_party: Optional[str] = Field(
        default=None, max_length=255, validation_alias=AliasChoices("notify_party", "notifyParty")
    )
    awb_number_1: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("awb_number_1", "awbNumber1")
    )
    awb_number_2: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("awb_number_2", "awbNumber2")
    )
    date_added: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("date_added", "dateAdded")
    )
    scheduled_arrival: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("scheduled_arrival", "scheduledArrival")
    )
    pieces: Optional[int] = Field(default=None, ge=0)
    weight_kg: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("weight_kg", "weight")
    )
    chargeable_weight_kg: Optional[Decimal] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("chargeable_weight_kg", "chargeableWeight"),
    )
    dimensions: Optional[str] = Field(default=None, max_length=255)
    file_number: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("file_number", "fileNumber")
    )
    invoiced: bool = False
    invoice_sent: bool = Field(
        default=False, validation_alias=AliasChoices("invoice_sent", "invoiceSent")
    )
    invoice_number: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("invoice_number", "invoiceNumber")
    )
    invoice_status: InvoiceStatus = Field(
        default=InvoiceStatus.PENDING.value,
        validation_alias=AliasChoices("invoice_status", "invoiceStatus"),
    )
    cost: Optional[Decimal] = None
    receivables: Optional[Decimal] = None
    comments: Optional[str] = None


class ShipmentUpdate(_ShipmentInput):
    """Direct field edits. Derived fields and the leg list are not editable here."""

    order_status: Optional[OrderStatus] = Field(
        default=None, validation_alias=AliasChoices("order_status", "orderStatus")
    )
    customer: Optional[str] = Field(default=None, min_length=1, max_length=255)
    shipper_name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("shipper_name", "shipperName"),
    )
    consignee_name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("consignee_name", "consigneeName"),
    )
    notify_party: Optional[str] = Field(
        default=None, max_length=255, validation_alias=AliasChoices("notify_party", "notifyParty")
    )
    awb_number_1: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("awb_number_1", "awbNumber1")
    )
    awb_number_2: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("awb_number_2", "awbNumber2")
    )
    scheduled_arrival: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("scheduled_arrival", "scheduledArrival")
    )
    pieces: Optional[int] = Field(default=None, ge=0)
    weight_kg: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("weight_kg", "weight")
    )
    chargeable_weight_kg: Optional[Decimal] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("chargeable_weight_kg", "chargeableWeight"),
    )
    dimensions: Optional[str] = Field(default=None, max_length=255)
    file_number: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("file_number", "fileNumber")
    )
    invoiced: Optional[bool] = None
    invoice_sent: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("invoice_sent", "invoiceSent")
    )
    invoice_number: Optional[str] = Field(
        default=None, max_length=50, validation_alias=AliasChoices("invoice_number", "invoiceNumber")
    )
    invoice_status: Optional[InvoiceStatus] = Field(
        default=None, validation_alias=AliasChoices("invoice_status", "invoiceStatus")
    )
    cost: Optional[Decimal] = None
    receivables: Optional[Decimal] = None
    comments: Optional[str] = None


class ShipmentOut(BaseSchema):
    id: str
    serial_number: str
    order_status: str
    shipment_status: str
    routing: str
    customer: str
    shipper_name: str
    consignee_name: str
    notify_party: Optional[str] = None
    awb_number_1: Optional[str] = None
    awb_number_2: Optional[str] = None
    date_added: Optional[datetime] = None
    scheduled_arrival: Optional[datetime] = None
    pieces: Optional[int] = None
    weight_kg: Optional[Decimal] = None
    chargeable_weight_kg: Optional[Decimal] = None
    dimensions: Optional[str] = None
    file_number: Optional[str] = None
    invoiced: bool
    invoice_sent: bool
    invoice_number: Optional[str] = None
    invoice_status: str
    cost: Optional[Decimal] = None
    receivables: Optional[Decimal] = None
    comments: Optional[str] = None
    created_by: Optional[str] = None
    last_changed_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ShipmentSummary(BaseSchema):
    id: str
    serial_number: str
    routing: str
    shipment_status: str
    route_state: str
    leg_ids: list[str] = []


class ChangeLogEntryOut(BaseSchema):
    timestamp: datetime
    actor: str
    action: str
    details: Optional[str] = None
    fields: Optional[dict] = None


class LegMutationResponse(BaseSchema):
    leg: ShipmentLegOut
    shipment: ShipmentSummary


class RepairLegItem(BaseSchema):
    id: str
    leg_order: int
    origin: str
    destination: str


class RepairResponse(BaseSchema):
    success: bool = True
    message: str
    shipment: ShipmentSummary
    before: int
    after: int
    legs: list[RepairLegItem]
