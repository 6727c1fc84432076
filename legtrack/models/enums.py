from enum import Enum


class LegStatus(str, Enum):
    PENDING = "Pending"
    IN_TRANSIT = "In Transit"
    ARRIVED = "Arrived"
    DELAYED = "Delayed"
    CANCELED = "Canceled"


class OrderStatus(str, Enum):
    PLANNED = "planned"
    CONFIRMED = "confirmed"
    DONE = "done"
    CANCELED = "canceled"


class InvoiceStatus(str, Enum):
    CONFIRMED = "Confirmed"
    PENDING = "Pending"
    PAID = "Paid"


# Spellings still sent by older admin UI builds and found in legacy exports.
_LEGACY_LEG_STATUS = {
    "pending": LegStatus.PENDING,
    "not started": LegStatus.PENDING,
    "planned": LegStatus.PENDING,
    "in transit": LegStatus.IN_TRANSIT,
    "in-transit": LegStatus.IN_TRANSIT,
    "in_transit": LegStatus.IN_TRANSIT,
    "departed": LegStatus.IN_TRANSIT,
    "arrived": LegStatus.ARRIVED,
    "completed": LegStatus.ARRIVED,
    "delayed": LegStatus.DELAYED,
    "canceled": LegStatus.CANCELED,
    "cancelled": LegStatus.CANCELED,
}


def normalize_leg_status(value) -> LegStatus:
    if isinstance(value, LegStatus):
        return value
    key = str(value or "").strip().lower()
    if not key:
        return LegStatus.PENDING
    try:
        return _LEGACY_LEG_STATUS[key]
    except KeyError:
        raise ValueError(f"Unknown leg status: {value!r}") from None


def normalize_order_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    key = str(value or "").strip().lower()
    if key == "cancelled":
        key = "canceled"
    return OrderStatus(key)
