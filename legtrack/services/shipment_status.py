from __future__ import annotations

from typing import Iterable

from legtrack.models.enums import LegStatus
from legtrack.services.routing import ordered_legs

ROUTE_STATE_NO_LEGS = "no-legs"
ROUTE_STATE_PARTIAL = "partial-route"
ROUTE_STATE_RESOLVED = "fully-resolved"


def _first_with_status(legs: list, status: LegStatus):
    for leg in legs:
        if leg.status == status.value:
            return leg
    return None


def derive_shipment_status(legs: Iterable) -> str:
    """
    Aggregate shipment status; the first matching rule wins:

    1. no legs                    -> "Pending"
    2. last leg Arrived           -> "Arrived"
    3. any leg In Transit         -> "In Transit (Leg n)", first such leg
    4. any leg Delayed            -> "Delayed (Leg n)", first such leg
    5. any leg Canceled           -> "Canceled"
    6. otherwise                  -> "Pending"

    Rule 2 outranks rules 3 and 4: an arrived final leg reports "Arrived"
    even while an earlier leg is still In Transit or Delayed.
    """
    ordered = ordered_legs(legs)
    if not ordered:
        return LegStatus.PENDING.value

    if ordered[-1].status == LegStatus.ARRIVED.value:
        return LegStatus.ARRIVED.value

    in_transit = _first_with_status(ordered, LegStatus.IN_TRANSIT)
    if in_transit is not None:
        return f"{LegStatus.IN_TRANSIT.value} (Leg {in_transit.leg_order})"

    delayed = _first_with_status(ordered, LegStatus.DELAYED)
    if delayed is not None:
        return f"{LegStatus.DELAYED.value} (Leg {delayed.leg_order})"

    if _first_with_status(ordered, LegStatus.CANCELED) is not None:
        return LegStatus.CANCELED.value

    return LegStatus.PENDING.value


def route_state(legs: Iterable) -> str:
    """no-legs, partial-route (a gap between consecutive legs) or fully-resolved."""
    ordered = ordered_legs(legs)
    if not ordered:
        return ROUTE_STATE_NO_LEGS
    for previous, current in zip(ordered, ordered[1:]):
        if (previous.destination or "").strip().upper() != (current.origin or "").strip().upper():
            return ROUTE_STATE_PARTIAL
    return ROUTE_STATE_RESOLVED
