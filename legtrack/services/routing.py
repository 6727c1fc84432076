from __future__ import annotations

from typing import Iterable

from legtrack.models.shipment import NO_ROUTING

ROUTING_SEPARATOR = "-"


def ordered_legs(legs: Iterable) -> list:
    return sorted(legs, key=lambda leg: int(leg.leg_order or 0))


def derive_routing(legs: Iterable) -> str:
    """
    Human-readable path: first leg's origin, then every leg's destination.

    Always recomputed from the full leg set, never patched, because leg
    order can change arbitrarily between calls.
    """
    ordered = ordered_legs(legs)
    if not ordered:
        return NO_ROUTING
    stops = [ordered[0].origin]
    stops.extend(leg.destination for leg in ordered)
    return ROUTING_SEPARATOR.join(str(stop) for stop in stops)
