from __future__ import annotations

import pytest

from legtrack.core.errors import DuplicateOrderError, NotFoundError, ValidationFailure
from legtrack.crud import shipment_leg as leg_crud
from legtrack.schemas.shipment_leg import ShipmentLegCreate

ACTOR = "ops@example.com"


def _create(db, shipment_id, **fields):
    payload = {"origin": "TLV", "destination": "JFK"}
    payload.update(fields)
    return leg_crud.create_leg(db, shipment_id, ShipmentLegCreate(**payload), ACTOR)


def test_first_leg_gets_order_one(db_session):
    leg = _create(db_session, "S1")
    assert leg.leg_order == 1
    assert leg.created_by == ACTOR
    assert len(leg.id) == 32


def test_auto_order_follows_highest_existing(db_session):
    for order in (1, 2, 3):
        _create(db_session, "S1", leg_order=order)
    assert _create(db_session, "S1").leg_order == 4
    assert _create(db_session, "S1", leg_order=0).leg_order == 5


def test_create_with_taken_order_is_rejected(db_session):
    _create(db_session, "S1", leg_order=2)
    with pytest.raises(DuplicateOrderError) as exc_info:
        _create(db_session, "S1", leg_order=2)
    assert exc_info.value.status_code == 400
    # The same order on another shipment is fine.
    assert _create(db_session, "S2", leg_order=2).leg_order == 2


def test_find_by_shipment_is_sorted_by_order(db_session):
    _create(db_session, "S1", leg_order=3, origin="LAX", destination="SFO")
    _create(db_session, "S1", leg_order=1)
    _create(db_session, "S1", leg_order=2, origin="JFK", destination="LAX")
    legs = leg_crud.find_legs_by_shipment(db_session, "S1")
    assert [leg.leg_order for leg in legs] == [1, 2, 3]


def test_update_to_sibling_order_is_rejected(db_session):
    _create(db_session, "S1", leg_order=1)
    second = _create(db_session, "S1", leg_order=2)
    with pytest.raises(DuplicateOrderError):
        leg_crud.update_leg(db_session, second.id, {"leg_order": 1}, ACTOR)


def test_update_returns_field_diff_and_records_status_history(db_session):
    leg = _create(db_session, "S1")
    updated, changes = leg_crud.update_leg(
        db_session, leg.id, {"status": "In Transit", "carrier": "LY001", "origin": None}, ACTOR
    )
    assert updated.status == "In Transit"
    assert updated.origin == "TLV"
    assert changes == {
        "status": {"old": "Pending", "new": "In Transit"},
        "carrier": {"old": None, "new": "LY001"},
    }
    history = leg_crud.list_status_history(db_session, leg.id)
    assert [row.status for row in history] == ["Pending", "In Transit"]


def test_update_without_changes_returns_empty_diff(db_session):
    leg = _create(db_session, "S1")
    _, changes = leg_crud.update_leg(db_session, leg.id, {"origin": "TLV"}, ACTOR)
    assert changes == {}


def test_negative_order_is_a_validation_failure(db_session):
    leg = _create(db_session, "S1")
    with pytest.raises(ValidationFailure):
        leg_crud.update_leg(db_session, leg.id, {"leg_order": -1}, ACTOR)


def test_update_and_delete_missing_leg(db_session):
    with pytest.raises(NotFoundError):
        leg_crud.update_leg(db_session, "missing", {"origin": "X"}, ACTOR)
    with pytest.raises(NotFoundError):
        leg_crud.delete_leg(db_session, "missing")


def test_delete_removes_leg_and_history(db_session):
    leg = _create(db_session, "S1")
    leg_id = leg.id
    leg_crud.delete_leg(db_session, leg_id)
    assert leg_crud.get_leg(db_session, leg_id) is None
    assert leg_crud.list_status_history(db_session, leg_id) == []


def test_reassign_moves_every_leg_and_counts(db_session):
    for order in (1, 2, 3):
        _create(db_session, "temp-abc", leg_order=order)
    assert leg_crud.reassign_legs(db_session, "temp-abc", "R1", ACTOR) == 3
    assert leg_crud.find_legs_by_shipment(db_session, "temp-abc") == []
    assert [leg.shipment_id for leg in leg_crud.find_legs_by_shipment(db_session, "R1")] == ["R1"] * 3


def test_reassign_with_no_matching_legs_returns_zero(db_session):
    assert leg_crud.reassign_legs(db_session, "temp-none", "R1", ACTOR) == 0


def test_reassign_into_clashing_orders_is_rejected(db_session):
    _create(db_session, "temp-abc", leg_order=1)
    _create(db_session, "R1", leg_order=1)
    with pytest.raises(DuplicateOrderError):
        leg_crud.reassign_legs(db_session, "temp-abc", "R1", ACTOR)


def test_find_by_tracking_number(db_session):
    _create(db_session, "S1", tracking_number="114-12345678")
    _create(db_session, "S2", trackingNumber="114-12345678")
    _create(db_session, "S3", tracking_number="999")
    legs = leg_crud.find_legs_by_tracking_number(db_session, "114-12345678")
    assert [leg.shipment_id for leg in legs] == ["S1", "S2"]
