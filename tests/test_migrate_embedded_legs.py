from __future__ import annotations

import json

import pytest

from scripts.migrate_embedded_legs import load_records, migrate_shipments

ACTOR = "migration@system.local"


def _records(shipment_id):
    return [
        {
            "_id": {"$oid": shipment_id},
            "legs": [
                {"from": "TLV", "to": "ATH", "status": "completed", "airline": "LY"},
                {"origin": "ATH", "destination": "JFK", "status": "in-transit", "legOrder": 2},
                {"from": "JFK", "status": "pending"},
            ],
        },
        {"id": "missing-shipment", "legs": [{"from": "A", "to": "B"}]},
    ]


def test_dry_run_writes_nothing(service, make_shipment):
    shipment = make_shipment()
    summary = migrate_shipments(service, _records(shipment.id), actor=ACTOR, dry_run=True)

    assert summary.shipments_seen == 2
    assert summary.shipments_missing == ["missing-shipment"]
    assert summary.legs_created == 2
    assert summary.legs_invalid == 1
    assert service.get_legs_for_shipment(shipment.id) == []


def test_apply_creates_legs_and_is_rerunnable(service, make_shipment):
    shipment = make_shipment()
    summary = migrate_shipments(service, _records(shipment.id), actor=ACTOR)

    assert summary.legs_created == 2
    assert summary.repaired[shipment.id] == (2, 2)
    legs = service.get_legs_for_shipment(shipment.id)
    assert [(leg.leg_order, leg.status, leg.carrier) for leg in legs] == [
        (1, "Arrived", "LY"),
        (2, "In Transit", None),
    ]
    summary_view = service.get_shipment_summary(shipment.id)
    assert summary_view.routing == "TLV-ATH-JFK"
    assert summary_view.shipment_status == "In Transit (Leg 2)"

    again = migrate_shipments(service, _records(shipment.id), actor=ACTOR)
    assert again.legs_created == 0
    assert again.legs_skipped == 2
    assert len(service.get_legs_for_shipment(shipment.id)) == 2


def test_load_records_accepts_list_or_wrapper(tmp_path):
    listed = tmp_path / "list.json"
    listed.write_text(json.dumps([{"id": "a", "legs": []}, "junk"]), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"shipments": [{"id": "b"}]}), encoding="utf-8")
    broken = tmp_path / "broken.json"
    broken.write_text(json.dumps("nope"), encoding="utf-8")

    assert load_records(listed) == [{"id": "a", "legs": []}]
    assert load_records(wrapped) == [{"id": "b"}]
    with pytest.raises(ValueError):
        load_records(broken)
