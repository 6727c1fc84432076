from __future__ import annotations

import re

API = "/api/v1"
HEADERS = {"X-User-Email": "Ops@Example.com"}


def _create_shipment(client, **overrides):
    payload = {
        "customer": "Acme Imports",
        "shipperName": "Tel Aviv Exporters",
        "consigneeName": "LA Receivers",
        "awbNumber1": "114-12345678",
        "weight": "120.5",
    }
    payload.update(overrides)
    response = client.post(f"{API}/shipments", json=payload, headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_shipment_assigns_serial_and_actor(client):
    body = _create_shipment(client)
    assert re.fullmatch(r"SHP-\d{4}-0001", body["serial_number"])
    assert body["routing"] == "No routing"
    assert body["shipment_status"] == "Pending"
    assert body["created_by"] == "ops@example.com"
    assert body["awb_number_1"] == "114-12345678"


def test_create_shipment_missing_party_is_400(client):
    response = client.post(f"{API}/shipments", json={"customer": "Acme"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_malformed_leg_bodies_are_400(client):
    sid = _create_shipment(client)["id"]

    response = client.post(f"{API}/shipments/{sid}/legs", json={"destination": "JFK"}, headers=HEADERS)
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert any(error["field"].endswith("origin") for error in detail["errors"])

    response = client.post(
        f"{API}/shipments/{sid}/legs",
        json={"from": "TLV", "to": "JFK", "legOrder": -1},
        headers=HEADERS,
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert client.get(f"{API}/shipments/{sid}/legs").json() == []


def test_leg_lifecycle_over_http(client):
    shipment = _create_shipment(client)
    sid = shipment["id"]

    # Legacy from/to payload.
    response = client.post(
        f"{API}/shipments/{sid}/legs",
        json={"from": "TLV", "to": "JFK", "status": "pending", "flightNumber": "LY001"},
        headers=HEADERS,
    )
    assert response.status_code == 201, response.text
    first = response.json()
    assert first["leg"]["origin"] == "TLV"
    assert first["leg"]["carrier"] == "LY001"
    assert first["leg"]["leg_order"] == 1
    assert first["shipment"]["routing"] == "TLV-JFK"

    response = client.post(
        f"{API}/shipments/{sid}/legs",
        json={"origin": "JFK", "destination": "LAX", "status": "In Transit", "trackingNumber": "114-1"},
        headers=HEADERS,
    )
    second = response.json()
    assert second["shipment"]["routing"] == "TLV-JFK-LAX"
    assert second["shipment"]["shipment_status"] == "In Transit (Leg 2)"

    leg_id = second["leg"]["id"]
    response = client.put(f"{API}/shipment-legs/{leg_id}/status", json={"status": "completed"}, headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["status"] == "Arrived"
    assert client.get(f"{API}/shipments/{sid}").json()["shipment_status"] == "Arrived"

    history = client.get(f"{API}/shipment-legs/{leg_id}/history").json()
    assert [row["status"] for row in history] == ["In Transit", "Arrived"]
    assert history[-1]["changed_by"] == "ops@example.com"

    by_tracking = client.get(f"{API}/shipment-legs/by-tracking/114-1").json()
    assert [leg["id"] for leg in by_tracking] == [leg_id]

    legs = client.get(f"{API}/shipments/{sid}/legs").json()
    assert [leg["leg_order"] for leg in legs] == [1, 2]

    response = client.delete(f"{API}/shipment-legs/{leg_id}", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["shipment_id"] == sid
    assert client.get(f"{API}/shipments/{sid}").json()["routing"] == "TLV-JFK"

    log = client.get(f"{API}/shipments/{sid}/change-log").json()
    assert [entry["action"] for entry in log] == [
        "created-shipment",
        "added-leg",
        "added-leg",
        "updated-leg",
        "deleted-leg",
    ]
    assert {entry["actor"] for entry in log} == {"ops@example.com"}


def test_update_leg_with_alias_payload(client):
    sid = _create_shipment(client)["id"]
    leg = client.post(f"{API}/shipments/{sid}/legs", json={"origin": "TLV", "destination": "JFK"}).json()["leg"]

    response = client.put(
        f"{API}/shipment-legs/{leg['id']}",
        json={"to": "EWR", "departureDate": "2026-10-20T08:30:00", "notes": "cold chain"},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["destination"] == "EWR"
    assert body["departure_time"].startswith("2026-10-20T08:30")
    assert client.get(f"{API}/shipments/{sid}").json()["routing"] == "TLV-EWR"


def test_failure_status_codes(client):
    sid = _create_shipment(client)["id"]
    client.post(f"{API}/shipments/{sid}/legs", json={"origin": "TLV", "destination": "JFK"})

    missing = client.post(f"{API}/shipments/unknown/legs", json={"origin": "TLV", "destination": "JFK"})
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "NOT_FOUND"

    duplicate = client.post(
        f"{API}/shipments/{sid}/legs", json={"origin": "JFK", "destination": "LAX", "legOrder": 1}
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"]["code"] == "DUPLICATE_ORDER"

    malformed = client.get(f"{API}/shipment-legs/bad$id")
    assert malformed.status_code == 400
    assert malformed.json()["detail"]["code"] == "VALIDATION_ERROR"

    assert client.get(f"{API}/shipment-legs/unknown").status_code == 404
    assert client.delete(f"{API}/shipment-legs/unknown").status_code == 404


def test_draft_legs_reassign_and_repair_over_http(client):
    for origin, destination in [("TLV", "ATH"), ("ATH", "JFK")]:
        response = client.post(
            f"{API}/shipment-legs/drafts",
            json={"shipmentId": "temp-abc", "from": origin, "to": destination},
        )
        assert response.status_code == 201, response.text
        assert response.json()["shipment_id"] == "temp-abc"

    sid = _create_shipment(client)["id"]
    response = client.put(f"{API}/shipment-legs/reassign/temp-abc/{sid}", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["count"] == 2

    summary = client.get(f"{API}/shipments/{sid}/summary").json()
    assert summary["routing"] == "TLV-ATH-JFK"
    assert len(summary["leg_ids"]) == 2

    repaired = client.post(f"{API}/shipments/{sid}/repair-legs").json()
    assert repaired["success"] is True
    assert (repaired["before"], repaired["after"]) == (2, 2)
    assert [leg["leg_order"] for leg in repaired["legs"]] == [1, 2]

    assert client.post(f"{API}/shipments/missing/repair-legs").status_code == 404


def test_patch_shipment_and_list(client):
    sid = _create_shipment(client)["id"]
    _create_shipment(client)

    response = client.patch(
        f"{API}/shipments/{sid}", json={"comments": "fragile", "invoiceStatus": "Paid"}, headers=HEADERS
    )
    assert response.status_code == 200
    assert response.json()["invoice_status"] == "Paid"

    log = client.get(f"{API}/shipments/{sid}/change-log").json()
    assert log[-1]["action"] == "updated-shipment"
    assert log[-1]["fields"]["invoice_status"] == {"old": "Pending", "new": "Paid"}

    listed = client.get(f"{API}/shipments", params={"limit": 10}).json()
    assert len(listed) == 2


def test_health(client):
    assert client.get("/health").json() == {"status": "up", "store": "available"}
