from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from legtrack.core.errors import NotFoundError, StoreUnavailableError, UnexpectedFailure
from legtrack.db.store import StoreHandle


def test_guard_reclassifies_connectivity_errors(engine):
    store = StoreHandle(engine, cooldown_seconds=30)
    with pytest.raises(StoreUnavailableError) as exc_info:
        with store.guard("add_leg"):
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))
    assert exc_info.value.status_code == 503
    assert exc_info.value.context == {"operation": "add_leg"}
    assert store.is_available() is False


def test_guard_reports_other_storage_errors_as_unexpected(engine):
    store = StoreHandle(engine)
    with pytest.raises(UnexpectedFailure):
        with store.guard("update_leg"):
            raise IntegrityError("INSERT", {}, Exception("constraint"))
    with pytest.raises(UnexpectedFailure):
        with store.guard("update_leg"):
            raise SQLAlchemyError("boom")
    assert store.is_available() is True


def test_guard_passes_typed_failures_through(engine):
    store = StoreHandle(engine)
    with pytest.raises(NotFoundError):
        with store.guard("get_leg"):
            raise NotFoundError("Shipment leg not found")


def test_fail_fast_inside_cooldown_then_reconnect(engine, monkeypatch):
    store = StoreHandle(engine, cooldown_seconds=10)
    clock = {"now": 100.0}
    monkeypatch.setattr(store, "_now", lambda: clock["now"])

    store.mark_unavailable("test")
    with pytest.raises(StoreUnavailableError):
        store.ensure_available()

    clock["now"] = 111.0
    store.ensure_available()
    assert store.is_available() is True


def test_unreachable_store_stays_down(tmp_path):
    broken = create_engine(f"sqlite:///{tmp_path}/missing-dir/legtrack.db")
    store = StoreHandle(broken, cooldown_seconds=0)
    assert store.ping() is False
    with pytest.raises(StoreUnavailableError):
        store.ensure_available()


def test_endpoints_return_503_while_store_is_down(client, store):
    store.mark_unavailable("test")
    response = client.get("/api/v1/shipments/anything")
    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "STORE_UNAVAILABLE"
    assert client.get("/health").json()["status"] == "degraded"
