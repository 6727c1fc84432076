from __future__ import annotations

import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("legtrack.main").app
from legtrack.db.base import Base
from legtrack.db.session import get_db
from legtrack.db.store import StoreHandle, get_store
from legtrack.schemas.shipment import ShipmentCreate
from legtrack.services.leg_consistency_service import LegConsistencyService

# Ensure all models are registered with SQLAlchemy metadata
import legtrack.models  # noqa: F401


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def store(engine):
    return StoreHandle(engine, cooldown_seconds=30)


@pytest.fixture(scope="function")
def service(db_session, store):
    return LegConsistencyService(db_session, store)


@pytest.fixture(scope="function")
def make_shipment(service):
    def _make(**overrides):
        payload = {
            "customer": "Acme Imports",
            "shipper_name": "Tel Aviv Exporters",
            "consignee_name": "LA Receivers",
        }
        payload.update(overrides)
        return service.create_shipment(ShipmentCreate(**payload), actor="ops@example.com")

    return _make


@pytest.fixture(scope="function")
def client(engine, db_session, store):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_store] = lambda: store
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()
