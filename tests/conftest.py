import os
import tempfile

# settings are read at import time, so point them at throwaway storage first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = os.path.join(tempfile.gettempdir(), "pharmapos-tests.log")

import pytest
from fastapi.testclient import TestClient

from pharmapos.database import Base, SessionLocal, engine
from pharmapos.main import app


PARACETAMOL = {
    "name": "Paracetamol",
    "description": "Pain reliever 500mg",
    "category": "Analgesics",
    "price": 10.99,
    "stock": 100,
    "unit": "tabs",
    "default_qty": 10,
    "expiry_date": "2025-12-31",
}


@pytest.fixture(autouse=True)
def fresh_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def published(client, monkeypatch):
    """Every (event_type, data) pair broadcast while the test runs."""
    events = []
    broadcaster = client.app.state.broadcaster
    notify = broadcaster.notify

    def record(event_type, data):
        events.append((getattr(event_type, "value", event_type), data))
        return notify(event_type, data)

    monkeypatch.setattr(broadcaster, "notify", record)
    return events


@pytest.fixture
def make_product(client):
    def _make(**overrides):
        response = client.post("/api/products", json={**PARACETAMOL, **overrides})
        assert response.status_code == 201, response.text
        return response.json()
    return _make
