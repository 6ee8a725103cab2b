from pathlib import Path
import tempfile

import pytest
from fastapi.testclient import TestClient

from supplychain.db import Base, make_engine
from supplychain.store import Store
from supplychain.auth import seed_default_users
import supplychain.main as main

ADMIN = {"api-key": "admin-key-456"}
CUSTOMER = {"api-key": "customer-key-123"}


@pytest.fixture()
def store():
    db_file = Path(tempfile.mkdtemp()) / "test_supplychain.db"
    engine = make_engine(f"sqlite:///{db_file}", busy_timeout=10)
    Base.metadata.create_all(bind=engine)
    s = Store(engine)
    seed_default_users(s)
    yield s
    engine.dispose()


@pytest.fixture()
def services(store, monkeypatch):
    svc = main.Services.build(store)
    monkeypatch.setattr(main, "services", svc)
    return svc


@pytest.fixture()
def client(services):
    with TestClient(main.app) as c:
        yield c


@pytest.fixture()
def widget(client):
    resp = client.post(
        "/items",
        json={"name": "Widget", "description": "blue", "quantity": 5, "unit_price": {"value": 999, "currency": "USD"}},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    return resp.json()
