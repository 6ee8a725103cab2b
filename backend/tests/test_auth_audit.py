import json
import logging
from pathlib import Path
import tempfile

import pytest

from conftest import ADMIN, CUSTOMER
from supplychain.audit import AuditRecorder
from supplychain.auth import ADMIN_METHODS, CUSTOMER_METHODS, AuthorizationGate
from supplychain.db import make_engine
from supplychain.errors import Internal, InvalidArgument, NotFound, PermissionDenied, Unauthenticated
from supplychain.gateway import Gateway
from supplychain.store import Store


class FakeCredentials:
    def __init__(self, roles):
        self.roles = roles
        self.lookups = 0

    def role_for(self, api_key, deadline=None):
        self.lookups += 1
        return self.roles.get(api_key)


class FakeRecorder:
    def __init__(self):
        self.entries = []

    def record(self, api_key, method, request_data, status, timestamp=None):
        self.entries.append((api_key, method, request_data, status))


def test_allow_lists():
    assert CUSTOMER_METHODS == {"CreateOrder", "ListItems", "GetOrder"}
    assert ADMIN_METHODS == {
        "CreateItem", "UpdateItem", "DeleteItem", "CreateOrder", "FulfillOrder", "GetOrder",
        "CreateShipment", "UpdateShipment", "ListItems", "ListShipments", "AuditLogs",
    }


def test_gate_decisions():
    creds = FakeCredentials({"c": "customer", "a": "admin", "x": "auditor"})
    gate = AuthorizationGate(creds)

    with pytest.raises(Unauthenticated):
        gate.authorize(None, "ListItems")
    assert creds.lookups == 0
    with pytest.raises(Unauthenticated):
        gate.authorize("nobody", "ListItems")
    with pytest.raises(PermissionDenied):
        gate.authorize("c", "FulfillOrder")
    with pytest.raises(PermissionDenied):
        gate.authorize("x", "ListItems")

    assert gate.authorize("c", "GetOrder") == "customer"
    assert gate.authorize("a", "AuditLogs") == "admin"


def test_gateway_records_every_authorized_outcome():
    recorder = FakeRecorder()
    gateway = Gateway(AuthorizationGate(FakeCredentials({"a": "admin"})), recorder)

    assert gateway.invoke("a", "ListItems", None, lambda d: "page") == "page"

    def missing(_):
        raise NotFound("gone")

    with pytest.raises(NotFound):
        gateway.invoke("a", "GetOrder", None, missing)

    def broken(_):
        raise RuntimeError("boom")

    with pytest.raises(Internal):
        gateway.invoke("a", "FulfillOrder", None, broken)

    with pytest.raises(Unauthenticated):
        gateway.invoke("b", "ListItems", None, lambda d: "never")

    assert [(m, s) for _, m, _, s in recorder.entries] == [
        ("ListItems", "success"),
        ("GetOrder", "NotFound"),
        ("FulfillOrder", "Internal"),
    ]


def test_missing_and_unknown_credentials(client):
    missing = client.get("/items")
    assert missing.status_code == 401
    assert missing.json()["code"] == "Unauthenticated"
    assert client.get("/items", headers={"api-key": "stolen"}).status_code == 401


def test_customer_denied_admin_method_without_side_effects(client):
    resp = client.post(
        "/items", json={"name": "Widget", "quantity": 5, "unit_price": {"value": 999, "currency": "USD"}}, headers=CUSTOMER
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "PermissionDenied"

    assert client.get("/items", headers=ADMIN).json()["total"] == 0
    logs = client.get("/audit_logs", params={"api_key": CUSTOMER["api-key"]}, headers=ADMIN).json()
    assert logs["total"] == 0


def test_audit_trail_records_success_and_failure(client, widget):
    client.post("/orders", json={"customer_id": "", "lines": []}, headers=ADMIN)

    logs = client.get("/audit_logs", params={"api_key": ADMIN["api-key"]}, headers=ADMIN).json()
    assert logs["total"] == 2
    newest, oldest = logs["logs"]
    assert (newest["method"], newest["status"]) == ("CreateOrder", "InvalidArgument")
    assert (oldest["method"], oldest["status"]) == ("CreateItem", "success")
    assert json.loads(oldest["request_data"])["name"] == "Widget"

    assert client.get("/audit_logs", params={"page": 0}, headers=ADMIN).status_code == 400
    assert client.get("/audit_logs", headers=CUSTOMER).status_code == 403


def test_audit_write_failure_does_not_change_result(client, services, monkeypatch, caplog):
    empty_db = Path(tempfile.mkdtemp()) / "no_tables.db"
    monkeypatch.setattr(services.recorder, "store", Store(make_engine(f"sqlite:///{empty_db}")))

    with caplog.at_level(logging.ERROR, logger="supplychain.audit"):
        resp = client.get("/items", headers=ADMIN)

    assert resp.status_code == 200
    assert "failed to save audit log" in caplog.text


def test_recorder_swallows_storage_errors(caplog):
    empty_db = Path(tempfile.mkdtemp()) / "no_tables.db"
    recorder = AuditRecorder(Store(make_engine(f"sqlite:///{empty_db}")))
    with caplog.at_level(logging.ERROR):
        recorder.record("k", "ListItems", "{}", "success")
    assert "ListItems" in caplog.text


def test_bad_timeout_is_checked_after_the_gate():
    recorder = FakeRecorder()
    gateway = Gateway(AuthorizationGate(FakeCredentials({"a": "admin"})), recorder, default_timeout=5)

    with pytest.raises(Unauthenticated):
        gateway.invoke("b", "ListItems", None, lambda d: "never", timeout=float("nan"))
    for bad in (float("nan"), float("inf"), 0.0, -1.0):
        with pytest.raises(InvalidArgument):
            gateway.invoke("a", "ListItems", None, lambda d: "never", timeout=bad)

    seen = []
    gateway.invoke("a", "ListItems", None, seen.append, timeout=2.5)
    assert 0 < seen[0].remaining() <= 2.5
    gateway.invoke("a", "ListItems", None, seen.append)
    assert 2.5 < seen[1].remaining() <= 5
    assert [s for _, _, _, s in recorder.entries] == ["InvalidArgument"] * 4 + ["success"] * 2


def test_request_timeout_header(client):
    for value in ("nan", "inf", "0", "-3"):
        resp = client.get("/items", headers={**ADMIN, "X-Request-Timeout": value})
        assert resp.status_code == 400
        assert resp.json()["code"] == "InvalidArgument"

    unknown = client.get("/items", headers={"api-key": "stolen", "X-Request-Timeout": "nan"})
    assert unknown.status_code == 401
    assert client.get("/items", headers={**ADMIN, "X-Request-Timeout": "1.5"}).status_code == 200
