import pytest

from conftest import ADMIN, CUSTOMER
from supplychain import schemas
from supplychain.errors import InvalidArgument


def _pending_order(client, widget):
    return client.post(
        "/orders", json={"customer_id": "C1", "lines": [{"item_id": widget["id"], "quantity": 1}]}, headers=ADMIN
    ).json()


def test_shipment_requires_fulfilled_order(client, widget):
    order = _pending_order(client, widget)
    body = {"order_id": order["id"], "tracking_number": "TRK123456"}

    early = client.post("/shipments", json=body, headers=ADMIN)
    assert early.status_code == 409
    assert early.json()["code"] == "FailedPrecondition"

    client.post(f"/orders/{order['id']}/fulfill", headers=ADMIN)
    shipped = client.post("/shipments", json=body, headers=ADMIN)
    assert shipped.status_code == 200
    assert shipped.json()["status"] == "PENDING"
    assert shipped.json()["order_id"] == order["id"]


def test_create_shipment_validation(client):
    assert client.post("/shipments", json={"order_id": "", "tracking_number": "T"}, headers=ADMIN).status_code == 400
    assert client.post("/shipments", json={"order_id": "x", "tracking_number": ""}, headers=ADMIN).status_code == 400
    assert client.post("/shipments", json={"order_id": "x", "tracking_number": "T"}, headers=ADMIN).status_code == 404


def test_update_and_list_shipments(client, widget):
    order = _pending_order(client, widget)
    client.post(f"/orders/{order['id']}/fulfill", headers=ADMIN)
    shipment = client.post("/shipments", json={"order_id": order["id"], "tracking_number": "TRK1"}, headers=ADMIN).json()

    updated = client.put(
        f"/shipments/{shipment['id']}", json={"status": "IN_TRANSIT", "tracking_number": "TRK2"}, headers=ADMIN
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "IN_TRANSIT"
    assert updated.json()["order_id"] == order["id"]

    page = client.get("/shipments", params={"order_id": order["id"]}, headers=ADMIN).json()
    assert page["total"] == 1
    assert page["shipments"][0]["tracking_number"] == "TRK2"

    assert client.get("/shipments", params={"order_id": "other"}, headers=ADMIN).json()["total"] == 0
    assert client.get("/shipments", params={"page_size": 0}, headers=ADMIN).status_code == 400


def test_update_shipment_errors(client):
    assert client.put("/shipments/ghost", json={"status": "LOST"}, headers=ADMIN).status_code == 404
    assert client.put("/shipments/ghost", json={"status": ""}, headers=ADMIN).status_code == 400


def test_customers_cannot_ship(client):
    resp = client.post("/shipments", json={"order_id": "x", "tracking_number": "T"}, headers=CUSTOMER)
    assert resp.status_code == 403


def test_empty_shipment_id_is_invalid_argument(services):
    with pytest.raises(InvalidArgument):
        services.shipments.update_shipment(schemas.ShipmentUpdate(id="", status="LOST"))
