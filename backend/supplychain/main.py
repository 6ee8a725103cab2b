import logging
import os
from dataclasses import dataclass

from fastapi import FastAPI, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from . import schemas
from .audit import AuditRecorder
from .auth import AuthorizationGate, CredentialStore, seed_default_users
from .db import DEFAULT_TIMEOUT, LOG_LEVEL, make_engine
from .errors import Internal, ServiceError
from .gateway import Gateway
from .inventory import InventoryLedger
from .orders import OrderWorkflow
from .shipments import ShipmentTracker
from .store import Store

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: Store
    ledger: InventoryLedger
    orders: OrderWorkflow
    shipments: ShipmentTracker
    recorder: AuditRecorder
    gateway: Gateway

    @classmethod
    def build(cls, store: Store) -> "Services":
        recorder = AuditRecorder(store)
        ledger = InventoryLedger(store)
        gate = AuthorizationGate(CredentialStore(store))
        return cls(
            store=store,
            ledger=ledger,
            orders=OrderWorkflow(store, ledger),
            shipments=ShipmentTracker(store),
            recorder=recorder,
            gateway=Gateway(gate, recorder, DEFAULT_TIMEOUT),
        )


services = Services.build(Store(make_engine()))

app = FastAPI(title="Supply Chain Back Office")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.http_status, content={"code": exc.code, "detail": exc.message})


@dataclass(frozen=True)
class CallContext:
    api_key: str | None
    timeout: float | None


def call_context(
    credential: str | None = Header(default=None, alias="api-key"),
    timeout: float | None = Header(default=None, alias="X-Request-Timeout"),
) -> CallContext:
    return CallContext(api_key=credential, timeout=timeout)


def get_services() -> Services:
    return services


@app.on_event("startup")
def on_startup():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        seed_default_users(get_services().store)
        logger.info("default credentials seeded")
    except Internal as exc:
        raise RuntimeError("database schema missing, run: alembic upgrade head") from exc


@app.get("/health")
def health():
    return {"status": "ok"}


def run():
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8089")))


@app.post("/items", response_model=schemas.ItemOut)
def create_item(payload: schemas.ItemCreate, call: CallContext = Depends(call_context), svc: Services = Depends(get_services)):
    return svc.gateway.invoke(call.api_key, "CreateItem", payload, lambda d: svc.ledger.create_item(payload, d), timeout=call.timeout)


@app.put("/items/{item_id}", response_model=schemas.ItemOut)
def update_item(
    item_id: str,
    payload: schemas.ItemCreate,
    call: CallContext = Depends(call_context),
    svc: Services = Depends(get_services),
):
    req = schemas.ItemUpdate(id=item_id, **payload.model_dump())
    return svc.gateway.invoke(call.api_key, "UpdateItem", req, lambda d: svc.ledger.update_item(req, d), timeout=call.timeout)


@app.delete("/items/{item_id}", response_model=schemas.DeleteResult)
def delete_item(item_id: str, call: CallContext = Depends(call_context), svc: Services = Depends(get_services)):
    req = schemas.ItemDelete(id=item_id)
    return svc.gateway.invoke(call.api_key, "DeleteItem", req, lambda d: svc.ledger.delete_item(item_id, d), timeout=call.timeout)


@app.get("/items", response_model=schemas.ItemPage)
def list_items(
    name_filter: str = Query(""),
    page: int = Query(1),
    page_size: int = Query(10),
    call: CallContext = Depends(call_context),
    svc: Services = Depends(get_services),
):
    req = schemas.ItemQuery(name_filter=name_filter, page=page, page_size=page_size)
    return svc.gateway.invoke(call.api_key, "ListItems", req, lambda d: svc.ledger.list_items(req, d), timeout=call.timeout)


@app.post("/orders", response_model=schemas.OrderOut)
def create_order(payload: schemas.OrderCreate, call: CallContext = Depends(call_context), svc: Services = Depends(get_services)):
    return svc.gateway.invoke(call.api_key, "CreateOrder", payload, lambda d: svc.orders.create_order(payload, d), timeout=call.timeout)


@app.post("/orders/{order_id}/fulfill", response_model=schemas.OrderOut)
def fulfill_order(order_id: str, call: CallContext = Depends(call_context), svc: Services = Depends(get_services)):
    req = schemas.OrderRef(order_id=order_id)
    return svc.gateway.invoke(call.api_key, "FulfillOrder", req, lambda d: svc.orders.fulfill_order(order_id, d), timeout=call.timeout)


@app.get("/orders/{order_id}", response_model=schemas.OrderOut)
def get_order(order_id: str, call: CallContext = Depends(call_context), svc: Services = Depends(get_services)):
    req = schemas.OrderRef(order_id=order_id)
    return svc.gateway.invoke(call.api_key, "GetOrder", req, lambda d: svc.orders.get_order(order_id, d), timeout=call.timeout)


@app.post("/shipments", response_model=schemas.ShipmentOut)
def create_shipment(payload: schemas.ShipmentCreate, call: CallContext = Depends(call_context), svc: Services = Depends(get_services)):
    return svc.gateway.invoke(
        call.api_key, "CreateShipment", payload, lambda d: svc.shipments.create_shipment(payload, d), timeout=call.timeout
    )


@app.put("/shipments/{shipment_id}", response_model=schemas.ShipmentOut)
def update_shipment(
    shipment_id: str,
    payload: schemas.ShipmentUpdate,
    call: CallContext = Depends(call_context),
    svc: Services = Depends(get_services),
):
    req = payload.model_copy(update={"id": shipment_id})
    return svc.gateway.invoke(
        call.api_key, "UpdateShipment", req, lambda d: svc.shipments.update_shipment(req, d), timeout=call.timeout
    )


@app.get("/shipments", response_model=schemas.ShipmentPage)
def list_shipments(
    order_id: str = Query(""),
    page: int = Query(1),
    page_size: int = Query(10),
    call: CallContext = Depends(call_context),
    svc: Services = Depends(get_services),
):
    req = schemas.ShipmentQuery(order_id=order_id, page=page, page_size=page_size)
    return svc.gateway.invoke(call.api_key, "ListShipments", req, lambda d: svc.shipments.list_shipments(req, d), timeout=call.timeout)


@app.get("/audit_logs", response_model=schemas.AuditLogPage)
def audit_logs(
    api_key: str = Query(""),
    page: int = Query(1),
    page_size: int = Query(10),
    call: CallContext = Depends(call_context),
    svc: Services = Depends(get_services),
):
    req = schemas.AuditLogQuery(api_key=api_key, page=page, page_size=page_size)
    return svc.gateway.invoke(call.api_key, "AuditLogs", req, lambda d: svc.recorder.list_logs(req, d), timeout=call.timeout)
