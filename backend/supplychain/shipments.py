from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select, update

from . import models, schemas
from .errors import FailedPrecondition, NotFound, check_page, require
from .store import Deadline, Store


class ShipmentTracker:
    """Shipments of fulfilled orders. Status after creation is free-form."""

    def __init__(self, store: Store):
        self.store = store

    def create_shipment(self, payload: schemas.ShipmentCreate, deadline: Deadline | None = None) -> schemas.ShipmentOut:
        require(bool(payload.order_id), "order id is required")
        require(bool(payload.tracking_number), "tracking number is required")
        with self.store.transaction(deadline) as scope:
            status = scope.scalar(select(models.Order.status).where(models.Order.id == payload.order_id))
            if status is None:
                raise NotFound(f"order {payload.order_id} not found")
            if status != models.ORDER_FULFILLED:
                raise FailedPrecondition(f"order {payload.order_id} must be fulfilled before shipping")
            shipment = models.Shipment(
                id=str(uuid.uuid4()),
                order_id=payload.order_id,
                status=models.SHIPMENT_PENDING,
                tracking_number=payload.tracking_number,
                updated_at=datetime.now(),
            )
            scope.add(shipment)
            scope.flush()
        return schemas.ShipmentOut.model_validate(shipment)

    def update_shipment(self, payload: schemas.ShipmentUpdate, deadline: Deadline | None = None) -> schemas.ShipmentOut:
        require(bool(payload.id), "shipment id is required")
        require(bool(payload.status), "shipment status is required")
        now = datetime.now()
        with self.store.transaction(deadline) as scope:
            result = scope.execute(
                update(models.Shipment)
                .where(models.Shipment.id == payload.id)
                .values(status=payload.status, tracking_number=payload.tracking_number, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(f"shipment {payload.id} not found")
            order_id = scope.scalar(select(models.Shipment.order_id).where(models.Shipment.id == payload.id))
        return schemas.ShipmentOut(
            id=payload.id,
            order_id=order_id,
            status=payload.status,
            tracking_number=payload.tracking_number,
            updated_at=now,
        )

    def list_shipments(self, query: schemas.ShipmentQuery, deadline: Deadline | None = None) -> schemas.ShipmentPage:
        check_page(query.page, query.page_size)
        stmt = select(models.Shipment)
        count_stmt = select(func.count()).select_from(models.Shipment)
        if query.order_id:
            stmt = stmt.where(models.Shipment.order_id == query.order_id)
            count_stmt = count_stmt.where(models.Shipment.order_id == query.order_id)
        stmt = stmt.order_by(models.Shipment.id).limit(query.page_size).offset((query.page - 1) * query.page_size)
        with self.store.transaction(deadline) as scope:
            rows = scope.scalars(stmt).all()
            total = scope.scalar(count_stmt)
        return schemas.ShipmentPage(
            shipments=[schemas.ShipmentOut.model_validate(r) for r in rows],
            total=total or 0,
        )
