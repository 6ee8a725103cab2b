"""Order workflow.

An order is created PENDING with its total priced from the items' unit
prices at that moment; the total is never recomputed afterwards. Fulfilling
moves it to FULFILLED exactly once and takes the ordered quantities off the
shelf in the same transaction. Stock is not checked at creation.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update

from . import models, schemas
from .errors import INT32_MAX, INT64_MAX, FailedPrecondition, InvalidArgument, NotFound, require
from .inventory import InventoryLedger
from .store import Deadline, Store, TransactionScope

logger = logging.getLogger(__name__)


def _validate_lines(lines: list[schemas.OrderLine]) -> None:
    seen: set[str] = set()
    for line in lines:
        require(bool(line.item_id), "order line item id is required")
        require(1 <= line.quantity <= INT32_MAX, "order line quantity must be between 1 and 2147483647")
        if line.item_id in seen:
            raise InvalidArgument(f"item {line.item_id} listed more than once")
        seen.add(line.item_id)


def _order_to_schema(order: models.Order, lines: list[models.OrderItem]) -> schemas.OrderOut:
    return schemas.OrderOut(
        id=order.id,
        customer_id=order.customer_id,
        lines=[schemas.OrderLine(item_id=line.item_id, quantity=line.quantity) for line in lines],
        total=schemas.Money(value=order.total_value, currency=order.total_currency),
        status=order.status,
        created_at=order.created_at,
    )


class OrderWorkflow:
    def __init__(self, store: Store, ledger: InventoryLedger | None = None):
        self.store = store
        self.ledger = ledger or InventoryLedger(store)

    def create_order(self, payload: schemas.OrderCreate, deadline: Deadline | None = None) -> schemas.OrderOut:
        require(bool(payload.customer_id), "customer id is required")
        require(bool(payload.lines), "order needs at least one line")
        _validate_lines(payload.lines)

        with self.store.transaction(deadline) as scope:
            total = 0
            currency: str | None = None
            for line in payload.lines:
                snap = self.ledger.stock_snapshot(scope, line.item_id)
                if snap is None:
                    raise NotFound(f"item {line.item_id} not found")
                if currency is None:
                    currency = snap.unit_price_currency
                elif currency != snap.unit_price_currency:
                    raise InvalidArgument("all items of an order must share one currency")
                total += snap.unit_price_value * line.quantity
                if total > INT64_MAX:
                    raise InvalidArgument("order total is out of range")

            order = models.Order(
                id=str(uuid.uuid4()),
                customer_id=payload.customer_id,
                total_value=total,
                total_currency=currency,
                status=models.ORDER_PENDING,
                created_at=datetime.now(),
            )
            scope.add(order)
            scope.flush()
            rows = [
                models.OrderItem(order_id=order.id, item_id=line.item_id, position=pos, quantity=line.quantity)
                for pos, line in enumerate(payload.lines)
            ]
            for row in rows:
                scope.add(row)
            scope.flush()

        logger.info("order %s created for %s, total=%s %s", order.id, order.customer_id, total, currency)
        return _order_to_schema(order, rows)

    def fulfill_order(self, order_id: str, deadline: Deadline | None = None) -> schemas.OrderOut:
        require(bool(order_id), "order id is required")

        with self.store.transaction(deadline) as scope:
            # Claim the order first: only one of two racing fulfillments
            # can move it off PENDING.
            claimed = scope.execute(
                update(models.Order)
                .where(models.Order.id == order_id, models.Order.status == models.ORDER_PENDING)
                .values(status=models.ORDER_FULFILLED)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 0:
                status = scope.scalar(select(models.Order.status).where(models.Order.id == order_id))
                if status is None:
                    raise NotFound(f"order {order_id} not found")
                raise FailedPrecondition(f"order {order_id} is {status}, only PENDING orders can be fulfilled")

            lines = self._load_lines(scope, order_id)
            for line in lines:
                if self.ledger.decrement_stock(scope, line.item_id, line.quantity):
                    continue
                if self.ledger.stock_snapshot(scope, line.item_id) is None:
                    raise NotFound(f"item {line.item_id} not found")
                raise FailedPrecondition(f"insufficient stock for item {line.item_id}")

            order = scope.scalar(select(models.Order).where(models.Order.id == order_id))

        logger.info("order %s fulfilled (%d lines)", order_id, len(lines))
        return _order_to_schema(order, lines)

    def get_order(self, order_id: str, deadline: Deadline | None = None) -> schemas.OrderOut:
        require(bool(order_id), "order id is required")
        # Order and lines are read in one transaction so they agree.
        with self.store.transaction(deadline) as scope:
            order = scope.scalar(select(models.Order).where(models.Order.id == order_id))
            if order is None:
                raise NotFound(f"order {order_id} not found")
            lines = self._load_lines(scope, order_id)
        return _order_to_schema(order, lines)

    @staticmethod
    def _load_lines(scope: TransactionScope, order_id: str) -> list[models.OrderItem]:
        return list(
            scope.scalars(
                select(models.OrderItem)
                .where(models.OrderItem.order_id == order_id)
                .order_by(models.OrderItem.position)
            ).all()
        )
