from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, select, update

from . import models, schemas
from .errors import INT32_MAX, INT64_MAX, FailedPrecondition, NotFound, check_page, require
from .store import Deadline, Store, TransactionScope


@dataclass(frozen=True)
class StockSnapshot:
    unit_price_value: int
    unit_price_currency: str
    quantity: int


def item_to_schema(item: models.Item) -> schemas.ItemOut:
    return schemas.ItemOut(
        id=item.id,
        name=item.name,
        description=item.description,
        quantity=item.quantity,
        unit_price=schemas.Money(value=item.unit_price_value, currency=item.unit_price_currency),
        updated_at=item.updated_at,
    )


def _validate_item(payload: schemas.ItemCreate) -> None:
    require(bool(payload.name), "item name is required")
    require(0 <= payload.quantity <= INT32_MAX, "quantity must be between 0 and 2147483647")
    require(0 <= payload.unit_price.value <= INT64_MAX, "unit price must be between 0 and 9223372036854775807")
    require(bool(payload.unit_price.currency), "currency is required")


class InventoryLedger:
    """Item records: stock on hand and current unit price."""

    def __init__(self, store: Store):
        self.store = store

    def create_item(self, payload: schemas.ItemCreate, deadline: Deadline | None = None) -> schemas.ItemOut:
        _validate_item(payload)
        item = models.Item(
            id=str(uuid.uuid4()),
            name=payload.name,
            description=payload.description,
            quantity=payload.quantity,
            unit_price_value=payload.unit_price.value,
            unit_price_currency=payload.unit_price.currency,
            updated_at=datetime.now(),
        )
        with self.store.transaction(deadline) as scope:
            scope.add(item)
            scope.flush()
        return item_to_schema(item)

    def update_item(self, payload: schemas.ItemUpdate, deadline: Deadline | None = None) -> schemas.ItemOut:
        require(bool(payload.id), "item id is required")
        _validate_item(payload)
        now = datetime.now()
        with self.store.transaction(deadline) as scope:
            result = scope.execute(
                update(models.Item)
                .where(models.Item.id == payload.id)
                .values(
                    name=payload.name,
                    description=payload.description,
                    quantity=payload.quantity,
                    unit_price_value=payload.unit_price.value,
                    unit_price_currency=payload.unit_price.currency,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(f"item {payload.id} not found")
        return schemas.ItemOut(
            id=payload.id,
            name=payload.name,
            description=payload.description,
            quantity=payload.quantity,
            unit_price=payload.unit_price,
            updated_at=now,
        )

    def delete_item(self, item_id: str, deadline: Deadline | None = None) -> schemas.DeleteResult:
        require(bool(item_id), "item id is required")
        with self.store.transaction(deadline) as scope:
            referenced = scope.scalar(
                select(models.OrderItem.order_id).where(models.OrderItem.item_id == item_id).limit(1)
            )
            if referenced:
                raise FailedPrecondition(f"item {item_id} is referenced by orders")
            result = scope.execute(
                delete(models.Item)
                .where(models.Item.id == item_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(f"item {item_id} not found")
        return schemas.DeleteResult(success=True)

    def list_items(self, query: schemas.ItemQuery, deadline: Deadline | None = None) -> schemas.ItemPage:
        check_page(query.page, query.page_size)
        stmt = select(models.Item)
        count_stmt = select(func.count()).select_from(models.Item)
        if query.name_filter:
            pattern = f"%{query.name_filter}%"
            stmt = stmt.where(models.Item.name.like(pattern))
            count_stmt = count_stmt.where(models.Item.name.like(pattern))
        stmt = stmt.order_by(models.Item.id).limit(query.page_size).offset((query.page - 1) * query.page_size)
        with self.store.transaction(deadline) as scope:
            rows = scope.scalars(stmt).all()
            total = scope.scalar(count_stmt)
        return schemas.ItemPage(items=[item_to_schema(r) for r in rows], total=total or 0)

    def stock_snapshot(self, scope: TransactionScope, item_id: str) -> StockSnapshot | None:
        """Current price and stock of one item, read inside the caller's transaction."""
        row = scope.execute(
            select(models.Item.unit_price_value, models.Item.unit_price_currency, models.Item.quantity)
            .where(models.Item.id == item_id)
        ).first()
        if row is None:
            return None
        return StockSnapshot(unit_price_value=row[0], unit_price_currency=row[1], quantity=row[2])

    def decrement_stock(self, scope: TransactionScope, item_id: str, quantity: int) -> bool:
        """Take ``quantity`` units off the shelf only if that many are on hand.

        Single guarded UPDATE; returns False when the guard did not match.
        """
        result = scope.execute(
            update(models.Item)
            .where(models.Item.id == item_id, models.Item.quantity >= quantity)
            .values(quantity=models.Item.quantity - quantity, updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
