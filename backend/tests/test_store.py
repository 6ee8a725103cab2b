import time

import pytest
from sqlalchemy import text

from supplychain import schemas
from supplychain.errors import DeadlineExceeded, Internal, NotFound
from supplychain.store import Deadline


class ExpiresAfter:
    """Deadline stand-in that expires after a fixed number of checks."""

    def __init__(self, checks):
        self.checks = checks

    def expired(self):
        self.checks -= 1
        return self.checks < 0

    def remaining(self):
        return 1.0


def _order(services, stock=5, qty=2):
    item = services.ledger.create_item(schemas.ItemCreate(name="W", quantity=stock, unit_price=schemas.Money(value=100)))
    order = services.orders.create_order(
        schemas.OrderCreate(customer_id="C1", lines=[schemas.OrderLine(item_id=item.id, quantity=qty)])
    )
    return item, order


def test_deadline_helpers():
    assert not Deadline.after(60).expired()
    assert Deadline(time.monotonic() - 1).expired()


def test_expired_deadline_rejects_before_any_work(services):
    item, order = _order(services)
    with pytest.raises(DeadlineExceeded):
        services.orders.fulfill_order(order.id, Deadline(time.monotonic() - 1))
    assert services.orders.get_order(order.id).status == "PENDING"


def test_deadline_expiring_mid_transaction_rolls_back(services):
    item, order = _order(services)
    # start, claim, load lines pass; the stock decrement is refused
    with pytest.raises(DeadlineExceeded):
        services.orders.fulfill_order(order.id, ExpiresAfter(3))

    assert services.orders.get_order(order.id).status == "PENDING"
    assert services.ledger.list_items(schemas.ItemQuery()).items[0].quantity == 5


def test_service_errors_roll_back_the_scope(store):
    with pytest.raises(NotFound):
        with store.transaction() as scope:
            scope.execute(text("INSERT INTO users (api_key, role) VALUES ('temp-key', 'admin')"))
            raise NotFound("abort")
    with store.transaction() as scope:
        assert scope.scalar(text("SELECT COUNT(*) FROM users WHERE api_key = 'temp-key'")) == 0


def test_storage_failures_surface_as_internal(store):
    with pytest.raises(Internal):
        with store.transaction() as scope:
            scope.execute(text("SELECT * FROM no_such_table"))


def test_quantity_never_negative_at_storage_level(store):
    with pytest.raises(Internal):
        with store.transaction() as scope:
            scope.execute(
                text(
                    "INSERT INTO items (id, name, description, quantity, unit_price_value, unit_price_currency, updated_at) "
                    "VALUES ('neg', 'n', '', -1, 1, 'USD', '2026-01-01 00:00:00')"
                )
            )
