"""Walk a running server through one complete order.

Creates an item, orders and fulfills one unit, ships it, restocks the item
and lists it again, logging each answer:

    supplychain-demo --connect http://localhost:8089 --api-key admin-key-456
"""

from __future__ import annotations

import argparse
import logging
import sys

import httpx

logger = logging.getLogger(__name__)

LAPTOP = {
    "name": "Laptop",
    "description": "High-performance laptop",
    "quantity": 10,
    "unit_price": {"value": 100000, "currency": "USD"},
}


class DemoError(Exception):
    pass


def _call(client: httpx.Client, method: str, path: str, **kwargs) -> dict:
    resp = client.request(method, path, **kwargs)
    if resp.is_error:
        raise DemoError(f"{method} {path} failed ({resp.status_code}): {resp.text}")
    return resp.json()


def run_flow(client: httpx.Client, api_key: str) -> dict:
    """Run the flow; returns the created records keyed by step name."""
    headers = {"api-key": api_key}

    item = _call(client, "POST", "/items", json=LAPTOP, headers=headers)
    logger.info("created item %s (%s left)", item["id"], item["quantity"])

    order = _call(
        client,
        "POST",
        "/orders",
        json={"customer_id": "CUST001", "lines": [{"item_id": item["id"], "quantity": 1}]},
        headers=headers,
    )
    logger.info("created order %s, total %s %s", order["id"], order["total"]["display_value"], order["total"]["currency"])

    fulfilled = _call(client, "POST", f"/orders/{order['id']}/fulfill", headers=headers)
    logger.info("order %s is %s", fulfilled["id"], fulfilled["status"])

    shipment = _call(
        client, "POST", "/shipments", json={"order_id": order["id"], "tracking_number": "TRK123456"}, headers=headers
    )
    logger.info("created shipment %s for order %s", shipment["id"], shipment["order_id"])

    restocked = _call(client, "PUT", f"/items/{item['id']}", json=LAPTOP, headers=headers)
    logger.info(
        "restocked %s: quantity %s, unit price %s %s",
        restocked["name"],
        restocked["quantity"],
        restocked["unit_price"]["display_value"],
        restocked["unit_price"]["currency"],
    )

    listing = _call(
        client, "GET", "/items", params={"name_filter": "Laptop", "page": 1, "page_size": 10}, headers=headers
    )
    logger.info("listed %d items", len(listing["items"]))
    for entry in listing["items"]:
        logger.info("  %s", entry)

    return {
        "item": item,
        "order": order,
        "fulfilled": fulfilled,
        "shipment": shipment,
        "restocked": restocked,
        "listing": listing,
    }


def main(argv: list[str] | None = None, client: httpx.Client | None = None) -> int:
    parser = argparse.ArgumentParser(prog="supplychain-demo")
    parser.add_argument("--connect", default="http://localhost:8089", help="API base URL")
    parser.add_argument("--api-key", default="admin-key-456")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    own_client = client is None
    client = client or httpx.Client(base_url=args.connect, timeout=30.0)
    try:
        run_flow(client, args.api_key)
    except (DemoError, httpx.HTTPError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        if own_client:
            client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
