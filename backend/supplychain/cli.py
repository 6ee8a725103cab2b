"""Command-line client for the back-office API.

    supplychain-cli --api-key admin-key-456 create-item --name Laptop --quantity 10 --price 1000.00
"""

from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal

import httpx


def to_minor_units(price: str) -> int:
    return int((Decimal(price) * 100).to_integral_value())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="supplychain-cli")
    parser.add_argument("--connect", default="http://localhost:8089", help="API base URL")
    parser.add_argument("--api-key", required=True, help="credential sent with every call")
    parser.add_argument("--timeout", type=float, default=None, help="per-call deadline in seconds")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("create-item", "update-item"):
        p = sub.add_parser(name)
        if name == "update-item":
            p.add_argument("--id", required=True)
        p.add_argument("--name", required=True)
        p.add_argument("--description", default="")
        p.add_argument("--quantity", type=int, required=True)
        p.add_argument("--price", required=True, help="unit price in major units, e.g. 9.99")
        p.add_argument("--currency", default="USD")

    p = sub.add_parser("delete-item")
    p.add_argument("--id", required=True)

    p = sub.add_parser("list-items")
    p.add_argument("--name-filter", default="")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=10)

    p = sub.add_parser("create-order")
    p.add_argument("--customer", required=True)
    p.add_argument("--line", action="append", required=True, metavar="ITEM_ID:QTY")

    for name in ("fulfill-order", "get-order"):
        p = sub.add_parser(name)
        p.add_argument("--order", required=True)

    p = sub.add_parser("create-shipment")
    p.add_argument("--order", required=True)
    p.add_argument("--tracking", required=True)

    p = sub.add_parser("update-shipment")
    p.add_argument("--id", required=True)
    p.add_argument("--status", required=True)
    p.add_argument("--tracking", default="")

    p = sub.add_parser("list-shipments")
    p.add_argument("--order", default="")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=10)

    p = sub.add_parser("audit")
    p.add_argument("--audit-key", default="")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=10)
    return parser


def parse_line(raw: str) -> dict:
    item_id, sep, qty = raw.rpartition(":")
    if not sep or not item_id:
        raise argparse.ArgumentTypeError(f"order line must look like ITEM_ID:QTY, got {raw!r}")
    return {"item_id": item_id, "quantity": int(qty)}


def build_request(args: argparse.Namespace) -> tuple[str, str, dict | None, dict | None]:
    """Map parsed arguments to (http method, path, query params, json body)."""
    cmd = args.command
    if cmd in ("create-item", "update-item"):
        body = {
            "name": args.name,
            "description": args.description,
            "quantity": args.quantity,
            "unit_price": {"value": to_minor_units(args.price), "currency": args.currency},
        }
        if cmd == "create-item":
            return "POST", "/items", None, body
        return "PUT", f"/items/{args.id}", None, body
    if cmd == "delete-item":
        return "DELETE", f"/items/{args.id}", None, None
    if cmd == "list-items":
        return "GET", "/items", {"name_filter": args.name_filter, "page": args.page, "page_size": args.page_size}, None
    if cmd == "create-order":
        return "POST", "/orders", None, {"customer_id": args.customer, "lines": [parse_line(raw) for raw in args.line]}
    if cmd == "fulfill-order":
        return "POST", f"/orders/{args.order}/fulfill", None, None
    if cmd == "get-order":
        return "GET", f"/orders/{args.order}", None, None
    if cmd == "create-shipment":
        return "POST", "/shipments", None, {"order_id": args.order, "tracking_number": args.tracking}
    if cmd == "update-shipment":
        return "PUT", f"/shipments/{args.id}", None, {"status": args.status, "tracking_number": args.tracking}
    if cmd == "list-shipments":
        return "GET", "/shipments", {"order_id": args.order, "page": args.page, "page_size": args.page_size}, None
    if cmd == "audit":
        return "GET", "/audit_logs", {"api_key": args.audit_key, "page": args.page, "page_size": args.page_size}, None
    raise ValueError(f"unknown command {cmd}")


def main(argv: list[str] | None = None, client: httpx.Client | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        method, path, params, body = build_request(args)
    except (argparse.ArgumentTypeError, ValueError) as exc:
        parser.error(str(exc))

    headers = {"api-key": args.api_key}
    if args.timeout:
        headers["X-Request-Timeout"] = str(args.timeout)

    own_client = client is None
    client = client or httpx.Client(base_url=args.connect, timeout=args.timeout or 30.0)
    try:
        resp = client.request(method, path, params=params, json=body, headers=headers)
    except httpx.HTTPError as exc:
        print(f"request failed: {exc}", file=sys.stderr)
        return 2
    finally:
        if own_client:
            client.close()

    if resp.is_error:
        print(f"{args.command} failed ({resp.status_code}): {resp.text}", file=sys.stderr)
        return 1
    print(json.dumps(resp.json(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
