#!/usr/bin/env python3
"""
Smoke test for a running Storefront API.

Exercises the order lifecycle over HTTP:
- create customer, category and product
- create order (with Idempotency-Key replay)
- status transitions, including a rejected one
- delete order and check that stock is restored

Usage:
    python smoke_api.py --base-url http://localhost:8000
"""
import argparse
import os
import sys
from uuid import uuid4

import requests


API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000")


class StorefrontClient:
    """Thin client for the Storefront REST API."""

    def __init__(self, base_url: str = API_BASE_URL):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
        })

    def request(
        self,
        method: str,
        path: str,
        payload: dict = None,
        idempotency_key: str = None,
    ) -> requests.Response:
        headers = {"X-Request-ID": str(uuid4())}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return self.session.request(
            method,
            f"{self.base_url}{path}",
            json=payload,
            headers=headers,
            timeout=10,
        )


def print_section(title: str):
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def print_result(success: bool, message: str):
    status = "✓" if success else "✗"
    print(f"{status} {message}")


def expect(response: requests.Response, status: int, message: str) -> dict:
    ok = response.status_code == status
    print_result(ok, f"{message} (HTTP {response.status_code})")
    if not ok:
        print_result(False, f"Response: {response.text}")
        raise SystemExit(1)
    return response.json() if response.content else {}


def run(client: StorefrontClient) -> None:
    suffix = uuid4().hex[:8]

    print_section("Health")
    expect(client.request("GET", "/health"), 200, "API is healthy")

    print_section("Catalog")
    customer = expect(
        client.request("POST", "/api/customers", {
            "name": "Smoke Customer",
            "email": f"smoke-{suffix}@example.com",
        }),
        201,
        "Customer created",
    )
    category = expect(
        client.request("POST", "/api/categories", {"name": f"smoke-{suffix}"}),
        201,
        "Category created",
    )
    product = expect(
        client.request("POST", "/api/products", {
            "name": f"Widget {suffix}",
            "price": "5.00",
            "stock": 10,
            "categoryIds": [category["id"]],
        }),
        201,
        "Product created with stock 10",
    )

    print_section("Order lifecycle")
    draft = {
        "customerId": customer["id"],
        "items": [{"productId": product["id"], "quantity": 3}],
    }
    key = str(uuid4())
    order = expect(client.request("POST", "/api/orders", draft, idempotency_key=key), 201, "Order created")
    print_result(order["totalAmount"] == "15.00", f"Total amount: {order['totalAmount']}")

    replay = expect(client.request("POST", "/api/orders", draft, idempotency_key=key), 201, "Replay returns stored order")
    print_result(replay["id"] == order["id"], "Replay did not create a second order")

    stock = expect(client.request("GET", f"/api/products/{product['id']}"), 200, "Product fetched")["stock"]
    print_result(stock == 7, f"Stock after order: {stock}")

    expect(
        client.request("PUT", f"/api/orders/{order['id']}", {"status": "CONFIRMED"}),
        200,
        "PENDING -> CONFIRMED accepted",
    )
    expect(
        client.request("PUT", f"/api/orders/{order['id']}", {"status": "DELIVERED"}),
        400,
        "CONFIRMED -> DELIVERED rejected",
    )

    expect(client.request("DELETE", f"/api/orders/{order['id']}"), 204, "Order deleted")
    stock = expect(client.request("GET", f"/api/products/{product['id']}"), 200, "Product fetched")["stock"]
    print_result(stock == 10, f"Stock after delete: {stock}")


def main():
    parser = argparse.ArgumentParser(description="Smoke test the Storefront API")
    parser.add_argument("--base-url", default=API_BASE_URL)
    args = parser.parse_args()

    try:
        run(StorefrontClient(args.base_url))
    except requests.RequestException as e:
        print_result(False, f"Request failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
