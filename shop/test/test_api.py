"""
Integration tests for the REST API.
"""
import json
from decimal import Decimal
from unittest.mock import patch

from django.db import OperationalError
from django.test import TestCase

from shop.domain.catalog import Customer, Product
from shop.infra.models import IdempotencyKey, OrderORM, ProductORM
from shop.infra.repositories import CustomerRepository, IdempotencyRepository, ProductRepository


class APITestCase(TestCase):
    """Helpers for JSON requests."""

    def post_json(self, path, payload, **extra):
        return self.client.post(path, data=json.dumps(payload), content_type="application/json", **extra)

    def put_json(self, path, payload):
        return self.client.put(path, data=json.dumps(payload), content_type="application/json")

    def assertError(self, response, status, code):
        self.assertEqual(response.status_code, status)
        self.assertEqual(response.json()["error"]["code"], code)


class OrderAPITest(APITestCase):
    """Integration tests for order endpoints."""

    def setUp(self):
        """Set up test data."""
        self.customer = CustomerRepository().save(
            Customer(name="Test Customer", email="test@example.com")
        )
        self.product_repo = ProductRepository()
        self.product = self.product_repo.save(
            Product(name="Widget", price=Decimal("5.00"), stock=10)
        )

    def draft(self, quantity=3):
        return {
            "customerId": self.customer.id,
            "items": [{"productId": self.product.id, "quantity": quantity}],
        }

    def create_order(self, quantity=3):
        response = self.post_json("/api/orders", self.draft(quantity))
        self.assertEqual(response.status_code, 201)
        return response.json()

    def stock(self):
        return self.product_repo.get(self.product.id).stock

    def test_create_order(self):
        """Test POST /api/orders returns the persisted order."""
        response = self.post_json("/api/orders", self.draft())

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["customerId"], self.customer.id)
        self.assertEqual(data["status"], "PENDING")
        self.assertEqual(data["totalAmount"], "15.00")
        self.assertIsNotNone(data["orderDate"])
        self.assertIsNotNone(data["updatedAt"])
        self.assertEqual(len(data["items"]), 1)
        item = data["items"][0]
        self.assertEqual(item["orderId"], data["id"])
        self.assertEqual(item["productId"], self.product.id)
        self.assertEqual(item["quantity"], 3)
        self.assertEqual(item["unitPrice"], "5.00")
        self.assertEqual(item["subtotal"], "15.00")
        self.assertEqual(self.stock(), 7)
        self.assertIn("X-Request-ID", response.headers)

    def test_create_order_insufficient_stock(self):
        response = self.post_json("/api/orders", self.draft(quantity=11))

        self.assertError(response, 400, "INSUFFICIENT_STOCK")
        self.assertEqual(OrderORM.objects.count(), 0)
        self.assertEqual(self.stock(), 10)

    def test_create_order_without_items(self):
        response = self.post_json("/api/orders", {"customerId": self.customer.id, "items": []})
        self.assertError(response, 400, "VALIDATION_ERROR")

    def test_create_order_with_bad_quantity(self):
        response = self.post_json("/api/orders", self.draft(quantity=0))
        self.assertError(response, 400, "VALIDATION_ERROR")

    def test_create_order_with_invalid_json(self):
        response = self.client.post("/api/orders", data="{not json", content_type="application/json")
        self.assertError(response, 400, "VALIDATION_ERROR")

    def test_create_order_unknown_product(self):
        response = self.post_json(
            "/api/orders",
            {"customerId": self.customer.id, "items": [{"productId": 99999, "quantity": 1}]},
        )
        self.assertError(response, 404, "NOT_FOUND")

    def test_create_order_unknown_customer(self):
        payload = self.draft()
        payload["customerId"] = 99999
        response = self.post_json("/api/orders", payload)
        self.assertError(response, 404, "NOT_FOUND")
        self.assertEqual(self.stock(), 10)

    def test_idempotent_create_order(self):
        """Test that a reused Idempotency-Key replays the first response."""
        headers = {"Idempotency-Key": "order-key-1"}
        first = self.post_json("/api/orders", self.draft(), headers=headers)
        second = self.post_json("/api/orders", self.draft(), headers=headers)

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 201)
        self.assertEqual(first.json(), second.json())
        self.assertEqual(OrderORM.objects.count(), 1)
        self.assertEqual(IdempotencyKey.objects.count(), 1)
        self.assertEqual(self.stock(), 7)

    def test_idempotency_key_reused_with_different_request(self):
        headers = {"Idempotency-Key": "order-key-2"}
        self.post_json("/api/orders", self.draft(quantity=1), headers=headers)
        response = self.post_json("/api/orders", self.draft(quantity=2), headers=headers)

        self.assertError(response, 409, "DUPLICATE_REQUEST")
        self.assertEqual(OrderORM.objects.count(), 1)
        self.assertEqual(self.stock(), 9)

    def test_failed_request_does_not_store_idempotency_key(self):
        headers = {"Idempotency-Key": "order-key-3"}
        response = self.post_json("/api/orders", self.draft(quantity=11), headers=headers)

        self.assertError(response, 400, "INSUFFICIENT_STOCK")
        self.assertFalse(IdempotencyKey.objects.exists())

    def test_concurrent_claim_of_idempotency_key(self):
        """Test a key stored between lookup and save rolls back the second order."""
        headers = {"Idempotency-Key": "order-key-4"}
        self.post_json("/api/orders", self.draft(), headers=headers)

        with patch.object(IdempotencyRepository, "get", return_value=None):
            response = self.post_json("/api/orders", self.draft(), headers=headers)

        self.assertError(response, 409, "DUPLICATE_REQUEST")
        self.assertEqual(OrderORM.objects.count(), 1)
        self.assertEqual(IdempotencyKey.objects.count(), 1)
        self.assertEqual(self.stock(), 7)

    def test_create_order_total_above_money_limit(self):
        expensive = self.product_repo.save(
            Product(name="Yacht", price=Decimal("9999999999.00"), stock=5)
        )
        response = self.post_json(
            "/api/orders",
            {"customerId": self.customer.id, "items": [{"productId": expensive.id, "quantity": 2}]},
        )

        self.assertError(response, 400, "VALIDATION_ERROR")
        self.assertEqual(OrderORM.objects.count(), 0)
        self.assertEqual(self.product_repo.get(expensive.id).stock, 5)

    def test_get_order(self):
        order = self.create_order()
        response = self.client.get(f"/api/orders/{order['id']}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), order)

    def test_get_unknown_order(self):
        self.assertError(self.client.get("/api/orders/99999"), 404, "NOT_FOUND")

    def test_list_orders_with_filters(self):
        pending = self.create_order(quantity=1)
        confirmed = self.create_order(quantity=1)
        self.put_json(f"/api/orders/{confirmed['id']}", {"status": "CONFIRMED"})

        response = self.client.get("/api/orders", {"status": "pending"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([o["id"] for o in response.json()], [pending["id"]])

        response = self.client.get("/api/orders", {"customerId": self.customer.id})
        self.assertEqual(len(response.json()), 2)

    def test_list_orders_with_bad_filters(self):
        self.assertError(self.client.get("/api/orders", {"status": "LOST"}), 400, "VALIDATION_ERROR")
        self.assertError(self.client.get("/api/orders", {"from": "yesterday"}), 400, "VALIDATION_ERROR")
        self.assertError(
            self.client.get("/api/orders", {"from": "2024-02-01", "to": "2024-01-01"}),
            400,
            "VALIDATION_ERROR",
        )

    def test_update_order_status(self):
        order = self.create_order()
        response = self.put_json(f"/api/orders/{order['id']}", {"status": "CONFIRMED"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "CONFIRMED")

    def test_update_order_status_illegal_transition(self):
        order = self.create_order()
        self.put_json(f"/api/orders/{order['id']}", {"status": "CONFIRMED"})
        response = self.put_json(f"/api/orders/{order['id']}", {"status": "DELIVERED"})

        self.assertError(response, 400, "INVALID_STATE")
        self.assertEqual(self.client.get(f"/api/orders/{order['id']}").json()["status"], "CONFIRMED")

    def test_update_order_status_requires_status(self):
        order = self.create_order()
        response = self.put_json(f"/api/orders/{order['id']}", {})
        self.assertError(response, 400, "VALIDATION_ERROR")

    def test_cancel_order_restores_stock(self):
        order = self.create_order()
        response = self.put_json(f"/api/orders/{order['id']}", {"status": "cancelled"})

        self.assertEqual(response.json()["status"], "CANCELLED")
        self.assertEqual(self.stock(), 10)

    def test_delete_order(self):
        """Test create, confirm, delete returns stock to its starting level."""
        order = self.create_order()
        self.assertEqual(self.stock(), 7)
        self.put_json(f"/api/orders/{order['id']}", {"status": "CONFIRMED"})

        response = self.client.delete(f"/api/orders/{order['id']}")

        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.stock(), 10)
        self.assertError(self.client.get(f"/api/orders/{order['id']}"), 404, "NOT_FOUND")

    def test_delete_delivered_order(self):
        order = self.create_order()
        for status in ("CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED"):
            self.assertEqual(self.put_json(f"/api/orders/{order['id']}", {"status": status}).status_code, 200)

        self.assertError(self.client.delete(f"/api/orders/{order['id']}"), 400, "INVALID_STATE")
        self.assertEqual(self.stock(), 7)

    def test_customer_orders(self):
        order = self.create_order()
        response = self.client.get(f"/api/customers/{self.customer.id}/orders")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([o["id"] for o in response.json()], [order["id"]])
        self.assertError(self.client.get("/api/customers/99999/orders"), 404, "NOT_FOUND")

    def test_method_not_allowed(self):
        self.assertEqual(self.client.patch("/api/orders").status_code, 405)


class CatalogAPITest(APITestCase):
    """Integration tests for customer, category and product endpoints."""

    def test_customer_crud(self):
        response = self.post_json("/api/customers", {"name": "Ana", "email": "ana@example.com", "phone": "555-0100"})
        self.assertEqual(response.status_code, 201)
        customer = response.json()

        self.assertEqual(self.client.get(f"/api/customers/{customer['id']}").json(), customer)
        self.assertEqual(self.client.get("/api/customers", {"email": "ANA@example.com"}).json()["id"], customer["id"])
        self.assertEqual(len(self.client.get("/api/customers").json()), 1)

        response = self.put_json(f"/api/customers/{customer['id']}", {"address": "1 Main St"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["address"], "1 Main St")

        self.assertEqual(self.client.delete(f"/api/customers/{customer['id']}").status_code, 204)
        self.assertError(self.client.get(f"/api/customers/{customer['id']}"), 404, "NOT_FOUND")

    def test_customer_validation_and_conflicts(self):
        self.assertError(self.post_json("/api/customers", {"name": "Ana"}), 400, "VALIDATION_ERROR")
        self.post_json("/api/customers", {"name": "Ana", "email": "ana@example.com"})
        self.assertError(
            self.post_json("/api/customers", {"name": "Ana 2", "email": "ana@example.com"}),
            409,
            "CONFLICT",
        )
        self.assertError(self.client.get("/api/customers", {"email": "nobody@example.com"}), 404, "NOT_FOUND")

    def test_category_crud(self):
        response = self.post_json("/api/categories", {"name": "Tools", "description": "Hand tools"})
        self.assertEqual(response.status_code, 201)
        category = response.json()

        response = self.put_json(f"/api/categories/{category['id']}", {"description": "All tools"})
        self.assertEqual(response.json()["description"], "All tools")
        self.assertEqual(response.json()["name"], "Tools")

        self.assertEqual(self.client.delete(f"/api/categories/{category['id']}").status_code, 204)
        self.assertEqual(self.client.get("/api/categories").json(), [])

    def test_product_crud(self):
        category = self.post_json("/api/categories", {"name": "Tools"}).json()
        response = self.post_json("/api/products", {
            "name": "Hammer",
            "price": 12.5,
            "stock": 4,
            "categoryIds": [category["id"]],
        })
        self.assertEqual(response.status_code, 201)
        product = response.json()
        self.assertEqual(product["price"], "12.50")
        self.assertEqual(product["stock"], 4)
        self.assertEqual([c["id"] for c in product["categories"]], [category["id"]])

        listed = self.client.get("/api/products", {"categoryId": category["id"]}).json()
        self.assertEqual([p["id"] for p in listed], [product["id"]])

        response = self.put_json(f"/api/products/{product['id']}", {"stock": 9})
        self.assertEqual(response.json()["stock"], 9)
        self.assertEqual(response.json()["price"], "12.50")

        self.assertEqual(self.client.delete(f"/api/products/{product['id']}").status_code, 204)
        self.assertError(self.client.get(f"/api/products/{product['id']}"), 404, "NOT_FOUND")

    def test_product_price_above_money_limit(self):
        response = self.post_json("/api/products", {"name": "Hammer", "price": 10000000000000})

        self.assertError(response, 400, "VALIDATION_ERROR")
        self.assertFalse(ProductORM.objects.exists())

    def test_store_failure_is_reported_without_driver_details(self):
        product = self.post_json("/api/products", {"name": "Hammer", "price": 1}).json()

        with patch.object(ProductORM.objects, "all", side_effect=OperationalError("database is locked at /var/db")):
            response = self.client.get(f"/api/products/{product['id']}")

        self.assertError(response, 500, "STORE_ERROR")
        self.assertEqual(response.json()["error"]["message"], "A storage error occurred")
        self.assertNotIn(b"database is locked", response.content)

    def test_product_validation(self):
        self.assertError(self.post_json("/api/products", {"name": "Hammer", "price": -1}), 400, "VALIDATION_ERROR")
        self.assertError(
            self.post_json("/api/products", {"name": "Hammer", "price": 1, "stock": -2}),
            400,
            "VALIDATION_ERROR",
        )
        self.assertError(
            self.post_json("/api/products", {"name": "Hammer", "price": 1, "categoryIds": [99999]}),
            404,
            "NOT_FOUND",
        )


class ServiceEndpointsTest(TestCase):
    """Tests for root, health and fallback routes."""

    def test_index(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Storefront API"})

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_unknown_route(self):
        response = self.client.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")
