"""
Application services for order processing and catalog management.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from shop.domain.catalog import Category, Customer, Product
from shop.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from shop.domain.order import Order, OrderItem, OrderStatus
from shop.infra.repositories import (
    CategoryRepository,
    CustomerRepository,
    OrderRepository,
    ProductRepository,
)
import logging


logger = logging.getLogger(__name__)


class OrderService:
    """Order processing and inventory reconciliation."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        product_repo: ProductRepository | None = None,
        customer_repo: CustomerRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.product_repo = product_repo or ProductRepository()
        self.customer_repo = customer_repo or CustomerRepository()

    @transaction.atomic
    def create_order(self, customer_id: int, items: list[dict]) -> Order:
        """
        Create a PENDING order and debit stock for every line.

        All lines are validated before anything is written; the order is
        persisted before stock is debited. Runs in one transaction, so a
        failed debit also discards the order row.
        """
        if not items:
            raise ValidationError("order must have at least one item")

        if not self.customer_repo.exists(customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")

        lines = []
        for requested in items:
            product_id = requested["product_id"]
            quantity = requested["quantity"]
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError("quantity must be a positive integer")

            product = self.product_repo.get(product_id, for_update=True)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")
            if product.stock < quantity:
                raise InsufficientStockError(product.id, quantity, product.name)

            lines.append(OrderItem(
                product_id=product.id,
                quantity=quantity,
                unit_price=product.price,
            ))

        order = Order.place(customer_id=customer_id, items=lines, placed_at=timezone.now())
        order = self.order_repo.save(order)

        for item in order.items:
            if item.moves_stock:
                self.product_repo.debit_stock(item.product_id, item.quantity)

        logger.info(
            "order_created",
            extra={
                "order_id": order.id,
                "operation": "CREATE_ORDER",
                "status": order.status.value,
            },
        )
        return order

    def get_order(self, order_id: int) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def list_orders(
        self,
        customer_id: int | None = None,
        status: OrderStatus | str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[Order]:
        """List orders newest first with optional filters."""
        if date_from and date_to and date_from > date_to:
            raise ValidationError("start date cannot be after end date")
        if status is not None:
            status = OrderStatus.parse(status)
        return self.order_repo.list(
            customer_id=customer_id,
            status=status,
            date_from=date_from,
            date_to=date_to,
        )

    def get_orders_by_customer(self, customer_id: int) -> list[Order]:
        if not self.customer_repo.exists(customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")
        return self.order_repo.list(customer_id=customer_id)

    def get_pending_orders(self) -> list[Order]:
        return self.order_repo.list(status=OrderStatus.PENDING)

    def calculate_total_revenue(self) -> Decimal:
        """Sum of totals over delivered orders."""
        return self.order_repo.total_revenue()

    def count_by_status(self) -> dict[OrderStatus, int]:
        return self.order_repo.count_by_status()

    @transaction.atomic
    def update_order_status(self, order_id: int, new_status: OrderStatus | str) -> Order:
        """Apply a status transition; cancelling returns stock."""
        new_status = OrderStatus.parse(new_status)
        order = self.order_repo.get_by_id(order_id, for_update=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        previous = order.status
        order.transition_to(new_status, at=timezone.now())

        if new_status == OrderStatus.CANCELLED:
            self._restock(order)

        order = self.order_repo.set_status(order.id, order.status, order.updated_at)
        logger.info(
            "order_status_changed",
            extra={
                "order_id": order.id,
                "operation": "UPDATE_ORDER_STATUS",
                "status": f"{previous.value}->{order.status.value}",
            },
        )
        return order

    @transaction.atomic
    def delete_order(self, order_id: int) -> None:
        """Delete an order, crediting back stock it still holds."""
        order = self.order_repo.get_by_id(order_id, for_update=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        order.ensure_deletable()
        # Cancelled orders already returned their stock.
        if order.stock_reserved:
            self._restock(order)

        self.order_repo.delete(order.id)
        logger.info(
            "order_deleted",
            extra={"order_id": order_id, "operation": "DELETE_ORDER"},
        )

    def _restock(self, order: Order) -> None:
        for item in order.items:
            if item.moves_stock:
                self.product_repo.credit_stock(item.product_id, item.quantity)


class CustomerService:
    """Service for customer operations."""

    def __init__(self, customer_repo: CustomerRepository | None = None):
        self.customer_repo = customer_repo or CustomerRepository()

    def list_customers(self) -> list[Customer]:
        return self.customer_repo.list()

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.customer_repo.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def get_customer_by_email(self, email: str) -> Customer:
        customer = self.customer_repo.get_by_email(email)
        if customer is None:
            raise NotFoundError(f"Customer with email {email} not found")
        return customer

    def create_customer(self, data: dict) -> Customer:
        customer = Customer(
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone") or "",
            address=data.get("address") or "",
        )
        customer = self.customer_repo.save(customer)
        logger.info("customer_created", extra={"operation": "CREATE_CUSTOMER"})
        return customer

    def update_customer(self, customer_id: int, data: dict) -> Customer:
        """Merge ``data`` into the stored customer."""
        existing = self.get_customer(customer_id)
        changes = {k: v for k, v in data.items() if k in ("name", "email", "phone", "address")}
        return self.customer_repo.save(dataclasses.replace(existing, **changes))

    def delete_customer(self, customer_id: int) -> None:
        self.customer_repo.delete(customer_id)


class CategoryService:
    """Service for category operations."""

    def __init__(self, category_repo: CategoryRepository | None = None):
        self.category_repo = category_repo or CategoryRepository()

    def list_categories(self) -> list[Category]:
        return self.category_repo.list()

    def get_category(self, category_id: int) -> Category:
        category = self.category_repo.get_by_id(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def create_category(self, data: dict) -> Category:
        category = Category(
            name=data.get("name", ""),
            description=data.get("description") or "",
        )
        return self.category_repo.save(category)

    def update_category(self, category_id: int, data: dict) -> Category:
        existing = self.get_category(category_id)
        changes = {k: v for k, v in data.items() if k in ("name", "description")}
        return self.category_repo.save(dataclasses.replace(existing, **changes))

    def delete_category(self, category_id: int) -> None:
        self.category_repo.delete(category_id)


class ProductService:
    """Service for product operations."""

    def __init__(
        self,
        product_repo: ProductRepository | None = None,
        category_repo: CategoryRepository | None = None,
    ):
        self.product_repo = product_repo or ProductRepository()
        self.category_repo = category_repo or CategoryRepository()

    def list_products(self, category_id: int | None = None) -> list[Product]:
        if category_id is not None and self.category_repo.get_by_id(category_id) is None:
            raise NotFoundError(f"Category {category_id} not found")
        return self.product_repo.list(category_id=category_id)

    def get_product(self, product_id: int) -> Product:
        product = self.product_repo.get(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def create_product(self, data: dict) -> Product:
        product = Product(
            name=data.get("name", ""),
            description=data.get("description") or "",
            price=data.get("price"),
            stock=data.get("stock", 0),
            categories=self.category_repo.get_many(data.get("category_ids") or []),
        )
        product = self.product_repo.save(product)
        logger.info(
            "product_created",
            extra={"product_id": product.id, "operation": "CREATE_PRODUCT"},
        )
        return product

    def update_product(self, product_id: int, data: dict) -> Product:
        """Merge ``data`` into the stored product."""
        existing = self.get_product(product_id)
        changes = {
            k: v for k, v in data.items()
            if k in ("name", "description", "price", "stock")
        }
        if "category_ids" in data:
            changes["categories"] = self.category_repo.get_many(data["category_ids"] or [])
        return self.product_repo.save(dataclasses.replace(existing, **changes))

    def delete_product(self, product_id: int) -> None:
        self.product_repo.delete(product_id)
