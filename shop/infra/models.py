from __future__ import annotations

from django.db import models
from django.utils import timezone


__all__ = [
    "TimeStampedModel",
    "CustomerORM",
    "CategoryORM",
    "ProductORM",
    "OrderORM",
    "OrderItemORM",
    "IdempotencyKey",
]


ORDER_STATUS_CHOICES = (
    ("PENDING", "Pending"),
    ("CONFIRMED", "Confirmed"),
    ("PROCESSING", "Processing"),
    ("SHIPPED", "Shipped"),
    ("DELIVERED", "Delivered"),
    ("CANCELLED", "Cancelled"),
)

ORDER_ITEM_TYPE_CHOICES = (
    ("PRODUCT", "Product"),
    ("DISCOUNT", "Discount"),
)

OPERATION_TYPE = (
    ("CREATE_ORDER", "Create order"),
)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CustomerORM(TimeStampedModel):
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, unique=True)
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "customers"
        ordering = ["id"]


class CategoryORM(TimeStampedModel):
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True, default="")

    class Meta:
        db_table = "categories"
        ordering = ["name"]


class ProductORM(TimeStampedModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    stock = models.IntegerField(default=0)
    categories = models.ManyToManyField(
        CategoryORM,
        related_name="products",
        db_table="product_categories",
        blank=True,
    )

    class Meta:
        db_table = "products"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(stock__gte=0), name="product_stock_non_negative"),
            models.CheckConstraint(condition=models.Q(price__gte=0), name="product_price_non_negative"),
        ]


class OrderORM(models.Model):
    customer = models.ForeignKey(
        CustomerORM,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    order_date = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default="PENDING")
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "orders"
        indexes = [
            models.Index(fields=("customer", "status"), name="orders_customer_status_idx"),
            models.Index(fields=("status",), name="orders_status_idx"),
            models.Index(fields=("order_date",), name="orders_order_date_idx"),
        ]


class OrderItemORM(models.Model):
    order = models.ForeignKey(
        OrderORM,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    type = models.CharField(max_length=20, choices=ORDER_ITEM_TYPE_CHOICES, default="PRODUCT")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "order_items"
        ordering = ["id"]


class IdempotencyKey(TimeStampedModel):
    key = models.CharField(max_length=255)
    operation = models.CharField(max_length=50, choices=OPERATION_TYPE)
    request_hash = models.CharField(max_length=64)
    response_status = models.PositiveSmallIntegerField()
    response_payload = models.JSONField()

    class Meta:
        db_table = "idempotency_keys"
        unique_together = [("key", "operation")]
        indexes = [
            models.Index(fields=("request_hash",), name="idempotency_hash_idx"),
        ]
