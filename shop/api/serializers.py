"""
JSON marshalling for API requests and responses.
"""
from __future__ import annotations

import json
from datetime import datetime, time
from decimal import Decimal

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from shop.domain.catalog import Category, Customer, Product
from shop.domain.errors import ValidationError
from shop.domain.money import CENT
from shop.domain.order import Order, OrderItem


def format_money(value: Decimal) -> str:
    return str(value.quantize(CENT))


def format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def order_item_to_dict(item: OrderItem) -> dict:
    return {
        "id": item.id,
        "orderId": item.order_id,
        "productId": item.product_id,
        "quantity": item.quantity,
        "unitPrice": format_money(item.unit_price),
        "subtotal": format_money(item.subtotal),
        "type": item.type.value,
    }


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "customerId": order.customer_id,
        "orderDate": format_datetime(order.order_date),
        "status": order.status.value,
        "totalAmount": format_money(order.total_amount),
        "items": [order_item_to_dict(item) for item in order.items],
        "updatedAt": format_datetime(order.updated_at),
    }


def category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
    }


def product_to_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": format_money(product.price),
        "stock": product.stock,
        "categories": [category_to_dict(c) for c in product.categories],
    }


def customer_to_dict(customer: Customer) -> dict:
    return {
        "id": customer.id,
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "address": customer.address,
    }


def parse_json_body(request) -> dict:
    """Decode a JSON object body; numbers with fractions become Decimal."""
    try:
        data = json.loads(request.body or b"{}", parse_float=Decimal)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def parse_id(value, field: str) -> int:
    """Parse a positive integer identifier."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, (float, Decimal)) and parsed != value:
        raise ValidationError(f"{field} must be a positive integer")
    if parsed <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return parsed


def parse_order_draft(data: dict) -> tuple[int, list[dict]]:
    """Validate ``{customerId, items:[{productId, quantity}]}``."""
    customer_id = parse_id(data.get("customerId"), "customerId")
    items = data.get("items")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("each item must be an object")
        lines.append({
            "product_id": parse_id(item.get("productId"), "productId"),
            "quantity": parse_id(item.get("quantity"), "quantity"),
        })
    return customer_id, lines


def parse_product_payload(data: dict) -> dict:
    payload = {}
    for field in ("name", "description", "price"):
        if field in data:
            payload[field] = data[field]
    if "stock" in data:
        stock = data["stock"]
        if isinstance(stock, bool) or not isinstance(stock, int):
            raise ValidationError("stock must be an integer")
        payload["stock"] = stock
    if "categoryIds" in data:
        category_ids = data["categoryIds"] or []
        if not isinstance(category_ids, list):
            raise ValidationError("categoryIds must be a list")
        payload["category_ids"] = [parse_id(cid, "categoryIds") for cid in category_ids]
    return payload


def parse_date_param(value: str | None, field: str, end_of_day: bool = False) -> datetime | None:
    """Parse an ISO date or datetime query parameter."""
    if not value:
        return None
    try:
        parsed = parse_datetime(value)
        day = parse_date(value) if parsed is None else None
    except ValueError:
        raise ValidationError(f"{field} must be a valid ISO date")
    if parsed is None:
        if day is None:
            raise ValidationError(f"{field} must be an ISO date")
        parsed = datetime.combine(day, time.max if end_of_day else time.min)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed
