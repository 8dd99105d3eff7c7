"""
Domain model for Order aggregate.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from shop.domain.errors import InvalidStateError, ValidationError
from shop.domain.money import exceeds_money_limit


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: "OrderStatus | str | None") -> "OrderStatus":
        """Parse status case-insensitively."""
        if isinstance(value, OrderStatus):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("status is required")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValidationError(f"invalid order status: {value}")

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class OrderItemType(str, Enum):
    """Order line type."""
    PRODUCT = "PRODUCT"
    DISCOUNT = "DISCOUNT"


class OrderItem:
    """Order line item value object."""

    def __init__(
        self,
        product_id: int,
        quantity: int,
        unit_price: Decimal,
        type: OrderItemType = OrderItemType.PRODUCT,
        subtotal: Decimal | None = None,
        id: int | None = None,
        order_id: int | None = None,
    ):
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer")
        type = OrderItemType(type)
        if type == OrderItemType.PRODUCT and unit_price < 0:
            raise ValidationError("unit price must be non-negative")
        if type == OrderItemType.DISCOUNT and unit_price > 0:
            raise ValidationError("discount lines must carry a negative unit price")

        self.id = id
        self.order_id = order_id
        self.product_id = product_id
        self.quantity = quantity
        self.unit_price = unit_price
        self.type = type
        # Stored once; loading from the store keeps the persisted value.
        self.subtotal = subtotal if subtotal is not None else unit_price * quantity

    @property
    def moves_stock(self) -> bool:
        return self.type == OrderItemType.PRODUCT


class Order:
    """Order aggregate root."""

    def __init__(
        self,
        id: int | None = None,
        customer_id: int | None = None,
        items: list[OrderItem] | None = None,
        status: OrderStatus = OrderStatus.PENDING,
        total_amount: Decimal | None = None,
        order_date: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.customer_id = customer_id
        self._items = items or []
        self._status = OrderStatus(status)
        self._total_amount = (
            total_amount if total_amount is not None else self.calculate_total()
        )
        self.order_date = order_date
        self.updated_at = updated_at

    @classmethod
    def place(cls, customer_id: int, items: list[OrderItem], placed_at: datetime) -> "Order":
        """Assemble a new PENDING order from priced lines."""
        if not items:
            raise ValidationError("order must have at least one item")

        order = cls(
            customer_id=customer_id,
            items=items,
            status=OrderStatus.PENDING,
            order_date=placed_at,
            updated_at=placed_at,
        )
        if order.total_amount < 0:
            raise ValidationError("order total cannot be negative")
        amounts = [item.subtotal for item in items] + [order.total_amount]
        if any(exceeds_money_limit(amount) for amount in amounts):
            raise ValidationError("order amount must be below 10000000000.00")
        return order

    @property
    def items(self) -> list[OrderItem]:
        """Get order items (immutable)."""
        return list(self._items)

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def total_amount(self) -> Decimal:
        return self._total_amount

    def calculate_total(self) -> Decimal:
        return sum((item.subtotal for item in self._items), Decimal("0.00"))

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self._status]

    def transition_to(self, new_status: OrderStatus, at: datetime) -> None:
        """Move to ``new_status`` if the transition table allows it."""
        new_status = OrderStatus.parse(new_status)
        if not self.can_transition_to(new_status):
            raise InvalidStateError(
                f"cannot transition from {self._status.value} to {new_status.value}"
            )
        self._status = new_status
        self.updated_at = at

    def ensure_deletable(self) -> None:
        if self._status == OrderStatus.DELIVERED:
            raise InvalidStateError("delivered orders cannot be deleted")

    @property
    def stock_reserved(self) -> bool:
        """Whether this order's product lines are still debited from stock."""
        return self._status != OrderStatus.CANCELLED
