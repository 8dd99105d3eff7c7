"""
Domain entities for customers and the product catalog.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from shop.domain.errors import ValidationError
from shop.domain.money import exceeds_money_limit


@dataclass
class Category:
    """Product category."""
    name: str
    description: str = ""
    id: int | None = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("category name is required")


@dataclass
class Product:
    """Sellable product with its on-hand stock."""
    name: str
    price: Decimal
    stock: int = 0
    description: str = ""
    categories: list[Category] = field(default_factory=list)
    id: int | None = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("product name is required")
        if not isinstance(self.price, Decimal):
            try:
                self.price = Decimal(str(self.price))
            except ArithmeticError:
                raise ValidationError(f"invalid price: {self.price}")
        if not self.price.is_finite() or self.price < 0:
            raise ValidationError("price must be non-negative")
        if exceeds_money_limit(self.price):
            raise ValidationError("price must be below 10000000000.00")
        if isinstance(self.stock, bool) or not isinstance(self.stock, int):
            raise ValidationError("stock must be an integer")
        if self.stock < 0:
            raise ValidationError("stock cannot be negative")

    @property
    def category_ids(self) -> list[int]:
        return [category.id for category in self.categories]


@dataclass
class Customer:
    """Customer placing orders."""
    name: str
    email: str
    phone: str = ""
    address: str = ""
    id: int | None = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.email = (self.email or "").strip().lower()
        if not self.name:
            raise ValidationError("customer name is required")
        if "@" not in self.email:
            raise ValidationError("a valid customer email is required")
