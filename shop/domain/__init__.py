from shop.domain.catalog import Category, Customer, Product
from shop.domain.order import Order, OrderItem, OrderItemType, OrderStatus

__all__ = [
    "Category",
    "Customer",
    "Order",
    "OrderItem",
    "OrderItemType",
    "OrderStatus",
    "Product",
]
