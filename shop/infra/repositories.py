"""
Infrastructure repositories for domain entities.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from functools import wraps

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, F, Sum

from shop.domain.catalog import Category, Customer, Product
from shop.domain.errors import (
    ConflictError,
    DuplicateRequestError,
    InsufficientStockError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from shop.domain.order import Order, OrderItem, OrderItemType, OrderStatus
from shop.infra.models import (
    CategoryORM,
    CustomerORM,
    IdempotencyKey,
    OrderItemORM,
    OrderORM,
    ProductORM,
)
import logging

logger = logging.getLogger(__name__)


def store_errors(func):
    """Re-raise driver failures as StoreError."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as e:
            logger.error(
                "store_error",
                extra={"operation": func.__qualname__, "error": str(e)},
                exc_info=True,
            )
            raise StoreError(f"persistence failure in {func.__qualname__}") from e
    return wrapper


class CustomerRepository:
    """Repository for Customer entities."""

    @store_errors
    def get_by_id(self, customer_id: int) -> Customer | None:
        customer_orm = CustomerORM.objects.filter(id=customer_id).first()
        return self._to_domain(customer_orm) if customer_orm else None

    @store_errors
    def get_by_email(self, email: str) -> Customer | None:
        customer_orm = CustomerORM.objects.filter(email=email.strip().lower()).first()
        return self._to_domain(customer_orm) if customer_orm else None

    @store_errors
    def exists(self, customer_id: int) -> bool:
        return CustomerORM.objects.filter(id=customer_id).exists()

    @store_errors
    def list(self) -> list[Customer]:
        return [self._to_domain(c) for c in CustomerORM.objects.all()]

    @store_errors
    def save(self, customer: Customer) -> Customer:
        """Insert or update customer."""
        duplicate = CustomerORM.objects.filter(email=customer.email)
        if customer.id is not None:
            duplicate = duplicate.exclude(id=customer.id)
        if duplicate.exists():
            raise ConflictError(f"customer with email {customer.email} already exists")

        fields = {
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone,
            "address": customer.address,
        }
        if customer.id is None:
            customer_orm = CustomerORM.objects.create(**fields)
        else:
            updated = CustomerORM.objects.filter(id=customer.id).update(**fields)
            if not updated:
                raise NotFoundError(f"Customer {customer.id} not found")
            customer_orm = CustomerORM.objects.get(id=customer.id)
        return self._to_domain(customer_orm)

    @store_errors
    def delete(self, customer_id: int) -> None:
        if OrderORM.objects.filter(customer_id=customer_id).exists():
            raise ConflictError(f"Customer {customer_id} has orders and cannot be deleted")
        deleted, _ = CustomerORM.objects.filter(id=customer_id).delete()
        if not deleted:
            raise NotFoundError(f"Customer {customer_id} not found")

    def _to_domain(self, customer_orm: CustomerORM) -> Customer:
        return Customer(
            id=customer_orm.id,
            name=customer_orm.name,
            email=customer_orm.email,
            phone=customer_orm.phone,
            address=customer_orm.address,
        )


class CategoryRepository:
    """Repository for Category entities."""

    @store_errors
    def get_by_id(self, category_id: int) -> Category | None:
        category_orm = CategoryORM.objects.filter(id=category_id).first()
        return self._to_domain(category_orm) if category_orm else None

    @store_errors
    def get_many(self, category_ids: list[int]) -> list[Category]:
        """Resolve ids to categories, failing on any unknown id."""
        wanted = list(dict.fromkeys(category_ids))
        found = {c.id: c for c in CategoryORM.objects.filter(id__in=wanted)}
        missing = [cid for cid in wanted if cid not in found]
        if missing:
            raise NotFoundError(f"Categories not found: {missing}")
        return [self._to_domain(found[cid]) for cid in wanted]

    @store_errors
    def list(self) -> list[Category]:
        return [self._to_domain(c) for c in CategoryORM.objects.all()]

    @store_errors
    def save(self, category: Category) -> Category:
        duplicate = CategoryORM.objects.filter(name=category.name)
        if category.id is not None:
            duplicate = duplicate.exclude(id=category.id)
        if duplicate.exists():
            raise ConflictError(f"category {category.name} already exists")

        fields = {"name": category.name, "description": category.description}
        if category.id is None:
            category_orm = CategoryORM.objects.create(**fields)
        else:
            updated = CategoryORM.objects.filter(id=category.id).update(**fields)
            if not updated:
                raise NotFoundError(f"Category {category.id} not found")
            category_orm = CategoryORM.objects.get(id=category.id)
        return self._to_domain(category_orm)

    @store_errors
    @transaction.atomic
    def delete(self, category_id: int) -> None:
        """Delete category and detach it from its products."""
        category_orm = CategoryORM.objects.filter(id=category_id).first()
        if category_orm is None:
            raise NotFoundError(f"Category {category_id} not found")
        category_orm.products.clear()
        category_orm.delete()

    def _to_domain(self, category_orm: CategoryORM) -> Category:
        return Category(
            id=category_orm.id,
            name=category_orm.name,
            description=category_orm.description,
        )


class ProductRepository:
    """Repository for Product entities (the product store)."""

    @store_errors
    def get(self, product_id: int, for_update: bool = False) -> Product | None:
        """Get product by ID; ``for_update`` locks the row until commit."""
        queryset = ProductORM.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        product_orm = queryset.filter(id=product_id).first()
        return self._to_domain(product_orm) if product_orm else None

    @store_errors
    def list(self, category_id: int | None = None) -> list[Product]:
        queryset = ProductORM.objects.prefetch_related("categories")
        if category_id is not None:
            queryset = queryset.filter(categories__id=category_id)
        return [self._to_domain(p) for p in queryset]

    @store_errors
    @transaction.atomic
    def save(self, product: Product) -> Product:
        """Insert or update product and replace its category links."""
        fields = {
            "name": product.name,
            "description": product.description,
            "price": product.price,
            "stock": product.stock,
        }
        if product.id is None:
            product_orm = ProductORM.objects.create(**fields)
        else:
            updated = ProductORM.objects.filter(id=product.id).update(**fields)
            if not updated:
                raise NotFoundError(f"Product {product.id} not found")
            product_orm = ProductORM.objects.get(id=product.id)

        product_orm.categories.set(product.category_ids)
        return self.get(product_orm.id)

    @store_errors
    def delete(self, product_id: int) -> None:
        if OrderItemORM.objects.filter(product_id=product_id).exists():
            raise ConflictError(f"Product {product_id} is referenced by orders and cannot be deleted")
        deleted, _ = ProductORM.objects.filter(id=product_id).delete()
        if not deleted:
            raise NotFoundError(f"Product {product_id} not found")

    @store_errors
    def set_stock(self, product_id: int, new_stock: int) -> Product:
        """Overwrite stock level."""
        if new_stock < 0:
            raise ValidationError("stock cannot be negative")
        updated = ProductORM.objects.filter(id=product_id).update(stock=new_stock)
        if not updated:
            raise NotFoundError(f"Product {product_id} not found")
        return self.get(product_id)

    @store_errors
    def debit_stock(self, product_id: int, quantity: int) -> None:
        """Atomically decrement stock; fails rather than going negative."""
        updated = (
            ProductORM.objects
            .filter(id=product_id, stock__gte=quantity)
            .update(stock=F("stock") - quantity)
        )
        if updated:
            return
        product_orm = ProductORM.objects.filter(id=product_id).only("name").first()
        if product_orm is None:
            raise NotFoundError(f"Product {product_id} not found")
        raise InsufficientStockError(product_id, quantity, product_orm.name)

    @store_errors
    def credit_stock(self, product_id: int, quantity: int) -> None:
        updated = ProductORM.objects.filter(id=product_id).update(stock=F("stock") + quantity)
        if not updated:
            raise NotFoundError(f"Product {product_id} not found")

    def _to_domain(self, product_orm: ProductORM) -> Product:
        return Product(
            id=product_orm.id,
            name=product_orm.name,
            description=product_orm.description,
            price=product_orm.price,
            stock=product_orm.stock,
            categories=[
                Category(id=c.id, name=c.name, description=c.description)
                for c in product_orm.categories.all()
            ],
        )


class OrderRepository:
    """Repository for Order aggregate (the order store)."""

    @store_errors
    def get_by_id(self, order_id: int, for_update: bool = False) -> Order | None:
        """Get order by ID with items."""
        queryset = OrderORM.objects.prefetch_related("items")
        if for_update:
            queryset = queryset.select_for_update()
        order_orm = queryset.filter(id=order_id).first()
        return self._to_domain(order_orm) if order_orm else None

    @store_errors
    def list(
        self,
        customer_id: int | None = None,
        status: OrderStatus | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[Order]:
        """List orders newest first."""
        queryset = OrderORM.objects.prefetch_related("items").order_by("-order_date", "-id")
        if customer_id is not None:
            queryset = queryset.filter(customer_id=customer_id)
        if status is not None:
            queryset = queryset.filter(status=status.value)
        if date_from is not None:
            queryset = queryset.filter(order_date__gte=date_from)
        if date_to is not None:
            queryset = queryset.filter(order_date__lte=date_to)
        return [self._to_domain(order_orm) for order_orm in queryset]

    @store_errors
    @transaction.atomic
    def save(self, order: Order) -> Order:
        """Save order aggregate with its lines."""
        fields = {
            "customer_id": order.customer_id,
            "status": order.status.value,
            "total_amount": order.total_amount,
            "order_date": order.order_date,
            "updated_at": order.updated_at,
        }
        if order.id is None:
            order_orm = OrderORM.objects.create(**fields)
        else:
            order_orm, _ = OrderORM.objects.update_or_create(id=order.id, defaults=fields)
            OrderItemORM.objects.filter(order=order_orm).delete()

        for item in order.items:
            OrderItemORM.objects.create(
                order=order_orm,
                product_id=item.product_id,
                type=item.type.value,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )

        return self.get_by_id(order_orm.id)

    @store_errors
    def set_status(self, order_id: int, status: OrderStatus, updated_at: datetime) -> Order:
        updated = OrderORM.objects.filter(id=order_id).update(
            status=status.value,
            updated_at=updated_at,
        )
        if not updated:
            raise NotFoundError(f"Order {order_id} not found")
        return self.get_by_id(order_id)

    @store_errors
    def delete(self, order_id: int) -> None:
        """Delete order; lines cascade."""
        deleted, _ = OrderORM.objects.filter(id=order_id).delete()
        if not deleted:
            raise NotFoundError(f"Order {order_id} not found")

    @store_errors
    def total_revenue(self) -> Decimal:
        result = (
            OrderORM.objects
            .filter(status=OrderStatus.DELIVERED.value)
            .aggregate(total=Sum("total_amount"))
        )
        return (result["total"] or Decimal("0")).quantize(Decimal("0.01"))

    @store_errors
    def count_by_status(self) -> dict[OrderStatus, int]:
        counts = {status: 0 for status in OrderStatus}
        rows = OrderORM.objects.values("status").annotate(count=Count("id")).order_by()
        for row in rows:
            counts[OrderStatus(row["status"])] = row["count"]
        return counts

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        # Lines are rebuilt from stored values; subtotals are not recomputed.
        items = [
            OrderItem(
                id=item_orm.id,
                order_id=order_orm.id,
                product_id=item_orm.product_id,
                type=OrderItemType(item_orm.type),
                quantity=item_orm.quantity,
                unit_price=item_orm.unit_price,
                subtotal=item_orm.subtotal,
            )
            for item_orm in order_orm.items.all()
        ]
        return Order(
            id=order_orm.id,
            customer_id=order_orm.customer_id,
            items=items,
            status=OrderStatus(order_orm.status),
            total_amount=order_orm.total_amount,
            order_date=order_orm.order_date,
            updated_at=order_orm.updated_at,
        )


class IdempotencyRepository:
    """Stored responses for replayed requests."""

    @store_errors
    def get(self, key: str, operation: str) -> IdempotencyKey | None:
        return IdempotencyKey.objects.filter(key=key, operation=operation).first()

    @store_errors
    def save(
        self,
        key: str,
        operation: str,
        request_hash: str,
        response_status: int,
        response_payload: dict,
    ) -> None:
        """Store a response; a key claimed concurrently is a duplicate request."""
        try:
            with transaction.atomic():
                IdempotencyKey.objects.create(
                    key=key,
                    operation=operation,
                    request_hash=request_hash,
                    response_status=response_status,
                    response_payload=response_payload,
                )
        except IntegrityError:
            raise DuplicateRequestError(
                "Idempotency key already used by a concurrent request"
            )
