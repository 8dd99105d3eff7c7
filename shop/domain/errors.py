"""
Domain error taxonomy.

Every error carries a machine-readable ``code`` that the API layer maps to
an HTTP status (see ``shop.api.middleware.ErrorHandler``).
"""
from __future__ import annotations


class DomainError(Exception):
    """Base error for business and persistence failures."""
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(DomainError):
    """Malformed input or business-rule violation."""
    code = "VALIDATION_ERROR"


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds the product stock."""
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, requested: int, product_name: str | None = None):
        self.product_id = product_id
        self.requested = requested
        self.product_name = product_name
        super().__init__(f"insufficient stock for product {product_name or product_id}")


class InvalidStateError(ValidationError):
    """Operation not allowed in the current order status."""
    code = "INVALID_STATE"


class NotFoundError(DomainError):
    """Referenced entity does not exist."""
    code = "NOT_FOUND"


class ConflictError(DomainError):
    """Operation conflicts with existing data."""
    code = "CONFLICT"


class DuplicateRequestError(ConflictError):
    """Idempotency key reused with a different request."""
    code = "DUPLICATE_REQUEST"


class StoreError(DomainError):
    """Underlying persistence failure."""
    code = "STORE_ERROR"
