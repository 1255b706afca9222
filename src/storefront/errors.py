"""Error taxonomy shared by services and routers.

Every error carries the HTTP status it is rendered with; `main.py` turns them
into `{"error": message}` responses.
"""

from __future__ import annotations

from typing import Optional


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(StorefrontError):
    status_code = 404


class Unauthorized(StorefrontError):
    status_code = 401


class Forbidden(StorefrontError):
    status_code = 403


class ValidationError(StorefrontError):
    status_code = 400


class ConflictError(StorefrontError):
    status_code = 409


class InsufficientStock(StorefrontError):
    """Raised inside the order transaction; nothing of the order is persisted."""

    status_code = 400

    def __init__(self, product_id: int, requested: int, available: Optional[int] = None) -> None:
        if available is None:
            message = f"Product {product_id} out of stock"
        else:
            message = f"Product {product_id} out of stock (requested {requested}, available {available})"
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class TransactionTimeout(StorefrontError):
    """The order transaction exceeded its wait budget and was rolled back. Safe to retry."""

    status_code = 503
