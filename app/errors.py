"""
Ordering Errors

Exceptions raised by the catalog, cart and order services. Each one
carries the HTTP status and machine-readable code the API layer
reports, so services never deal with HTTP themselves.

    OrderingError
    ├── InvalidQuantity      400  bad quantity from the user
    ├── EmptyCart            400  checkout with nothing in the cart
    ├── InsufficientStock    409  not enough stock for a product
    ├── NotFound             404  missing, or owned by someone else
    └── TransactionFailure   503  storage failed; safe to retry
"""

from typing import Optional


class OrderingError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 400
    error: str = "ordering_error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail()
        super().__init__(self.detail)

    def default_detail(self) -> str:
        return "The request could not be processed."

    def to_dict(self) -> dict:
        """Convert to dictionary for the JSON error body."""
        return {
            "success": False,
            "error": self.error,
            "detail": self.detail,
        }


class InvalidQuantity(OrderingError):
    error = "invalid_quantity"

    def __init__(self, quantity: int, detail: Optional[str] = None):
        self.quantity = quantity
        super().__init__(detail)

    def default_detail(self) -> str:
        return f"Invalid quantity: {self.quantity}"


class EmptyCart(OrderingError):
    error = "empty_cart"

    def default_detail(self) -> str:
        return "Cannot place an order with an empty cart."


class InsufficientStock(OrderingError):
    status_code = 409
    error = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: Optional[int] = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__()

    def default_detail(self) -> str:
        message = f"Not enough stock for product #{self.product_id} (requested {self.requested}"
        if self.available is not None:
            message += f", available {self.available}"
        return message + ")"

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["product_id"] = self.product_id
        return body


class NotFound(OrderingError):
    status_code = 404
    error = "not_found"

    def default_detail(self) -> str:
        return "Resource not found."


class TransactionFailure(OrderingError):
    """Storage failed mid-transaction. Nothing was committed."""

    status_code = 503
    error = "transaction_failure"

    def default_detail(self) -> str:
        return "The order could not be saved. Please try again."
