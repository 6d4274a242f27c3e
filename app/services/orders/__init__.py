"""
Order Services

    - finalizer: cart snapshot -> Order + OrderItems, atomically
    - history: per-user read path over placed orders
"""

from app.services.orders.finalizer import checkout, place_order
from app.services.orders.history import get_order_detail, list_orders

__all__ = [
    "checkout",
    "place_order",
    "list_orders",
    "get_order_detail",
]
