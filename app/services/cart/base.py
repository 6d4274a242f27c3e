"""
Cart Store Abstract Base Class

Defines the interface contract for cart session storage. Both
MemoryCartStore and RedisCartStore implement these methods, so the
ShoppingCart behaves identically whichever store is active.

A store only keeps a JSON-serializable list of lines per session id,
and forgets it once the session TTL passes. The cart rules (merging,
quantity checks) live in ShoppingCart, not here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class CartLine:
    """
    One product and quantity held in a cart.

    Attributes:
        product_id: Catalog id of the product
        quantity: Number of units, always positive
    """
    product_id: int
    quantity: int

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLine":
        return cls(
            product_id=int(data["product_id"]),
            quantity=int(data["quantity"]),
        )


class BaseCartStore(ABC):
    """
    Abstract base class for cart session stores.

    Example:
        >>> store = get_cart_store()  # Memory or Redis
        >>> await store.save("a1b2", [{"product_id": 1, "quantity": 2}])
        >>> await store.load("a1b2")
        [{'product_id': 1, 'quantity': 2}]
    """

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the storage backend.

        Returns:
            str: Provider name (e.g., "memory", "redis")
        """
        pass

    @abstractmethod
    async def load(self, session_id: str) -> list[dict[str, Any]]:
        """
        Read the cart lines stored for a session.

        Returns:
            list: Stored lines, or an empty list if the session is unknown
            or has expired
        """
        pass

    @abstractmethod
    async def save(self, session_id: str, lines: list[dict[str, Any]]) -> None:
        """
        Replace the cart lines of a session and refresh its TTL.
        """
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Drop a session's cart. Unknown sessions are ignored."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the store is reachable.

        Returns:
            bool: True if the store is operational
        """
        pass
