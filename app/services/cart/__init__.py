"""
Cart Store Factory

Provides a single entry point for obtaining the cart session store.
The rest of the application stays agnostic about which backend is used.

Usage:
    from app.services.cart import ShoppingCart, get_cart_store

    cart = ShoppingCart(session_id, get_cart_store())
    await cart.add_item(product_id=7, quantity=2)

Environment Switching:
    - ENV_MODE=development → MemoryCartStore (no Redis)
    - ENV_MODE=staging → RedisCartStore
    - ENV_MODE=production → RedisCartStore
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.cart.base import BaseCartStore, CartLine
from app.services.cart.cart import ShoppingCart
from app.services.cart.memory import MemoryCartStore
from app.services.cart.redis_store import RedisCartStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_cart_store() -> BaseCartStore:
    """
    Get the configured cart store instance.

    The instance is cached so every request in the process shares the
    same store (and, for the memory store, the same sessions).

    Returns:
        BaseCartStore: Configured cart store
    """
    settings = get_settings()

    if settings.use_redis_sessions:
        logger.info(
            f"Cart Store: Using RedisCartStore "
            f"({settings.env_mode.value} mode)"
        )
        return RedisCartStore(
            redis_url=settings.redis_url,
            ttl_seconds=settings.cart_session_ttl_seconds,
        )

    logger.info("Cart Store: Using MemoryCartStore (development mode)")
    return MemoryCartStore(ttl_seconds=settings.cart_session_ttl_seconds)


def reset_cart_store() -> None:
    """
    Clear the cached cart store instance.

    The next call to get_cart_store() will create a new instance.
    """
    get_cart_store.cache_clear()
    logger.debug("Cart store cache cleared")


__all__ = [
    "get_cart_store",
    "reset_cart_store",
    "BaseCartStore",
    "CartLine",
    "ShoppingCart",
    "MemoryCartStore",
    "RedisCartStore",
]
