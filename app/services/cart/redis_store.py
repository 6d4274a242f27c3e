"""
Redis Cart Store

Production cart session storage. Each session is a single Redis string
key holding the JSON-encoded line list, written with an expiry so
abandoned carts disappear on their own.

Key format: cart:{session_id}
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.services.cart.base import BaseCartStore

logger = logging.getLogger(__name__)


def _is_line(item: Any) -> bool:
    return (
        isinstance(item, dict)
        and isinstance(item.get("product_id"), int)
        and isinstance(item.get("quantity"), int)
    )


class RedisCartStore(BaseCartStore):
    """
    Redis-backed implementation of the cart store.

    Example:
        >>> store = RedisCartStore("redis://localhost:6379/0", ttl_seconds=7200)
        >>> await store.save("a1b2", [{"product_id": 1, "quantity": 2}])
    """

    KEY_PREFIX = "cart:"

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int,
        client: Optional[aioredis.Redis] = None,
    ):
        """
        Initialize the Redis cart store.

        Args:
            redis_url: Redis connection URL
            ttl_seconds: Idle lifetime of a session
            client: Pre-built client (tests inject a fake here)
        """
        super().__init__(ttl_seconds)
        self.client = client or aioredis.from_url(redis_url, decode_responses=True)

        logger.info(f"RedisCartStore initialized (ttl={ttl_seconds}s)")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "redis"

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    async def load(self, session_id: str) -> list[dict[str, Any]]:
        raw = await self.client.get(self._key(session_id))
        if raw is None:
            return []
        try:
            lines = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Redis: Discarding unreadable cart for session {session_id}")
            await self.delete(session_id)
            return []
        if not isinstance(lines, list):
            logger.warning(f"Redis: Discarding unreadable cart for session {session_id}")
            await self.delete(session_id)
            return []

        valid = [line for line in lines if _is_line(line)]
        if len(valid) != len(lines):
            logger.warning(
                f"Redis: Dropped {len(lines) - len(valid)} malformed line(s) for session {session_id}"
            )
        return valid

    async def save(self, session_id: str, lines: list[dict[str, Any]]) -> None:
        await self.client.set(
            self._key(session_id),
            json.dumps(lines),
            ex=self.ttl_seconds,
        )

    async def delete(self, session_id: str) -> None:
        await self.client.delete(self._key(session_id))

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
