"""
In-Memory Cart Store

Keeps cart sessions in a process-local dict. Used in development mode
(ENV_MODE=development) and in tests:
    - No Redis needed to run the full cart/checkout flow
    - Sessions expire after the configured TTL, like Redis keys

Carts are lost on restart and are not shared between worker processes.
"""

import copy
import logging
import time
from typing import Any, Callable

from app.services.cart.base import BaseCartStore

logger = logging.getLogger(__name__)


class MemoryCartStore(BaseCartStore):
    """
    Process-local implementation of the cart store.

    Attributes:
        ttl_seconds: Idle lifetime of a session
        clock: Monotonic time source, replaceable in tests
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl_seconds)
        self.clock = clock
        self._sessions: dict[str, tuple[float, list[dict[str, Any]]]] = {}

        logger.info(f"MemoryCartStore initialized (ttl={ttl_seconds}s)")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    def _purge_expired(self) -> None:
        now = self.clock()
        expired = [key for key, (expires_at, _) in self._sessions.items() if expires_at <= now]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.debug(f"Memory: Expired {len(expired)} cart session(s)")

    async def load(self, session_id: str) -> list[dict[str, Any]]:
        self._purge_expired()
        entry = self._sessions.get(session_id)
        if entry is None:
            return []
        # Callers get a copy so they cannot mutate stored state in place
        return copy.deepcopy(entry[1])

    async def save(self, session_id: str, lines: list[dict[str, Any]]) -> None:
        self._purge_expired()
        self._sessions[session_id] = (self.clock() + self.ttl_seconds, copy.deepcopy(lines))

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._sessions)
