"""Process-wide rate limiter and module level helper functions.

Components receive a RateLimiter by injection. The module level helpers
operate on the shared instance returned by get_rate_limit_store() and
exist for callers that do not carry one around.
"""

import time
from typing import Any, Callable, Optional

from research_gate.app.core.config import settings
from research_gate.app.core.logging import get_logger
from research_gate.app.rate_limit.backends import (
    InMemoryRateLimitStore,
    RateLimitBackend,
    RedisRateLimitStore,
)
from research_gate.app.rate_limit.models import Reservation

logger = get_logger(__name__)


class RateLimiter:
    """Main rate limiter that selects appropriate backend.

    Automatically selects the Redis backend if Redis is enabled in settings,
    otherwise uses the in-memory backend.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_triggers: Optional[int] = None,
        use_redis: Optional[bool] = None,
        redis_client: Optional[Any] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiter with appropriate backend.

        Args:
            ttl_seconds: Counter lifetime (defaults to settings)
            max_triggers: Default per-session ceiling (defaults to settings)
            use_redis: Force Redis usage (None = auto-detect from settings)
            redis_client: Optional Redis client for the Redis backend
            clock: Time source for window timestamps
        """
        should_use_redis = use_redis if use_redis is not None else settings.redis_enabled

        if should_use_redis:
            self._backend: RateLimitBackend = RedisRateLimitStore(
                redis_client=redis_client,
                ttl_seconds=ttl_seconds,
                default_max_triggers=max_triggers,
                clock=clock,
            )
            logger.info("Using Redis rate limit backend")
        else:
            self._backend = InMemoryRateLimitStore(
                ttl_seconds=ttl_seconds,
                default_max_triggers=max_triggers,
                clock=clock,
            )
            logger.debug("Using in-memory rate limit backend")

    @property
    def backend(self) -> RateLimitBackend:
        return self._backend

    @property
    def max_triggers(self) -> int:
        return self._backend.default_max_triggers

    async def check(self, session_id: str, max_triggers: Optional[int] = None) -> bool:
        return await self._backend.check(session_id, max_triggers)

    async def increment(self, session_id: str) -> int:
        return await self._backend.increment(session_id)

    async def get_count(self, session_id: str) -> int:
        return await self._backend.get_count(session_id)

    async def reset(self, session_id: str) -> None:
        await self._backend.reset(session_id)

    async def clear_all(self) -> None:
        await self._backend.clear_all()

    async def try_consume(self, session_id: str, max_triggers: Optional[int] = None) -> bool:
        return await self._backend.try_consume(session_id, max_triggers)

    async def reserve(
        self, session_id: str, max_triggers: Optional[int] = None
    ) -> Optional[Reservation]:
        return await self._backend.reserve(session_id, max_triggers)

    async def commit(self, reservation: Reservation) -> int:
        return await self._backend.commit(reservation)

    async def release(self, session_id: str, window_start: Optional[float] = None) -> int:
        return await self._backend.release(session_id, window_start)

    async def error_message(self, session_id: str, max_triggers: Optional[int] = None) -> str:
        return await self._backend.error_message(session_id, max_triggers)

    async def enforce(self, session_id: str, max_triggers: Optional[int] = None) -> None:
        await self._backend.enforce(session_id, max_triggers)

    async def close(self) -> None:
        """Release backend connections, if any."""
        if isinstance(self._backend, RedisRateLimitStore):
            await self._backend.close()


_rate_limit_store: Optional[RateLimiter] = None


def get_rate_limit_store() -> RateLimiter:
    """Get the global rate limiter instance."""
    global _rate_limit_store
    if _rate_limit_store is None:
        _rate_limit_store = RateLimiter()
    return _rate_limit_store


def reset_rate_limit_store() -> None:
    """Reset the global rate limiter instance."""
    global _rate_limit_store
    _rate_limit_store = None


async def check_rate_limit(session_id: str, max_triggers: Optional[int] = None) -> bool:
    return await get_rate_limit_store().check(session_id, max_triggers)


async def increment_rate_limit(session_id: str) -> int:
    return await get_rate_limit_store().increment(session_id)


async def get_rate_limit_count(session_id: str) -> int:
    return await get_rate_limit_store().get_count(session_id)


async def reset_rate_limit(session_id: str) -> None:
    await get_rate_limit_store().reset(session_id)


async def get_rate_limit_error_message(
    session_id: str, max_triggers: Optional[int] = None
) -> str:
    return await get_rate_limit_store().error_message(session_id, max_triggers)


async def enforce_rate_limit(session_id: str, max_triggers: Optional[int] = None) -> None:
    await get_rate_limit_store().enforce(session_id, max_triggers)


async def clear_all_rate_limits() -> None:
    """Empty the shared store. Intended for tests only."""
    await get_rate_limit_store().clear_all()
