"""Rate limit storage backends.

Each backend keeps a per-session counter of consumed auto-research triggers
that expires a fixed TTL after the session's first trigger.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import redis

from research_gate.app.core.config import settings
from research_gate.app.core.logging import get_log_context, get_logger
from research_gate.app.exceptions import RateLimitExceededError
from research_gate.app.rate_limit.messages import format_rate_limit_message
from research_gate.app.rate_limit.models import RateLimitEntry, Reservation
from research_gate.app.rate_limit.redis_lua import (
    COMMIT_SCRIPT,
    INCREMENT_SCRIPT,
    RELEASE_SCRIPT,
    RESERVE_SCRIPT,
)

logger = get_logger(__name__)


class RateLimitBackend(ABC):
    """Abstract base class for rate limit backends."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        default_max_triggers: Optional[int] = None,
    ):
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.auto_research_ttl_seconds
        )
        self.default_max_triggers = (
            default_max_triggers
            if default_max_triggers is not None
            else settings.auto_research_max_triggers
        )

    def _resolve_max(self, max_triggers: Optional[int]) -> int:
        limit = self.default_max_triggers if max_triggers is None else max_triggers
        if limit < 1:
            raise ValueError("max_triggers must be at least 1")
        return limit

    @abstractmethod
    async def check(self, session_id: str, max_triggers: Optional[int] = None) -> bool:
        """Return True if the session may trigger auto-research again.

        Args:
            session_id: Planning session identifier
            max_triggers: Ceiling to check against (defaults to settings)

        Returns:
            True when no entry exists or its count is below the ceiling
        """

    @abstractmethod
    async def increment(self, session_id: str) -> int:
        """Record one trigger for the session and return the new count."""

    @abstractmethod
    async def get_count(self, session_id: str) -> int:
        """Return the current count, 0 when absent or expired."""

    @abstractmethod
    async def reset(self, session_id: str) -> None:
        """Forget the counter of one session."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Drop every counter. Testing utility."""

    @abstractmethod
    async def reserve(
        self, session_id: str, max_triggers: Optional[int] = None
    ) -> Optional[Reservation]:
        """Atomically check the ceiling and take one unit if allowed.

        Returns:
            Reservation tied to the current window, or None when denied
        """

    @abstractmethod
    async def commit(self, reservation: Reservation) -> int:
        """Keep a reserved unit and return the session count.

        If the reserved window expired meanwhile, the unit is counted
        again in the session's current window.
        """

    @abstractmethod
    async def release(self, session_id: str, window_start: Optional[float] = None) -> int:
        """Give back one reserved unit. Returns the new count.

        With window_start, only a unit of that same window is refunded;
        a later window is left untouched.
        """

    async def try_consume(self, session_id: str, max_triggers: Optional[int] = None) -> bool:
        """Atomically check the ceiling and take one unit if allowed."""
        return await self.reserve(session_id, max_triggers) is not None

    async def error_message(self, session_id: str, max_triggers: Optional[int] = None) -> str:
        """Format the budget exhausted message for a session."""
        limit = self._resolve_max(max_triggers)
        count = await self.get_count(session_id)
        return format_rate_limit_message(count, limit)

    async def enforce(self, session_id: str, max_triggers: Optional[int] = None) -> None:
        """Fail-closed variant of check.

        Raises:
            RateLimitExceededError: If the session has used up its budget
        """
        limit = self._resolve_max(max_triggers)
        if await self.check(session_id, limit):
            return
        count = await self.get_count(session_id)
        raise RateLimitExceededError(
            format_rate_limit_message(count, limit),
            session_id=session_id,
            count=count,
            max_triggers=limit,
        )


class InMemoryRateLimitStore(RateLimitBackend):
    """In-memory per-session counters with lazy TTL expiry.

    There are no background timers. Every check sweeps expired entries
    from the whole store, and reads treat an expired entry as absent,
    so an entry may outlive its TTL in memory but is never read as valid.
    Suitable for single-instance deployments.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        default_max_triggers: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the store.

        Args:
            ttl_seconds: Window after which a session counter is forgotten
            default_max_triggers: Ceiling used when callers pass none
            clock: Time source in seconds, injectable for tests
        """
        super().__init__(ttl_seconds, default_max_triggers)
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()

    def _sweep(self, now: float) -> int:
        """Remove every expired entry. Caller must hold the lock."""
        expired: List[str] = [
            key for key, entry in self._entries.items()
            if entry.is_expired(now, self.ttl_seconds)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit entries")
        return len(expired)

    def _bump(self, session_id: str, now: float) -> RateLimitEntry:
        entry = self._entries.get(session_id)
        if entry is None:
            entry = RateLimitEntry(count=1, created_at=now)
            self._entries[session_id] = entry
        else:
            entry.count += 1
        return entry

    def _live_entry(self, session_id: str, now: float) -> Optional[RateLimitEntry]:
        entry = self._entries.get(session_id)
        if entry is None or entry.is_expired(now, self.ttl_seconds):
            return None
        return entry

    async def check(self, session_id: str, max_triggers: Optional[int] = None) -> bool:
        limit = self._resolve_max(max_triggers)
        async with self._lock:
            self._sweep(self._clock())
            entry = self._entries.get(session_id)
            if entry is None:
                return True
            return entry.count < limit

    async def increment(self, session_id: str) -> int:
        async with self._lock:
            now = self._clock()
            self._sweep(now)
            return self._bump(session_id, now).count

    async def get_count(self, session_id: str) -> int:
        async with self._lock:
            entry = self._live_entry(session_id, self._clock())
            return entry.count if entry is not None else 0

    async def reset(self, session_id: str) -> None:
        async with self._lock:
            self._entries.pop(session_id, None)

    async def clear_all(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def reserve(
        self, session_id: str, max_triggers: Optional[int] = None
    ) -> Optional[Reservation]:
        limit = self._resolve_max(max_triggers)
        async with self._lock:
            now = self._clock()
            self._sweep(now)
            entry = self._entries.get(session_id)
            if entry is not None and entry.count >= limit:
                return None
            entry = self._bump(session_id, now)
            return Reservation(session_id=session_id, window_start=entry.created_at)

    async def commit(self, reservation: Reservation) -> int:
        async with self._lock:
            now = self._clock()
            entry = self._live_entry(reservation.session_id, now)
            if entry is not None and entry.created_at == reservation.window_start:
                return entry.count
            self._sweep(now)
            return self._bump(reservation.session_id, now).count

    async def release(self, session_id: str, window_start: Optional[float] = None) -> int:
        async with self._lock:
            entry = self._live_entry(session_id, self._clock())
            if entry is None:
                return 0
            if window_start is not None and entry.created_at != window_start:
                return entry.count
            entry.count -= 1
            if entry.count <= 0:
                # A refunded first attempt must not anchor the window
                del self._entries[session_id]
                return 0
            return entry.count

    def __len__(self) -> int:
        return len(self._entries)


class RedisRateLimitStore(RateLimitBackend):
    """Redis-based distributed rate limit store.

    Counters live in hashes under ``autoresearch:ratelimit:{session_id}``.
    Redis expires each key ttl_seconds after creation, which replaces the
    in-memory sweep. Every write runs as a Lua script.
    """

    KEY_PREFIX = "autoresearch:ratelimit"

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        ttl_seconds: Optional[float] = None,
        default_max_triggers: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize Redis rate limit store.

        Args:
            redis_client: Optional Redis client instance
            redis_url: Redis connection URL
            ttl_seconds: Window after which a session counter is forgotten
            default_max_triggers: Ceiling used when callers pass none
            clock: Time source for window start stamps
        """
        super().__init__(ttl_seconds, default_max_triggers)
        self._redis_url = redis_url or settings.redis_url
        self._redis = redis_client
        self._clock = clock

    async def _get_redis(self) -> Any:
        """Get or create Redis connection."""
        if self._redis is None:
            import redis.asyncio as aioredis
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    def _make_key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}:{session_id}"

    def _now(self) -> str:
        # repr round-trips through float(), so stamps compare exactly
        return repr(float(self._clock()))

    def _handle_redis_failure(self, error_type: str, session_id: str) -> bool:
        """Apply the configured fail-open/fail-closed policy.

        Args:
            error_type: Type of error for logging purposes
            session_id: Session being checked

        Returns:
            Whether the trigger is allowed
        """
        fail_closed = getattr(settings, "rate_limit_fail_closed", False)
        context = get_log_context(session_id=session_id)

        if fail_closed:
            logger.warning(
                f"Rate limiting fail-closed triggered due to {error_type}. "
                "Auto-research denied.",
                extra=context,
            )
            return False

        logger.warning(
            f"Rate limiting fail-open triggered due to {error_type}. "
            "Auto-research allowed without rate limit check.",
            extra=context,
        )
        return True

    async def check(self, session_id: str, max_triggers: Optional[int] = None) -> bool:
        limit = self._resolve_max(max_triggers)
        try:
            client = await self._get_redis()
            raw = await client.hget(self._make_key(session_id), "count")
            return int(raw or 0) < limit
        except redis.ConnectionError as e:
            logger.error(f"Redis connection failed: {e}")
            return self._handle_redis_failure("connection_error", session_id)
        except redis.TimeoutError as e:
            logger.warning(f"Redis timeout: {e}")
            return self._handle_redis_failure("timeout", session_id)
        except redis.RedisError as e:
            logger.error(f"Redis error: {e}")
            return self._handle_redis_failure("redis_error", session_id)

    async def reserve(
        self, session_id: str, max_triggers: Optional[int] = None
    ) -> Optional[Reservation]:
        limit = self._resolve_max(max_triggers)
        try:
            client = await self._get_redis()
            result = await client.eval(
                RESERVE_SCRIPT,
                1,  # Number of keys
                self._make_key(session_id),  # KEYS[1]
                limit,  # ARGV[1]
                int(self.ttl_seconds),  # ARGV[2]
                self._now(),  # ARGV[3]
            )
            if not int(result[0]):
                return None
            return Reservation(session_id=session_id, window_start=float(result[2]))
        except redis.ConnectionError as e:
            logger.error(f"Redis connection failed: {e}")
            allowed = self._handle_redis_failure("connection_error", session_id)
        except redis.TimeoutError as e:
            logger.warning(f"Redis timeout: {e}")
            allowed = self._handle_redis_failure("timeout", session_id)
        except redis.RedisError as e:
            logger.error(f"Redis error: {e}")
            allowed = self._handle_redis_failure("redis_error", session_id)
        # Fail-open units are not recorded, so they carry no window
        return Reservation(session_id=session_id, window_start=None) if allowed else None

    async def commit(self, reservation: Reservation) -> int:
        client = await self._get_redis()
        window = "" if reservation.window_start is None else repr(reservation.window_start)
        result = await client.eval(
            COMMIT_SCRIPT,
            1,
            self._make_key(reservation.session_id),
            window,
            int(self.ttl_seconds),
            self._now(),
        )
        return int(result)

    async def increment(self, session_id: str) -> int:
        client = await self._get_redis()
        result = await client.eval(
            INCREMENT_SCRIPT,
            1,
            self._make_key(session_id),
            int(self.ttl_seconds),
            self._now(),
        )
        return int(result)

    async def release(self, session_id: str, window_start: Optional[float] = None) -> int:
        window = "" if window_start is None else repr(window_start)
        try:
            client = await self._get_redis()
            result = await client.eval(RELEASE_SCRIPT, 1, self._make_key(session_id), window)
            return int(result)
        except redis.RedisError as e:
            logger.warning(
                f"Failed to release rate limit unit: {e}",
                extra=get_log_context(session_id=session_id),
            )
            return await self.get_count(session_id)

    async def get_count(self, session_id: str) -> int:
        try:
            client = await self._get_redis()
            raw = await client.hget(self._make_key(session_id), "count")
            return int(raw or 0)
        except redis.RedisError as e:
            logger.warning(f"Redis get failed for {session_id}: {e}")
            return 0

    async def reset(self, session_id: str) -> None:
        client = await self._get_redis()
        await client.delete(self._make_key(session_id))

    async def clear_all(self) -> None:
        client = await self._get_redis()
        keys = [key async for key in client.scan_iter(match=f"{self.KEY_PREFIX}:*")]
        if keys:
            await client.delete(*keys)

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except redis.RedisError as e:
                logger.warning(f"Error closing Redis connection: {e}")
            self._redis = None
