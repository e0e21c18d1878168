"""Session-scoped rate limiting for auto-research triggers.

This package bounds how many auto-research triggers one planning session
may consume within a TTL window. Supports in-memory and Redis backends.
"""

from research_gate.app.rate_limit.backends import (
    InMemoryRateLimitStore,
    RateLimitBackend,
    RedisRateLimitStore,
)
from research_gate.app.rate_limit.limiter import (
    RateLimiter,
    check_rate_limit,
    clear_all_rate_limits,
    enforce_rate_limit,
    get_rate_limit_count,
    get_rate_limit_error_message,
    get_rate_limit_store,
    increment_rate_limit,
    reset_rate_limit,
    reset_rate_limit_store,
)
from research_gate.app.rate_limit.messages import format_rate_limit_message
from research_gate.app.rate_limit.models import RateLimitEntry, Reservation

__all__ = [
    # Models
    "RateLimitEntry",
    "Reservation",
    "format_rate_limit_message",
    # Backends
    "RateLimitBackend",
    "InMemoryRateLimitStore",
    "RedisRateLimitStore",
    # Main class
    "RateLimiter",
    "get_rate_limit_store",
    "reset_rate_limit_store",
    # Helpers
    "check_rate_limit",
    "increment_rate_limit",
    "get_rate_limit_count",
    "reset_rate_limit",
    "get_rate_limit_error_message",
    "enforce_rate_limit",
    "clear_all_rate_limits",
]
