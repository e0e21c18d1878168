"""Rate limiting data models.

This module contains dataclasses for per-session auto-research budget state.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RateLimitEntry:
    """Counter for one session, anchored to its first trigger."""
    count: int = 0
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """An entry is expired once it is strictly older than the TTL."""
        return now - self.created_at > ttl_seconds


@dataclass(frozen=True)
class Reservation:
    """One budget unit taken by reserve(), tied to the window it was taken in.

    window_start is the created_at of the session entry at reservation
    time, or None when the backend could not record the unit.
    """
    session_id: str
    window_start: Optional[float]
