"""
Rate Limiter Module - Reply rate limiting
=========================================

This module provides a sliding window rate limiter that gates
whether the bot may answer at all. Each reply is recorded; once
``max_events`` replies fall inside the window, incoming messages
are ignored until the oldest one ages out.
"""

import time
import threading
from dataclasses import dataclass
from typing import List, Optional

from .logging import get_logger

logger = get_logger("rate_limiter")


@dataclass
class RateLimitStatus:
    """
    Snapshot of the limiter state.

    Attributes:
        count (int): Replies inside the current window
        limit (int): Maximum replies per window
        window_seconds (float): Window duration in seconds
        retry_after (float): Seconds until the oldest reply leaves the window
    """
    count: int
    limit: int
    window_seconds: float
    retry_after: float = 0.0

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "limit": self.limit,
            "window_seconds": self.window_seconds,
            "retry_after": round(self.retry_after, 3),
        }


class RateLimiter:
    """
    Sliding window rate limiter.

    Timestamps of accepted replies are kept in a list and pruned
    lazily before every check, so the window slides with the clock
    instead of resetting at fixed bucket boundaries.

    Thread-safe: replies may be recorded from worker threads while
    the main loop checks.

    Example:
        limiter = RateLimiter(max_events=2, window_seconds=1.0)

        if limiter.allow():
            # handle message, then if a reply went out:
            limiter.record()
    """

    def __init__(self, max_events: int = 2, window_seconds: float = 1.0):
        """
        Initialize rate limiter.

        Args:
            max_events: Maximum replies allowed per window
            window_seconds: Window duration in seconds
        """
        self.max_events = max_events
        self.window_seconds = window_seconds
        self.timestamps: List[float] = []
        self.lock = threading.Lock()

    def allow(self, now: Optional[float] = None) -> bool:
        """
        Check whether another reply is allowed right now.

        Does not record anything.

        Args:
            now: Current monotonic time (defaults to ``time.monotonic()``)

        Returns:
            True if fewer than ``max_events`` replies are inside the window
        """
        now = self._now() if now is None else now
        with self.lock:
            self._prune(now)
            return len(self.timestamps) < self.max_events

    def record(self, now: Optional[float] = None) -> None:
        """
        Record that a reply was sent.

        Args:
            now: Current monotonic time (defaults to ``time.monotonic()``)
        """
        now = self._now() if now is None else now
        with self.lock:
            self._prune(now)
            self.timestamps.append(now)

    def status(self, now: Optional[float] = None) -> RateLimitStatus:
        """Get the current limiter state."""
        now = self._now() if now is None else now
        with self.lock:
            self._prune(now)
            retry_after = 0.0
            if len(self.timestamps) >= self.max_events:
                retry_after = max(0.0, self.timestamps[0] + self.window_seconds - now)
            return RateLimitStatus(
                count=len(self.timestamps),
                limit=self.max_events,
                window_seconds=self.window_seconds,
                retry_after=retry_after,
            )

    def reconfigure(self, max_events: int, window_seconds: float) -> None:
        """Apply new limits, keeping the recorded timestamps."""
        with self.lock:
            if (max_events, window_seconds) != (self.max_events, self.window_seconds):
                logger.info(
                    "Rate limit changed",
                    extra={"max_events": max_events, "window_seconds": window_seconds}
                )
            self.max_events = max_events
            self.window_seconds = window_seconds

    def reset(self) -> None:
        """Forget all recorded replies."""
        with self.lock:
            self.timestamps.clear()

    def _prune(self, now: float) -> None:
        # Keep timestamps that are at most one window old.
        cutoff = now - self.window_seconds
        self.timestamps = [ts for ts in self.timestamps if ts >= cutoff]

    @staticmethod
    def _now() -> float:
        return time.monotonic()
