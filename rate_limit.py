"""
Fixed-window request counter keyed by an arbitrary string (client IP for the
contact form).

The counter state lives behind a store with a single atomic `hit` operation,
so a shared cache can replace the in-process map for multi-instance
deployments. The clock is injectable to keep the behaviour testable.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


class RateLimitStore(Protocol):
    def hit(self, key: str, window_seconds: float, now: float) -> Tuple[int, float]:
        """Count one request for `key`, returning (count in window, window reset time)."""


class MemoryRateLimitStore:
    """Per-process counters. Sync handlers run on a thread pool, hence the lock."""

    def __init__(self):
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._next_sweep = 0.0

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if reset_at < now]
        for key in expired:
            del self._windows[key]

    def hit(self, key: str, window_seconds: float, now: float) -> Tuple[int, float]:
        with self._lock:
            # expired windows are dropped at most once per window length
            if now >= self._next_sweep:
                self._sweep(now)
                self._next_sweep = now + window_seconds
            count, reset_at = self._windows.get(key, (0, now + window_seconds))
            if now > reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, reset_at)
            return count, reset_at

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


class RateLimiter:
    def __init__(
        self,
        limit: int,
        window_seconds: float,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store if store is not None else MemoryRateLimitStore()
        self.clock = clock

    def check(self, key: str) -> RateLimitResult:
        count, reset_at = self.store.hit(key, self.window_seconds, self.clock())
        return RateLimitResult(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_at=reset_at,
        )
