"""
Integration Hub Rate Limiter: sliding-window admission control.

One limiter per integration, enforcing three horizons at once
(per second, per hour, per day) over a single timestamp log.
Admission and recording are one atomic step: a rejected request never
consumes capacity.
"""
from __future__ import annotations
import bisect
import threading
import time

from integration_hub.models import RateLimits

SECOND = 1.0
HOUR = 3600.0
DAY = 86400.0


class RateLimiter:
    """Per-integration sliding window rate limiter."""

    def __init__(self, limits: RateLimits):
        self.limits = limits
        self._requests: list[float] = []  # sorted ascending
        self._lock = threading.Lock()

    def can_make_request(self, now: float | None = None) -> bool:
        """Return True and record the request if every window has room."""
        if now is None:
            now = time.time()

        with self._lock:
            # Prune lazily: nothing older than a day survives a check
            del self._requests[:bisect.bisect_right(self._requests, now - DAY)]

            if (
                self._count_since(now - SECOND) >= self.limits.requests_per_second
                or self._count_since(now - HOUR) >= self.limits.requests_per_hour
                or len(self._requests) >= self.limits.requests_per_day
            ):
                return False

            bisect.insort(self._requests, now)
            return True

    def _count_since(self, cutoff: float) -> int:
        return len(self._requests) - bisect.bisect_right(self._requests, cutoff)

    def usage(self, now: float | None = None) -> dict[str, int]:
        """Admitted requests per window, without recording anything."""
        if now is None:
            now = time.time()
        with self._lock:
            return {
                "second": self._count_since(now - SECOND),
                "hour": self._count_since(now - HOUR),
                "day": self._count_since(now - DAY),
            }

    def remaining(self, now: float | None = None) -> int:
        """Requests still admissible right now across all windows."""
        used = self.usage(now)
        return max(0, min(
            self.limits.requests_per_second - used["second"],
            self.limits.requests_per_hour - used["hour"],
            self.limits.requests_per_day - used["day"],
        ))
