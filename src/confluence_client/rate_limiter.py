"""Client-side fixed-window rate limiter.

Counts outbound requests inside a recurring window and rejects calls once the
quota is reached. Bursts at window boundaries are possible; this is a fixed
window, not a sliding window or token bucket.
"""

import logging
import threading
import time
from typing import Callable

from .errors import ClientRateLimitError

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """Fixed-window request counter.

    Example:
        >>> limiter = FixedWindowRateLimiter(max_requests=100, window_ms=60000)
        >>> limiter.acquire()  # raises ClientRateLimitError past the quota
    """

    def __init__(
        self,
        max_requests: int,
        window_ms: int,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize the limiter.

        Args:
            max_requests: Quota per window
            window_ms: Window length in milliseconds
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._lock = threading.Lock()
        self.request_count = 0
        self.window_start = clock()

    def acquire(self) -> None:
        """Count one request attempt against the current window.

        Raises:
            ClientRateLimitError: If the quota for this window is used up
        """
        with self._lock:
            now = self._clock()
            if (now - self.window_start) * 1000 > self.window_ms:
                self.request_count = 0
                self.window_start = now

            if self.request_count >= self.max_requests:
                logger.warning(
                    f"Client-side rate limit reached: {self.request_count}/"
                    f"{self.max_requests} in current window"
                )
                raise ClientRateLimitError(self.max_requests, self.window_ms)

            self.request_count += 1

    def reconfigure(self, max_requests: int, window_ms: int) -> None:
        """Apply new quota settings without resetting the current window."""
        with self._lock:
            self.max_requests = max_requests
            self.window_ms = window_ms
