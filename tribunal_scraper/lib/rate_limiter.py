"""Rate limiting utilities for ethical web scraping."""

import time
from typing import Callable, Optional
from loguru import logger


class EthicalRateLimiter:
    """Fixed-interval rate limiter with exponential backoff helpers.

    - `interval_seconds`: minimum spacing between successive requests
    - `record_failure()` / `reset_failures()`: backoff bookkeeping for callers
      that want to slow down after repeated failures
    """

    def __init__(
        self,
        interval_seconds: float = 1.0,
        backoff_factor: float = 1.0,
        max_backoff_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval_seconds = float(interval_seconds)
        self.last_request_time: Optional[float] = None
        self.failure_count = 0
        self.backoff_factor = float(backoff_factor)
        self.max_backoff_seconds = float(max_backoff_seconds)
        self._clock = clock
        self._sleep = sleep

    def wait_if_needed(self) -> float:
        """Sleep until `interval_seconds` have passed since the previous call.

        Returns:
            float: Actual wait time in seconds
        """
        if self.last_request_time is None:
            wait_time = 0.0
        else:
            elapsed = self._clock() - self.last_request_time
            wait_time = max(0.0, self.interval_seconds - elapsed)

        if wait_time > 0:
            logger.debug(f"Waiting for {wait_time:.2f}s to respect ethical interval")
            self._sleep(wait_time)

        self.last_request_time = self._clock()
        return wait_time

    def reset(self) -> None:
        """Forget the previous request time."""
        self.last_request_time = None

    def record_failure(self, status_code: Optional[int] = None) -> float:
        """Record a failure occurrence and return the next backoff delay.

        Args:
            status_code: Optional HTTP status code observed (e.g., 429, 503)

        Returns:
            float: computed backoff delay in seconds
        """
        self.failure_count += 1

        # Explicit throttling responses double the delay
        multiplier = 2.0 if status_code in (429, 503) else 1.0

        return min(
            self.max_backoff_seconds,
            self.backoff_factor * multiplier * (2 ** (self.failure_count - 1)),
        )

    def reset_failures(self) -> None:
        """Reset failure counter (after a successful request or manual reset)."""
        self.failure_count = 0
