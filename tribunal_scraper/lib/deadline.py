"""Overall run deadline shared by the batch runner and the pipeline."""

import math
import time
from typing import Callable, Optional


class Deadline:
    """A wall-clock budget measured from construction time."""

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started = clock()
        self.seconds = seconds

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(None)

    def elapsed(self) -> float:
        return self._clock() - self._started

    def remaining(self) -> float:
        if self.seconds is None:
            return math.inf
        return max(0.0, self.seconds - self.elapsed())

    def expired(self) -> bool:
        return self.remaining() <= 0

    def has_budget(self, min_seconds: float) -> bool:
        """True when at least `min_seconds` remain."""
        return self.remaining() >= min_seconds

    def __repr__(self) -> str:
        return f"Deadline(seconds={self.seconds}, remaining={self.remaining():.1f})"
