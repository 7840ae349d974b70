"""
Generic retry policy parameterized over the call being retried.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def linear_backoff(base_delay: float, attempt: int) -> float:
    return base_delay * attempt


@dataclass
class RetryPolicy:
    """Retry configuration for calls to flaky collaborators.

    Delay before retry ``n`` (1-based) is ``backoff(base_delay, n)``; linear
    by default, so 1s, 2s, ... for a one-second base.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff: Callable[[float, int], float] = linear_backoff
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        return self.backoff(self.base_delay, attempt)

    def call(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` until it succeeds or attempts run out; re-raise the last error."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn()
            except Exception as e:
                if attempt >= self.max_attempts:
                    raise
                logger.info(
                    "Retry %d/%d after error: %s", attempt, self.max_attempts, e
                )
                self.sleep(self.delay_for(attempt))
        raise ValueError("max_attempts must be at least 1")
