"""Minimum-interval throttle for outbound rate source requests."""

from __future__ import annotations

import logging
import time
from typing import Callable

LOGGER = logging.getLogger(__name__)


class RateLimiter:
    """Hold the last call time and block until ``min_interval`` has elapsed.

    Each network-calling component receives its own limiter instead of
    sharing a process-wide timestamp.
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None

    @property
    def last_call(self) -> float | None:
        return self._last_call

    def wait(self) -> float:
        """Sleep if needed, record the call, and return the time slept."""

        slept = 0.0
        now = self._clock()
        if self._last_call is not None and self.min_interval > 0:
            elapsed = now - self._last_call
            if elapsed < self.min_interval:
                slept = self.min_interval - elapsed
                LOGGER.debug("Throttling rate source request for %.3fs", slept)
                self._sleep(slept)
                now = self._clock()
        self._last_call = now
        return slept

    def reset(self) -> None:
        self._last_call = None
