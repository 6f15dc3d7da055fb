"""
Reliability utilities.

Circuit breaker guarding the payment provider's listing endpoint, so a
provider outage does not turn every poll tick into a full HTTP timeout.
"""

import logging
import time
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    After ``failure_threshold`` consecutive failures the circuit opens and
    rejects calls for ``reset_timeout`` seconds. The first call after that
    runs in HALF_OPEN state: success closes the circuit, failure reopens it.
    """

    def __init__(self, name: str, failure_threshold: int = 5, reset_timeout: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failures = 0
        self.opened_at = 0.0
        self.state = "CLOSED"  # CLOSED, OPEN, HALF_OPEN
        self._clock = clock

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        if self.state == "OPEN":
            if self._clock() - self.opened_at >= self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError(f"Circuit {self.name} is OPEN")

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise

        self.reset_state()
        return result

    def record_failure(self) -> None:
        self.failures += 1
        if self.state == "HALF_OPEN" or self.failures >= self.failure_threshold:
            if self.state != "OPEN":
                logger.warning("Circuit %s opened after %d failures", self.name, self.failures)
            self.state = "OPEN"
            self.opened_at = self._clock()

    def reset_state(self) -> None:
        if self.state != "CLOSED":
            logger.info("Circuit %s closed", self.name)
        self.failures = 0
        self.state = "CLOSED"
