"""Back-off policy for rate-limited Pinata requests."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from ..errors import RateLimitExceeded

logger = logging.getLogger(__name__)


def fixed_delay(seconds: float) -> Callable[[int], float]:
    """Return a delay function that waits *seconds* before every retry."""

    def _delay(attempt: int) -> float:
        return seconds

    return _delay


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long the transport waits after an HTTP 429.

    Attributes:
        max_attempts: Total attempts per request, including the first one.
        delay: Maps the 1-based number of the failed attempt to the seconds
            to wait before the next one.
        sleep: Blocking sleep function, replaceable in tests.
    """

    max_attempts: int = 3
    delay: Callable[[int], float] = field(default_factory=lambda: fixed_delay(10.0))
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def fixed(cls, max_attempts: int, seconds: float) -> "RetryPolicy":
        """Bounded retries with a constant delay."""
        return cls(max_attempts=max_attempts, delay=fixed_delay(seconds))

    @classmethod
    def immediate(cls, max_attempts: int = 3) -> "RetryPolicy":
        """Bounded retries without any waiting."""
        return cls(
            max_attempts=max_attempts,
            delay=fixed_delay(0.0),
            sleep=lambda _seconds: None,
        )

    def retrying(self) -> Retrying:
        """Build a tenacity controller that retries ``RateLimitExceeded``.

        The last ``RateLimitExceeded`` is re-raised once *max_attempts* is
        spent; there is no wait after the final attempt.
        """
        return Retrying(
            retry=retry_if_exception_type(RateLimitExceeded),
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            sleep=self.sleep,
            before_sleep=self._log_backoff,
            reraise=True,
        )

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay(retry_state.attempt_number)

    def _log_backoff(self, retry_state: RetryCallState) -> None:
        seconds = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Rate limited (attempt %d/%d), retrying in %.1fs",
            retry_state.attempt_number,
            self.max_attempts,
            seconds,
        )
