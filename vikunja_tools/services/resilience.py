"""Bounded retry and circuit breaking around single remote calls."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from vikunja_tools.services.error_classifier import classify_error, is_authentication_error
from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.errors import ConnectivityError, VikunjaToolsError
from vikunja_tools.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

T = TypeVar("T")


def _never(error: VikunjaToolsError) -> bool:
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget, capped exponential backoff (seconds) and a retry predicate."""
    max_retries: int = 0
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    should_retry: Callable[[VikunjaToolsError], bool] = field(default=_never)

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number attempt + 1 (attempt counts from 0)."""
        return min(self.initial_delay * (self.backoff_factor ** attempt), self.max_delay)


NO_RETRY = RetryPolicy()


def auth_retry_policy() -> RetryPolicy:
    """Retry only authentication failures, configured from the environment."""
    return RetryPolicy(
        max_retries=VikunjaConfig.AUTH_RETRY_MAX_RETRIES,
        initial_delay=VikunjaConfig.AUTH_RETRY_INITIAL_DELAY_MS / 1000,
        max_delay=VikunjaConfig.AUTH_RETRY_MAX_DELAY_MS / 1000,
        backoff_factor=VikunjaConfig.AUTH_RETRY_BACKOFF_FACTOR,
        should_retry=is_authentication_error,
    )


class CircuitBreaker:
    """Consecutive-connectivity-failure breaker.

    Closed: calls pass. Open: calls fail fast for reset_timeout seconds.
    Half-open: one trial call; success closes, failure reopens. Other calls
    fail fast while the trial is in flight.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> str:
        if self._opened_at is None:
            return self.CLOSED
        if self._clock() - self._opened_at >= self.reset_timeout:
            return self.HALF_OPEN
        return self.OPEN

    def before_call(self, description: str) -> None:
        state = self.state
        if state == self.OPEN:
            raise ConnectivityError(
                f"{description} skipped: circuit breaker is open after "
                f"{self._failures} consecutive connectivity failures. "
                f"Retry in {self.reset_timeout:g}s or check that the Vikunja server is reachable.",
                details={"circuit_state": self.OPEN, "consecutive_failures": self._failures},
            )
        if state == self.HALF_OPEN:
            if self._trial_in_flight:
                raise ConnectivityError(
                    f"{description} skipped: circuit breaker is half-open and a trial request "
                    f"is already checking whether the Vikunja server is reachable.",
                    details={"circuit_state": self.HALF_OPEN, "consecutive_failures": self._failures},
                )
            self._trial_in_flight = True

    def abandon_trial(self) -> None:
        """Free the half-open trial slot when the trial ended without an outcome."""
        self._trial_in_flight = False

    def record_success(self) -> None:
        self._failures = 0
        self._opened_at = None
        self._trial_in_flight = False

    def record_failure(self, error: VikunjaToolsError) -> None:
        self._trial_in_flight = False
        if not isinstance(error, ConnectivityError):
            # The server answered, so the connection itself is healthy
            self.record_success()
            return
        self._failures += 1
        # A failed half-open trial reopens immediately
        if self._opened_at is not None or self._failures >= self.failure_threshold:
            logger.warning(
                "Circuit breaker opened",
                consecutive_failures=self._failures,
                reset_timeout=self.reset_timeout,
            )
            self._opened_at = self._clock()

    @classmethod
    def from_config(cls) -> "CircuitBreaker":
        return cls(
            failure_threshold=VikunjaConfig.CIRCUIT_BREAKER_THRESHOLD,
            reset_timeout=VikunjaConfig.CIRCUIT_BREAKER_RESET_SECONDS,
        )


async def call(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = NO_RETRY,
    *,
    description: str = "Vikunja request",
    breaker: Optional[CircuitBreaker] = None,
) -> T:
    """Run operation, retrying per policy; raise the classified terminal error.

    Errors the policy does not retry propagate at once without annotation.
    Exhausted retries raise the same error kind with the retry count added,
    chained to the original cause.
    """
    attempt = 0
    while True:
        if breaker is not None:
            breaker.before_call(description)
        try:
            result = await operation()
        except asyncio.CancelledError:
            if breaker is not None:
                breaker.abandon_trial()
            raise
        except Exception as exc:
            error = classify_error(exc, operation=description)
            if breaker is not None:
                breaker.record_failure(error)

            if not policy.should_retry(error) or (attempt == 0 and policy.max_retries == 0):
                if error is exc:
                    raise
                raise error from exc

            if attempt >= policy.max_retries:
                logger.error(
                    "Retries exhausted",
                    operation=description,
                    retries=attempt,
                    error_code=error.code,
                )
                raise error.with_retry_context(attempt) from exc

            delay = policy.delay_for(attempt)
            attempt += 1
            logger.warning(
                "Retrying remote call",
                operation=description,
                attempt=attempt,
                max_retries=policy.max_retries,
                delay_seconds=delay,
                error_code=error.code,
            )
            await asyncio.sleep(delay)
            continue

        if breaker is not None:
            breaker.record_success()
        return result
