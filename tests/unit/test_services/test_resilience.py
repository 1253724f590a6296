"""Tests for the retry wrapper and circuit breaker."""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from vikunja_tools.services.error_classifier import is_authentication_error
from vikunja_tools.services.resilience import NO_RETRY, CircuitBreaker, RetryPolicy, auth_retry_policy, call
from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.errors import (
    AuthenticationError,
    ConnectivityError,
    NotFoundError,
    UnknownError,
    ValidationError,
)
from tests.utils.helpers import api_error, connection_refused


def _auth_policy(max_retries: int = 3) -> RetryPolicy:
    return RetryPolicy(max_retries=max_retries, initial_delay=0, max_delay=0, should_retry=is_authentication_error)


@pytest.mark.unit
def test_delay_schedule_is_capped_exponential():
    policy = RetryPolicy(max_retries=5, initial_delay=1.0, max_delay=10.0, backoff_factor=2)
    assert [policy.delay_for(n) for n in range(5)] == [1.0, 2.0, 4.0, 8.0, 10.0]


@pytest.mark.unit
def test_auth_retry_policy_reads_config(monkeypatch):
    monkeypatch.setattr(VikunjaConfig, "AUTH_RETRY_MAX_RETRIES", 4)
    monkeypatch.setattr(VikunjaConfig, "AUTH_RETRY_INITIAL_DELAY_MS", 500)
    monkeypatch.setattr(VikunjaConfig, "AUTH_RETRY_MAX_DELAY_MS", 3000)
    policy = auth_retry_policy()
    assert policy.max_retries == 4
    assert policy.initial_delay == 0.5
    assert policy.max_delay == 3.0
    assert policy.should_retry(AuthenticationError("rejected"))
    assert not policy.should_retry(NotFoundError("gone"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_call_returns_result():
    operation = AsyncMock(return_value={"id": 1})
    assert await call(operation, _auth_policy(), description="Get task 1") == {"id": 1}
    operation.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_call_retries_authentication_errors_until_success():
    operation = AsyncMock(side_effect=[api_error(401, "token expired"), api_error(401, "token expired"), "ok"])
    assert await call(operation, _auth_policy(), description="Add labels") == "ok"
    assert operation.await_count == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_call_annotates_error_after_exhausting_retries():
    cause = api_error(401, "token expired")
    operation = AsyncMock(side_effect=cause)

    with pytest.raises(AuthenticationError) as exc_info:
        await call(operation, _auth_policy(max_retries=3), description="Add labels to task 5")

    error = exc_info.value
    assert operation.await_count == 4
    assert error.retries == 3
    assert "failed after 3 retries" in error.message
    assert error.details["retries"] == 3
    assert error.__cause__ is cause


@pytest.mark.unit
@pytest.mark.asyncio
async def test_call_does_not_retry_other_errors():
    operation = AsyncMock(side_effect=api_error(404, "task does not exist"))

    with pytest.raises(NotFoundError) as exc_info:
        await call(operation, _auth_policy(), description="Get task 9")

    assert operation.await_count == 1
    assert exc_info.value.retries is None
    assert "retries" not in exc_info.value.message


@pytest.mark.unit
@pytest.mark.asyncio
async def test_call_propagates_classified_errors_unmodified():
    original = ValidationError("bad input")
    operation = AsyncMock(side_effect=original)

    with pytest.raises(ValidationError) as exc_info:
        await call(operation, _auth_policy(), description="anything")

    assert exc_info.value is original


@pytest.mark.unit
@pytest.mark.asyncio
async def test_call_classifies_transport_failures():
    operation = AsyncMock(side_effect=connection_refused())

    with pytest.raises(ConnectivityError) as exc_info:
        await call(operation, NO_RETRY, description="List projects")

    assert "VIKUNJA_URL" in exc_info.value.message


@pytest.mark.unit
@pytest.mark.asyncio
async def test_call_sleeps_according_to_schedule():
    policy = RetryPolicy(max_retries=2, initial_delay=1.0, max_delay=10.0, should_retry=is_authentication_error)
    operation = AsyncMock(side_effect=[api_error(401), api_error(401), "ok"])

    with patch("vikunja_tools.services.resilience.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        await call(operation, policy, description="Add assignees")

    assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.unit
@pytest.mark.asyncio
async def test_breaker_opens_after_consecutive_connectivity_failures():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=2, reset_timeout=30, clock=clock)
    failing = AsyncMock(side_effect=connection_refused())

    for _ in range(2):
        with pytest.raises(ConnectivityError):
            await call(failing, NO_RETRY, description="List tasks", breaker=breaker)
    assert breaker.state == CircuitBreaker.OPEN

    untouched = AsyncMock(return_value="ok")
    with pytest.raises(ConnectivityError, match="circuit breaker is open"):
        await call(untouched, NO_RETRY, description="List tasks", breaker=breaker)
    untouched.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_breaker_half_open_trial_closes_on_success():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30, clock=clock)

    with pytest.raises(ConnectivityError):
        await call(AsyncMock(side_effect=connection_refused()), NO_RETRY, description="x", breaker=breaker)
    assert breaker.state == CircuitBreaker.OPEN

    clock.now += 31
    assert breaker.state == CircuitBreaker.HALF_OPEN
    assert await call(AsyncMock(return_value="ok"), NO_RETRY, description="x", breaker=breaker) == "ok"
    assert breaker.state == CircuitBreaker.CLOSED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_breaker_ignores_errors_the_server_answered():
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30)

    with pytest.raises(UnknownError):
        await call(AsyncMock(side_effect=api_error(500, "boom")), NO_RETRY, description="x", breaker=breaker)

    assert breaker.state == CircuitBreaker.CLOSED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_breaker_half_open_admits_a_single_trial():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30, clock=clock)
    with pytest.raises(ConnectivityError):
        await call(AsyncMock(side_effect=connection_refused()), NO_RETRY, description="x", breaker=breaker)
    clock.now += 31

    release = asyncio.Event()

    async def slow_trial():
        await release.wait()
        return "ok"

    trial = asyncio.create_task(call(slow_trial, NO_RETRY, description="Trial", breaker=breaker))
    await asyncio.sleep(0)

    concurrent = AsyncMock(return_value="ok")
    with pytest.raises(ConnectivityError, match="half-open") as exc_info:
        await call(concurrent, NO_RETRY, description="List tasks", breaker=breaker)
    concurrent.assert_not_awaited()
    assert exc_info.value.details["circuit_state"] == CircuitBreaker.HALF_OPEN

    release.set()
    assert await trial == "ok"
    assert breaker.state == CircuitBreaker.CLOSED
    assert await call(concurrent, NO_RETRY, description="List tasks", breaker=breaker) == "ok"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_breaker_cancelled_trial_frees_the_slot():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30, clock=clock)
    with pytest.raises(ConnectivityError):
        await call(AsyncMock(side_effect=connection_refused()), NO_RETRY, description="x", breaker=breaker)
    clock.now += 31

    trial = asyncio.create_task(call(asyncio.Event().wait, NO_RETRY, description="Trial", breaker=breaker))
    await asyncio.sleep(0)
    trial.cancel()
    with pytest.raises(asyncio.CancelledError):
        await trial

    assert breaker.state == CircuitBreaker.HALF_OPEN
    assert await call(AsyncMock(return_value="ok"), NO_RETRY, description="x", breaker=breaker) == "ok"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_breaker_failed_trial_reopens():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=3, reset_timeout=30, clock=clock)
    failing = AsyncMock(side_effect=connection_refused())
    for _ in range(3):
        with pytest.raises(ConnectivityError):
            await call(failing, NO_RETRY, description="x", breaker=breaker)
    clock.now += 31

    with pytest.raises(ConnectivityError):
        await call(failing, NO_RETRY, description="x", breaker=breaker)

    assert breaker.state == CircuitBreaker.OPEN
    assert failing.await_count == 4
