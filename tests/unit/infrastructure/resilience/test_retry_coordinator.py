import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pacekeeper.domain.errors import (
    FatalOperationFailure, RateLimitExhausted, TransientOperationFailure
)
from pacekeeper.domain.events.engine_events import (
    AttemptRejected, AttemptStarted, OperationFailed, OperationSucceeded
)
from pacekeeper.domain.models.config import ThrottleConfig
from pacekeeper.domain.models.outcomes import FatalFailure, RateLimited, Success, TransientFailure
from pacekeeper.infrastructure.resilience.retry_coordinator import RetryCoordinator
from pacekeeper.infrastructure.resilience.throttle_gate import ThrottleGate


@pytest.fixture
def mock_gate():
    gate = MagicMock(spec=ThrottleGate)
    gate.acquire = AsyncMock(return_value=None)
    return gate


@pytest.fixture
def coordinator(mock_gate, events):
    return RetryCoordinator(mock_gate, event_sink=events.append)


def scripted(*outcomes):
    """An operation returning ``outcomes`` in order, counting calls."""
    return AsyncMock(side_effect=list(outcomes))


def test_success_returns_payload(coordinator, mock_gate, events):
    operation = scripted(Success(payload={"id": 42}))

    result = asyncio.run(coordinator.execute(operation, 3, name="fetch_invoice"))

    assert result == {"id": 42}
    assert mock_gate.acquire.await_count == 1
    mock_gate.notify_rate_limited.assert_not_called()
    succeeded = [e for e in events if isinstance(e, OperationSucceeded)]
    assert succeeded[0].operation == "fetch_invoice"
    assert succeeded[0].attempts == 1


def test_always_rate_limited_uses_exactly_max_attempts(coordinator, mock_gate, events):
    operation = scripted(RateLimited(), RateLimited(), RateLimited())

    with pytest.raises(RateLimitExhausted) as exc_info:
        asyncio.run(coordinator.execute(operation, 3, name="submit"))

    assert operation.await_count == 3
    assert mock_gate.acquire.await_count == 3
    assert mock_gate.notify_rate_limited.call_count == 3
    assert exc_info.value.attempts == 3
    assert exc_info.value.operation_name == "submit"
    assert len([e for e in events if isinstance(e, AttemptStarted)]) == 3
    assert [e.error_type for e in events if isinstance(e, OperationFailed)] == ["RateLimitExhausted"]


def test_rate_limited_then_success(coordinator, mock_gate):
    operation = scripted(RateLimited("slow down"), Success("ok"))

    result = asyncio.run(coordinator.execute(operation, 3))

    assert result == "ok"
    assert mock_gate.notify_rate_limited.call_count == 1
    assert mock_gate.acquire.await_count == 2


def test_transient_failure_retried_without_rate_limit_signal(coordinator, mock_gate, events):
    operation = scripted(TransientFailure("connection reset"), Success(None))

    asyncio.run(coordinator.execute(operation, 3))

    assert operation.await_count == 2
    mock_gate.notify_rate_limited.assert_not_called()
    rejected = [e for e in events if isinstance(e, AttemptRejected)]
    assert [(e.attempt_number, e.outcome) for e in rejected] == [(1, "transient")]


def test_transient_failure_exhausts_attempts(coordinator, mock_gate):
    operation = scripted(TransientFailure("timeout"), TransientFailure("timeout"))

    with pytest.raises(TransientOperationFailure) as exc_info:
        asyncio.run(coordinator.execute(operation, 2))

    assert exc_info.value.reason == "timeout"
    assert exc_info.value.attempts == 2
    assert mock_gate.acquire.await_count == 2


def test_fatal_failure_stops_immediately(coordinator, mock_gate, events):
    operation = scripted(FatalFailure("invalid credentials"), Success("never"))

    with pytest.raises(FatalOperationFailure) as exc_info:
        asyncio.run(coordinator.execute(operation, 5))

    assert operation.await_count == 1
    assert mock_gate.acquire.await_count == 1
    assert exc_info.value.reason == "invalid credentials"
    assert [e.error_type for e in events if isinstance(e, OperationFailed)] == ["FatalOperationFailure"]


def test_single_attempt_budget(coordinator, mock_gate):
    operation = scripted(RateLimited())

    with pytest.raises(RateLimitExhausted):
        asyncio.run(coordinator.execute(operation, 1))

    assert mock_gate.acquire.await_count == 1


@pytest.mark.parametrize("max_attempts", [0, -1])
def test_invalid_max_attempts_rejected(coordinator, mock_gate, max_attempts):
    operation = scripted(Success())

    with pytest.raises(ValueError):
        asyncio.run(coordinator.execute(operation, max_attempts))

    operation.assert_not_called()
    mock_gate.acquire.assert_not_called()


def test_unknown_outcome_type_raises_type_error(coordinator):
    operation = scripted("not an outcome")

    with pytest.raises(TypeError):
        asyncio.run(coordinator.execute(operation, 3))


def test_timeout_bounds_whole_operation(mock_gate):
    coordinator = RetryCoordinator(mock_gate)

    async def hangs():
        await asyncio.sleep(10)
        return Success()

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(coordinator.execute(hangs, 3, timeout_s=0.01))


def test_rate_limited_retries_wait_on_real_gate(clock):
    config = ThrottleConfig(interval_ms=100, retry_delay_ms=2000, count_threshold=50)
    coordinator = RetryCoordinator(ThrottleGate(config, clock))
    operation = scripted(RateLimited(), RateLimited(), Success("done"))

    result = asyncio.run(coordinator.execute(operation, config.max_attempts))

    assert result == "done"
    # Each retry waits the server-signalled delay rather than just the interval
    assert clock.sleeps == pytest.approx([2.0, 2.0])
