"""Service for executing remote calls through the throttle gate with retries.

Every attempt is admitted by the ThrottleGate first. A ``RateLimited``
outcome tells the gate to back off before the next attempt; a
``TransientFailure`` is retried with the normal pacing; a ``FatalFailure``
stops immediately. The attempt budget is always supplied by the caller.
"""

import asyncio
import logging
import time
from typing import Any, Optional

from pacekeeper.domain.errors import (
    FatalOperationFailure, RateLimitExhausted, TransientOperationFailure
)
from pacekeeper.domain.events.engine_events import (
    AttemptRejected, AttemptStarted, EventSink, OperationFailed, OperationSucceeded, log_event
)
from pacekeeper.domain.interfaces.remote_operation import RemoteOperation
from pacekeeper.domain.models.outcomes import FatalFailure, RateLimited, Success, TransientFailure
from pacekeeper.infrastructure.resilience.throttle_gate import ThrottleGate

logger = logging.getLogger(__name__)


class RetryCoordinator:
    """Runs one logical remote operation with throttle-aware pacing and rejection recovery."""

    def __init__(self, throttle_gate: ThrottleGate, event_sink: Optional[EventSink] = None):
        """Initializes the RetryCoordinator.

        Args:
            throttle_gate: The gate shared by every caller of the remote API.
            event_sink: Optional receiver of attempt/outcome events.
        """
        self.throttle_gate = throttle_gate
        self._emit = event_sink or log_event

    async def execute(
        self,
        operation: RemoteOperation,
        max_attempts: int,
        *,
        name: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ) -> Any:
        """Executes ``operation`` until it succeeds, fails fatally, or the budget runs out.

        Args:
            operation: Zero-argument coroutine function returning an OperationOutcome.
            max_attempts: Total attempts allowed, including the first (>= 1).
            name: Label for logs, events and error messages.
            timeout_s: Optional bound on the whole operation including waits.

        Returns:
            The payload of the ``Success`` outcome.

        Raises:
            ValueError: If ``max_attempts`` is below 1.
            RateLimitExhausted: Still rate limited after the last attempt.
            TransientOperationFailure: Still failing transiently after the last attempt.
            FatalOperationFailure: The operation reported a fatal failure.
            asyncio.TimeoutError: ``timeout_s`` elapsed.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if timeout_s is not None:
            return await asyncio.wait_for(self._run(operation, max_attempts, name), timeout=timeout_s)
        return await self._run(operation, max_attempts, name)

    async def _run(self, operation: RemoteOperation, max_attempts: int, name: Optional[str]) -> Any:
        op_name = name or getattr(operation, "__name__", "operation")

        for attempt in range(1, max_attempts + 1):
            await self.throttle_gate.acquire()

            self._emit(AttemptStarted(operation=op_name, attempt_number=attempt, max_attempts=max_attempts))
            logger.debug(f"Calling {op_name} (attempt {attempt} of {max_attempts})")
            start_time = time.perf_counter()
            outcome = await operation()
            latency_ms = (time.perf_counter() - start_time) * 1000

            if isinstance(outcome, Success):
                self._emit(OperationSucceeded(operation=op_name, attempts=attempt, latency_ms=latency_ms))
                return outcome.payload

            if isinstance(outcome, FatalFailure):
                logger.error(f"Non-retryable failure calling {op_name} on attempt {attempt}: {outcome.reason}")
                self._fail(op_name, attempt, FatalOperationFailure(outcome.reason, attempt, op_name))

            if isinstance(outcome, RateLimited):
                self.throttle_gate.notify_rate_limited()
                self._emit(AttemptRejected(operation=op_name, attempt_number=attempt,
                                           outcome="rate_limited", reason=outcome.reason))
                if attempt == max_attempts:
                    logger.error(f"Max attempts ({max_attempts}) reached for {op_name} while rate limited.")
                    self._fail(op_name, attempt, RateLimitExhausted(outcome.reason, attempt, op_name))
                logger.warning(f"{op_name} rate limited on attempt {attempt}/{max_attempts}: {outcome.reason}")
                continue

            if isinstance(outcome, TransientFailure):
                self._emit(AttemptRejected(operation=op_name, attempt_number=attempt,
                                           outcome="transient", reason=outcome.reason))
                if attempt == max_attempts:
                    logger.error(f"Max attempts ({max_attempts}) reached for {op_name}. Last error: {outcome.reason}")
                    self._fail(op_name, attempt, TransientOperationFailure(outcome.reason, attempt, op_name))
                logger.warning(f"Transient failure calling {op_name} on attempt {attempt}/{max_attempts}: {outcome.reason}")
                continue

            raise TypeError(f"{op_name} returned {type(outcome).__name__}, expected an OperationOutcome")

        # range() is non-empty because max_attempts >= 1 and every branch returns, raises or continues
        raise AssertionError("unreachable")

    def _fail(self, op_name: str, attempts: int, error: Exception) -> None:
        self._emit(OperationFailed(operation=op_name, attempts=attempts,
                                   error_type=type(error).__name__, error_message=str(error)))
        raise error
