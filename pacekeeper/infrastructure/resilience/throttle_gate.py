"""Implementation of the request throttle gate.

Spaces consecutive admissions by at least the configured interval, counts
admissions against a threshold and forces a cooldown once the threshold is
reached, and applies a server-signalled backoff when the remote side rejects
a call as rate limited.

The wait decision and all state changes happen under a lock; the waiting
itself happens outside it. Each caller's admission slot is committed before
it sleeps, so cancelling a waiting caller never leaves the state half-updated.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Optional

from pacekeeper.domain.events.engine_events import (
    AdmissionDeferred, CooldownScheduled, EventSink, log_event
)
from pacekeeper.domain.interfaces.clock import Clock
from pacekeeper.domain.models.config import ThrottleConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrottleState:
    """Mutable-by-replacement throttle bookkeeping. Times are clock.monotonic() seconds."""
    last_request_time: Optional[float] = None
    window_start: Optional[float] = None
    requests_in_window: int = 0
    cooldown_until: Optional[float] = None


class ThrottleGate:
    """Interval pacing plus threshold cooldown, shared by all callers in the process."""

    def __init__(self, config: ThrottleConfig, clock: Clock, event_sink: Optional[EventSink] = None):
        """Initializes the gate.

        Args:
            config: Throttle snapshot; read once, never re-read.
            clock: Time source used for pacing and sleeping.
            event_sink: Optional receiver of AdmissionDeferred/CooldownScheduled events.
        """
        self.config = config
        self.clock = clock
        self._emit = event_sink or log_event
        self._interval = config.interval_ms / 1000.0
        self._cooldown = config.cooldown_ms / 1000.0
        self._retry_delay = config.retry_delay_ms / 1000.0
        self._window = config.window_ms / 1000.0 if config.window_ms is not None else None
        self._state = ThrottleState()
        # Never held across an await; callers from several threads/loops are fine
        self._lock = threading.Lock()
        logger.info(
            f"ThrottleGate initialized: enabled={config.enabled}, interval={config.interval_ms}ms, "
            f"threshold={config.count_threshold}, cooldown={config.cooldown_ms}ms, "
            f"retry_delay={config.retry_delay_ms}ms, window={config.window_ms or 'until cooldown'}"
        )

    def snapshot(self) -> ThrottleState:
        """Returns a consistent copy of the current state."""
        with self._lock:
            return self._state

    def _reserve(self) -> float:
        """Commits the next admission slot and returns how long the caller must wait.

        Must be called with the lock held.
        """
        now = self.clock.monotonic()
        state = self._state
        admit_at = now
        waited_on_cooldown = False

        # Pending cooldown: the admission moves to its end, then it is cleared
        cooldown_until = state.cooldown_until
        if cooldown_until is not None:
            if admit_at < cooldown_until:
                admit_at = cooldown_until
                waited_on_cooldown = True
            cooldown_until = None

        if state.last_request_time is not None:
            earliest = state.last_request_time + self._interval
            if admit_at < earliest:
                admit_at = earliest

        window_start = state.window_start
        count = state.requests_in_window
        window_expired = (
            window_start is None
            or count == 0
            or (self._window is not None and admit_at - window_start >= self._window)
        )
        if window_expired:
            window_start = admit_at
            count = 1
        else:
            count += 1

        if count >= self.config.count_threshold:
            # The triggering call still goes through; the next caller pays the cooldown
            cooldown_until = admit_at + self._cooldown
            logger.info(
                f"Throttle: reached {self.config.count_threshold} requests, "
                f"applying cooldown of {self.config.cooldown_ms}ms to the next request"
            )
            self._emit(CooldownScheduled(reason="threshold", duration_seconds=self._cooldown))
            count = 0
            window_start = None

        self._state = ThrottleState(
            last_request_time=admit_at,
            window_start=window_start,
            requests_in_window=count,
            cooldown_until=cooldown_until,
        )

        wait = admit_at - now
        if wait > 0:
            self._emit(AdmissionDeferred(wait_time_seconds=wait, cooldown=waited_on_cooldown))
        return wait

    async def acquire(self) -> None:
        """Waits until the calling attempt is admitted.

        Returns immediately when throttling is disabled. Cancellation of the
        waiting task only affects that task: its slot was already committed.
        """
        if not self.config.enabled:
            return

        with self._lock:
            wait = self._reserve()

        if wait > 0:
            logger.debug(f"Throttle: waiting {wait * 1000:.0f}ms before next request")
            await self.clock.sleep(wait)

    def notify_rate_limited(self) -> None:
        """Records an explicit rate-limit rejection from the remote side.

        Replaces any pending cooldown, longer or shorter, with one ending
        ``retry_delay_ms`` from now.
        """
        with self._lock:
            until = self.clock.monotonic() + self._retry_delay
            self._state = replace(self._state, cooldown_until=until)
        logger.warning(f"Rate limit signalled by remote service. Backing off {self.config.retry_delay_ms}ms.")
        self._emit(CooldownScheduled(reason="rate_limited", duration_seconds=self._retry_delay))
