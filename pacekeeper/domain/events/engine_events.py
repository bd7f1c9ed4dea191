"""Domain Events raised by the throttle, the retry coordinator and maintenance.

Components accept an optional event sink (any callable taking a
``DomainEvent``); ``log_event`` is the default sink and writes events to
the debug log.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


EventSink = Callable[[DomainEvent], None]


def log_event(event: DomainEvent) -> None:
    """Default event sink."""
    logger.debug(f"EVENT: {event}")

# --- Throttle Events ---

@dataclass
class AdmissionDeferred(DomainEvent):
    """An attempt must wait before it is admitted."""
    wait_time_seconds: float
    cooldown: bool = False # True when the wait includes a pending cooldown
    timestamp: float = field(default_factory=time.time)

@dataclass
class CooldownScheduled(DomainEvent):
    """A cooldown was scheduled, either by the local threshold or a server signal."""
    reason: str # 'threshold' or 'rate_limited'
    duration_seconds: float
    timestamp: float = field(default_factory=time.time)

# --- Retry Coordinator Events ---

@dataclass
class AttemptStarted(DomainEvent):
    operation: str
    attempt_number: int
    max_attempts: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class AttemptRejected(DomainEvent):
    """An attempt returned RateLimited or TransientFailure."""
    operation: str
    attempt_number: int
    outcome: str
    reason: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class OperationSucceeded(DomainEvent):
    operation: str
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class OperationFailed(DomainEvent):
    """The operation failed definitively (fatal or attempts exhausted)."""
    operation: str
    attempts: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)

# --- Maintenance Events ---

@dataclass
class MaintenanceStepFinished(DomainEvent):
    step: str
    succeeded: bool
    detail: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
