"""Outcome value objects exchanged with collaborators.

A remote operation reports one of ``Success``, ``RateLimited``,
``TransientFailure`` or ``FatalFailure``; a cleanup step reports
``StepSucceeded`` or ``StepFailed``. The maintenance runner folds step
outcomes into a ``MaintenanceRunResult``.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple, Union

# === Remote Operation Outcomes ===

@dataclass(frozen=True)
class Success:
    """The remote call succeeded and produced ``payload``."""
    payload: Any = None


@dataclass(frozen=True)
class RateLimited:
    """The remote side explicitly rejected the call as over quota (e.g. HTTP 429)."""
    reason: str = "rate limited by remote service"


@dataclass(frozen=True)
class TransientFailure:
    """A failure worth retrying (timeouts, 5xx, malformed responses)."""
    reason: str


@dataclass(frozen=True)
class FatalFailure:
    """A failure that retrying cannot fix (bad credentials, bad request)."""
    reason: str


OperationOutcome = Union[Success, RateLimited, TransientFailure, FatalFailure]

# === Maintenance Step Outcomes ===

@dataclass(frozen=True)
class StepSucceeded:
    detail: str = ""


@dataclass(frozen=True)
class StepFailed:
    reason: str


StepOutcome = Union[StepSucceeded, StepFailed]

# --- Maintenance Run Result ---

class MaintenanceStatus(str, Enum):
    SKIPPED = "Skipped"
    SUCCEEDED = "Succeeded"
    PARTIALLY_FAILED = "PartiallyFailed"
    FAILED = "Failed"


@dataclass(frozen=True)
class StepFailure:
    """One failed maintenance step and the reason it gave."""
    step: str
    reason: str


@dataclass(frozen=True)
class MaintenanceRunResult:
    """Aggregated outcome of one maintenance pass.

    ``started_at`` is the timestamp to record as the last run when
    ``should_advance_last_run`` is true.
    """
    status: MaintenanceStatus
    reason: str = ""
    failures: Tuple[StepFailure, ...] = ()
    steps_run: Tuple[str, ...] = ()
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def skipped(cls, reason: str) -> "MaintenanceRunResult":
        return cls(status=MaintenanceStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, reason: str, started_at: Optional[datetime] = None) -> "MaintenanceRunResult":
        return cls(status=MaintenanceStatus.FAILED, reason=reason, started_at=started_at)

    @property
    def should_advance_last_run(self) -> bool:
        # Partial failures still advance so a broken step cannot force a run on every startup
        return self.status in (MaintenanceStatus.SUCCEEDED, MaintenanceStatus.PARTIALLY_FAILED)

    def summary(self) -> str:
        """One-line human-readable description, used in logs and the CLI."""
        if self.status is MaintenanceStatus.SKIPPED:
            return f"Maintenance skipped: {self.reason}"
        if self.status is MaintenanceStatus.FAILED:
            return f"Maintenance failed: {self.reason}"
        ran = ", ".join(self.steps_run) if self.steps_run else "no steps enabled"
        if self.status is MaintenanceStatus.SUCCEEDED:
            return f"Maintenance succeeded ({ran})"
        failed = "; ".join(f"{f.step}: {f.reason}" for f in self.failures)
        return f"Maintenance partially failed ({ran}). Failures: {failed}"
