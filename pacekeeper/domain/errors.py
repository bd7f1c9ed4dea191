"""Exception hierarchy for pacekeeper.

Failures are classified where they originate (operation collaborators,
cleanup collaborators, the configuration provider) and surfaced to callers
with a human-readable reason. The throttle gate itself never raises.
"""

from typing import Optional


class PacekeeperError(Exception):
    """Base exception for all pacekeeper errors."""


class ConfigValidationError(PacekeeperError):
    """Raised when a configuration value is missing, mistyped or out of range."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid configuration for '{field}': {message}")


# --- Remote Operation Failures ---

class OperationError(PacekeeperError):
    """Base class for classified failures of a throttled remote operation."""

    def __init__(self, reason: str, attempts: int, operation_name: Optional[str] = None):
        self.reason = reason
        self.attempts = attempts
        self.operation_name = operation_name
        label = f"'{operation_name}' " if operation_name else ""
        super().__init__(f"Operation {label}failed after {attempts} attempt(s): {reason}")


class RateLimitExhausted(OperationError):
    """All attempts were consumed while the remote side kept rejecting as rate limited."""


class TransientOperationFailure(OperationError):
    """A transient failure persisted through the whole attempt budget."""


class FatalOperationFailure(OperationError):
    """A failure the remote side reported as fatal. Never retried."""


# --- Maintenance Failures ---

class MaintenanceStepFailure(PacekeeperError):
    """A single maintenance step failed. Collected into the run result, not raised out of it."""

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"Maintenance step '{step}' failed: {reason}")


class PersistenceFailure(PacekeeperError):
    """Raised by a configuration provider when a snapshot could not be written."""
