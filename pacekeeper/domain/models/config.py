"""Immutable configuration snapshots for the throttle and the maintenance scheduler.

Snapshots are built once from a plain mapping (as read by a configuration
provider), validated field by field, and never mutated afterwards. Updating
the last maintenance run produces a new snapshot.
"""

import logging
from dataclasses import dataclass, fields, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pacekeeper.domain.errors import ConfigValidationError

logger = logging.getLogger(__name__)

# Defaults carried over from the settings the application shipped with.
DEFAULT_INTERVAL_MS = 500
DEFAULT_COUNT_THRESHOLD = 50
DEFAULT_COOLDOWN_MS = 5000
DEFAULT_RETRY_DELAY_MS = 5000
DEFAULT_MAX_ATTEMPTS = 3

DEFAULT_LOG_RETENTION_DAYS = 30
DEFAULT_MAX_SESSION_FILES_PER_DAY = 10
DEFAULT_LOG_DIRECTORY = "Logs"


class MaintenanceFrequency(str, Enum):
    """How often the maintenance pass should run."""
    EVERY_STARTUP = "EveryStartup"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"

    @classmethod
    def parse(cls, value: Any) -> "MaintenanceFrequency":
        """Accepts 'Daily', 'daily', 'every_startup', 'every-startup', 'EveryStartup'..."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ConfigValidationError("frequency", f"expected a string, got {type(value).__name__}")
        normalized = value.replace("_", "").replace("-", "").replace(" ", "").lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigValidationError("frequency", f"'{value}' is not one of {allowed}")


# --- Field Validation Helpers ---

def _as_int(value: Any, *, name: str, minimum: int) -> int:
    # bool is an int subclass; a flag in an interval slot is a config mistake
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            value = int(value.strip())
        else:
            raise ConfigValidationError(name, f"expected an integer, got {value!r}")
    if value < minimum:
        raise ConfigValidationError(name, f"must be >= {minimum}, got {value}")
    return value


def _as_bool(value: Any, *, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConfigValidationError(name, f"expected a boolean, got {value!r}")


def _as_datetime(value: Any, *, name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        # YAML loads a bare '2024-01-31' as a date
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ConfigValidationError(name, f"not an ISO-8601 timestamp: {value!r}") from e
    raise ConfigValidationError(name, f"expected a timestamp, got {value!r}")


def _warn_unknown_keys(mapping: Mapping[str, Any], known: set, section: str) -> None:
    unknown = sorted(set(mapping) - known)
    if unknown:
        logger.warning(f"Ignoring unknown {section} configuration keys: {', '.join(unknown)}")


# --- Snapshots ---

@dataclass(frozen=True)
class ThrottleConfig:
    """Request pacing, threshold/cooldown and retry parameters.

    Durations are milliseconds. ``window_ms`` bounds how long a counting
    window may last; ``None`` keeps a window open until a cooldown closes it.
    """
    interval_ms: int = DEFAULT_INTERVAL_MS
    count_threshold: int = DEFAULT_COUNT_THRESHOLD
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    enabled: bool = True
    window_ms: Optional[int] = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        # Normalize in place so string values from env vars or YAML end up typed.
        _set = object.__setattr__
        _set(self, "interval_ms", _as_int(self.interval_ms, name="interval_ms", minimum=1))
        _set(self, "count_threshold", _as_int(self.count_threshold, name="count_threshold", minimum=1))
        _set(self, "cooldown_ms", _as_int(self.cooldown_ms, name="cooldown_ms", minimum=0))
        _set(self, "retry_delay_ms", _as_int(self.retry_delay_ms, name="retry_delay_ms", minimum=0))
        _set(self, "max_attempts", _as_int(self.max_attempts, name="max_attempts", minimum=1))
        _set(self, "enabled", _as_bool(self.enabled, name="enabled"))
        if self.window_ms is not None:
            _set(self, "window_ms", _as_int(self.window_ms, name="window_ms", minimum=1))

    @classmethod
    def defaults(cls) -> "ThrottleConfig":
        return cls()

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "ThrottleConfig":
        """Builds a validated snapshot; missing keys take their defaults.

        Raises:
            ConfigValidationError: If any value has the wrong type or is out of range.
        """
        mapping = dict(mapping or {})
        known = {f.name for f in fields(cls)}
        _warn_unknown_keys(mapping, known, "throttle")
        return cls(**{k: v for k, v in mapping.items() if k in known})

    def to_mapping(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class MaintenanceConfig:
    """Maintenance frequency, retention and enable flags plus the last run timestamp."""
    frequency: MaintenanceFrequency = MaintenanceFrequency.EVERY_STARTUP
    last_run: Optional[datetime] = None
    log_retention_days: int = DEFAULT_LOG_RETENTION_DAYS
    max_session_files_per_day: int = DEFAULT_MAX_SESSION_FILES_PER_DAY
    log_directory: str = DEFAULT_LOG_DIRECTORY
    enable_log_cleanup: bool = True
    enable_orphaned_task_cleanup: bool = True
    enable_periodic_maintenance: bool = False

    def __post_init__(self) -> None:
        _set = object.__setattr__
        _set(self, "frequency", MaintenanceFrequency.parse(self.frequency))
        _set(self, "last_run", _as_datetime(self.last_run, name="last_run"))
        _set(self, "log_retention_days", _as_int(self.log_retention_days, name="log_retention_days", minimum=0))
        _set(self, "max_session_files_per_day",
             _as_int(self.max_session_files_per_day, name="max_session_files_per_day", minimum=0))
        if self.log_directory is None or not str(self.log_directory).strip():
            raise ConfigValidationError("log_directory", "must be a non-empty path")
        _set(self, "log_directory", str(self.log_directory))
        for name in ("enable_log_cleanup", "enable_orphaned_task_cleanup", "enable_periodic_maintenance"):
            _set(self, name, _as_bool(getattr(self, name), name=name))

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "MaintenanceConfig":
        """Builds a validated snapshot; missing keys take their defaults.

        Raises:
            ConfigValidationError: If any value has the wrong type or is out of range.
        """
        mapping = dict(mapping or {})
        known = {f.name for f in fields(cls)}
        _warn_unknown_keys(mapping, known, "maintenance")
        return cls(**{k: v for k, v in mapping.items() if k in known})

    def to_mapping(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["frequency"] = self.frequency.value
        data["last_run"] = self.last_run.isoformat() if self.last_run else None
        return data

    def with_last_run(self, timestamp: datetime) -> "MaintenanceConfig":
        """Returns a copy recording ``timestamp`` as the last successful run."""
        return replace(self, last_run=timestamp)
