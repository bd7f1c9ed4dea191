"""Interface for configuration providers.

Supplies the throttle and maintenance snapshots at engine construction and
persists the last maintenance run. The engine never re-reads configuration
mid-lifetime.
"""

import abc
from datetime import datetime

from pacekeeper.domain.models.config import MaintenanceConfig, ThrottleConfig


class ConfigurationProvider(abc.ABC):
    """Abstract Base Class for loading and persisting configuration snapshots."""

    @abc.abstractmethod
    def load_throttle_config(self) -> ThrottleConfig:
        """Loads and validates the throttle snapshot.

        Raises:
            ConfigValidationError: If a configured value is invalid.
        """
        pass

    @abc.abstractmethod
    def load_maintenance_config(self) -> MaintenanceConfig:
        """Loads and validates the maintenance snapshot.

        Raises:
            ConfigValidationError: If a configured value is invalid.
        """
        pass

    @abc.abstractmethod
    def persist_last_run(self, timestamp: datetime) -> bool:
        """Durably records ``timestamp`` as the last successful maintenance run.

        Returns:
            True when written, False when the write failed and was logged.

        Raises:
            PersistenceFailure: Implementations may raise instead of returning False.
        """
        pass
