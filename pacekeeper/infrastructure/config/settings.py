"""Provides functions for loading and accessing configuration settings.

Supports loading from a YAML configuration file (``~/.pacekeeper/config.yaml``
by default), a ``.env`` file and environment variables, and implements the
ConfigurationProvider interface on top of them.

Example ``config.yaml``::

    throttle:
      interval_ms: 500
      count_threshold: 50
      cooldown_ms: 5000
      retry_delay_ms: 5000
      enabled: true
      max_attempts: 3
    maintenance:
      frequency: Daily
      log_directory: Logs
      log_retention_days: 30
      max_session_files_per_day: 10
      enable_log_cleanup: true
      enable_orphaned_task_cleanup: true
      last_run: 2024-01-31T08:15:00
    logging:
      level: INFO
"""

import logging
import os
import tempfile
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from pacekeeper.domain.errors import PersistenceFailure
from pacekeeper.domain.interfaces.config import ConfigurationProvider
from pacekeeper.domain.models.config import MaintenanceConfig, ThrottleConfig

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".pacekeeper"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "PACEKEEPER_"
CONFIG_FILE_ENV = "PACEKEEPER_CONFIG"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded_from: Optional[Path] = None


def default_config_file() -> Path:
    """The YAML file to use when none is given: $PACEKEEPER_CONFIG or ~/.pacekeeper/config.yaml."""
    override = os.environ.get(CONFIG_FILE_ENV)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_FILE


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    with open(config_file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config file {config_file} did not contain a mapping")
    return data


def load_configuration(
    config_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
    *,
    reload: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file (never overrides variables already set)
    3. YAML configuration file
    4. Defaults of the configuration snapshots

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        reload: Re-read even if this file was already loaded.
    """
    global _config, _loaded_from
    config_file = Path(config_file) if config_file else default_config_file()
    if _loaded_from == config_file and not reload:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            _config.update(_read_yaml(config_file))
            logger.info(f"Loaded configuration from YAML: {config_file}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file (medium priority); environment variables are read in get_config
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no .env found).")

    _loaded_from = config_file
    logger.info("Configuration loading process completed.")


def _coerce_env(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("null", "none"):
        return None
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _lookup(data: Dict[str, Any], key: str) -> Any:
    """Resolves a dotted key ('throttle.interval_ms') against nested mappings."""
    if key in data:
        return data[key]
    node: Any = data
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by dotted key.

    Priority:
    1. Test configuration (if set)
    2. Environment variable (PACEKEEPER_THROTTLE_INTERVAL_MS for 'throttle.interval_ms')
    3. YAML config
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if _loaded_from is None:
        load_configuration()

    if key in _test_config:
        return _test_config[key]

    env_key = ENV_PREFIX + key.upper().replace(".", "_")
    if env_key in os.environ:
        return _coerce_env(os.environ[env_key])

    value = _lookup(_config, key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of dotted keys to values
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# --- Configuration Provider ---

class YamlConfigurationProvider(ConfigurationProvider):
    """Builds validated snapshots from the layered settings and persists the last run to YAML."""

    def __init__(self, config_file: Optional[Path] = None, env_file: Optional[Path] = None):
        self.config_file = Path(config_file) if config_file else default_config_file()
        self.env_file = env_file

    def _section(self, section: str, snapshot_cls: type) -> Dict[str, Any]:
        load_configuration(self.config_file, self.env_file, reload=True)
        raw = _lookup(_config, section)
        mapping = dict(raw) if isinstance(raw, dict) else {}
        # Environment and test overrides win over the YAML section, field by field
        for f in fields(snapshot_cls):
            value = get_config(f"{section}.{f.name}")
            if value is not None:
                mapping[f.name] = value
        return mapping

    def load_throttle_config(self) -> ThrottleConfig:
        config = ThrottleConfig.from_mapping(self._section("throttle", ThrottleConfig))
        logger.debug(f"Throttle configuration: {config}")
        return config

    def load_maintenance_config(self) -> MaintenanceConfig:
        config = MaintenanceConfig.from_mapping(self._section("maintenance", MaintenanceConfig))
        logger.debug(f"Maintenance configuration: {config}")
        return config

    def persist_last_run(self, timestamp: datetime) -> bool:
        try:
            data = self._read_for_update()
            section = data.get("maintenance")
            if not isinstance(section, dict):
                section = {}
            section["last_run"] = timestamp.isoformat()
            data["maintenance"] = section
            self._write(data)
        except PersistenceFailure as e:
            logger.error(f"Error saving maintenance config: {e}")
            return False
        return True

    def _read_for_update(self) -> Dict[str, Any]:
        if not self.config_file.exists():
            return {}
        try:
            return _read_yaml(self.config_file)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise PersistenceFailure(f"Cannot read {self.config_file} for update: {e}") from e

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file and swap it in, so a crash never leaves a truncated config
            fd, tmp_path = tempfile.mkstemp(dir=self.config_file.parent, prefix=".config-", suffix=".yaml")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
                os.replace(tmp_path, self.config_file)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceFailure(f"Cannot write {self.config_file}: {e}") from e
        load_configuration(self.config_file, self.env_file, reload=True)
        logger.debug(f"Configuration written to {self.config_file}")
