from datetime import datetime
from pathlib import Path

import pytest
import yaml

from pacekeeper.domain.errors import ConfigValidationError
from pacekeeper.domain.models.config import MaintenanceFrequency
from pacekeeper.infrastructure.config.settings import (
    YamlConfigurationProvider, get_config, load_configuration, set_config_for_testing
)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "throttle": {"interval_ms": 250, "count_threshold": 20},
        "maintenance": {"frequency": "Weekly", "log_directory": "var/logs"},
        "logging": {"level": "DEBUG"},
    }))
    return path


def test_get_config_reads_nested_yaml_keys(config_file):
    load_configuration(config_file, reload=True)
    assert get_config("throttle.interval_ms") == 250
    assert get_config("logging.level") == "DEBUG"
    assert get_config("throttle.missing", default="fallback") == "fallback"


def test_environment_overrides_yaml(config_file, monkeypatch):
    monkeypatch.setenv("PACEKEEPER_THROTTLE_INTERVAL_MS", "900")
    monkeypatch.setenv("PACEKEEPER_THROTTLE_ENABLED", "false")
    load_configuration(config_file, reload=True)
    assert get_config("throttle.interval_ms") == 900
    assert get_config("throttle.enabled") is False


def test_test_config_overrides_everything(config_file, monkeypatch):
    monkeypatch.setenv("PACEKEEPER_THROTTLE_INTERVAL_MS", "900")
    load_configuration(config_file, reload=True)
    set_config_for_testing({"throttle.interval_ms": 42})
    assert get_config("throttle.interval_ms") == 42


def test_dotenv_file_is_loaded_without_overriding_environment(config_file, tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("PACEKEEPER_THROTTLE_COOLDOWN_MS=1234\nPACEKEEPER_THROTTLE_RETRY_DELAY_MS=1\n")
    monkeypatch.setenv("PACEKEEPER_THROTTLE_RETRY_DELAY_MS", "7000")
    # Registered with monkeypatch so the variable python-dotenv sets is removed afterwards
    monkeypatch.setenv("PACEKEEPER_THROTTLE_COOLDOWN_MS", "")
    monkeypatch.delenv("PACEKEEPER_THROTTLE_COOLDOWN_MS")

    load_configuration(config_file, env_file=env_file, reload=True)

    assert get_config("throttle.cooldown_ms") == 1234
    assert get_config("throttle.retry_delay_ms") == 7000


def test_missing_yaml_file_gives_defaults(tmp_path):
    provider = YamlConfigurationProvider(tmp_path / "absent.yaml")
    throttle = provider.load_throttle_config()
    maintenance = provider.load_maintenance_config()
    assert throttle.interval_ms == 500
    assert maintenance.frequency is MaintenanceFrequency.EVERY_STARTUP


def test_provider_builds_snapshots_from_sections(config_file, monkeypatch):
    monkeypatch.setenv("PACEKEEPER_MAINTENANCE_LOG_RETENTION_DAYS", "3")
    provider = YamlConfigurationProvider(config_file)

    throttle = provider.load_throttle_config()
    maintenance = provider.load_maintenance_config()

    assert throttle.interval_ms == 250
    assert throttle.count_threshold == 20
    assert throttle.cooldown_ms == 5000
    assert maintenance.frequency is MaintenanceFrequency.WEEKLY
    assert maintenance.log_directory == "var/logs"
    assert maintenance.log_retention_days == 3


def test_provider_rejects_invalid_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"throttle": {"interval_ms": -10}}))
    with pytest.raises(ConfigValidationError):
        YamlConfigurationProvider(path).load_throttle_config()


def test_persist_last_run_keeps_other_settings(config_file):
    provider = YamlConfigurationProvider(config_file)
    timestamp = datetime(2024, 1, 31, 8, 15, 0)

    assert provider.persist_last_run(timestamp) is True

    saved = yaml.safe_load(config_file.read_text())
    assert saved["maintenance"]["last_run"] == "2024-01-31T08:15:00"
    assert saved["maintenance"]["frequency"] == "Weekly"
    assert saved["throttle"]["interval_ms"] == 250
    assert provider.load_maintenance_config().last_run == timestamp
    assert list(config_file.parent.glob(".config-*")) == []


def test_persist_last_run_creates_file(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    provider = YamlConfigurationProvider(path)

    assert provider.persist_last_run(datetime(2024, 2, 1, 0, 0)) is True
    assert yaml.safe_load(path.read_text()) == {"maintenance": {"last_run": "2024-02-01T00:00:00"}}


def test_persist_last_run_reports_unreadable_file(tmp_path, caplog):
    path = tmp_path / "config.yaml"
    path.write_text("throttle: [unclosed")
    provider = YamlConfigurationProvider(path)

    assert provider.persist_last_run(datetime(2024, 2, 1)) is False
    assert "Error saving maintenance config" in caplog.text
    assert path.read_text() == "throttle: [unclosed"


def test_persist_last_run_reports_write_failure(config_file, mocker):
    mocker.patch("pacekeeper.infrastructure.config.settings.os.replace", side_effect=OSError("disk full"))
    provider = YamlConfigurationProvider(config_file)

    assert provider.persist_last_run(datetime(2024, 2, 1)) is False
    assert list(config_file.parent.glob(".config-*")) == []

