"""
Tests for loading the run configuration from YAML and environment variables.
"""

from pathlib import Path

import pytest

from e2e_harness.core.common.exceptions import ConfigurationError
from e2e_harness.core.config.app_config import (
    EnvironmentConfig,
    EnvironmentName,
    HarnessConfig,
    LogLevel,
    load_config,
)


def test_load_from_yaml(config_file: Path) -> None:
    config = load_config(config_file, environ={})

    assert config.environment == EnvironmentName.QA
    assert config.base_url == "https://qa.api.test"
    assert config.active_environment.timeout == 5
    assert config.active_environment.headers == {"X-Client": "e2e"}
    assert config.environments[EnvironmentName.STAGE].timeout == 30
    assert config.logging.level == LogLevel.INFO
    assert config.notifications.email.enabled is False


def test_config_path_from_environment(config_file: Path) -> None:
    config = load_config(environ={"E2E_CONFIG": str(config_file)})

    assert config.base_url == "https://qa.api.test"


def test_environment_variables_override_file(config_file: Path) -> None:
    config = load_config(
        config_file,
        environ={
            "E2E_ENV": "STAGE",
            "E2E_TIMEOUT": "12.5",
            "E2E_LOG_LEVEL": "debug",
            "E2E_REPORT_DIR": "out",
            "SLACK_WEBHOOK_URL": "https://hooks.slack.test/x",
        },
    )

    assert config.environment == EnvironmentName.STAGE
    assert config.base_url == "https://stage.api.test"
    assert config.active_environment.timeout == 12.5
    assert config.logging.level == LogLevel.DEBUG
    assert config.reporting.output_dir == "out"
    assert config.notifications.slack_webhook_url == "https://hooks.slack.test/x"


def test_base_url_from_environment_without_file() -> None:
    config = load_config(
        environ={"E2E_ENV": "prod", "E2E_BASE_URL": "https://api.example.test"}
    )

    assert config.environment == EnvironmentName.PROD
    assert config.base_url == "https://api.example.test"


def test_non_numeric_timeout_is_ignored(config_file: Path) -> None:
    config = load_config(config_file, environ={"E2E_TIMEOUT": "soon"})

    assert config.active_environment.timeout == 5


def test_os_environ_is_used_by_default(
    config_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("E2E_CONFIG", str(config_file))
    monkeypatch.setenv("E2E_ENV", "stage")

    config = load_config()

    assert config.environment == EnvironmentName.STAGE


def test_unknown_environment_rejected(config_file: Path) -> None:
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_config(config_file, environ={"E2E_ENV": "dev"})


def test_missing_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "missing.yaml", environ={})


def test_non_yaml_file_rejected(tmp_path: Path) -> None:
    path = tmp_path / "e2e.json"
    path.write_text("{}", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Unsupported"):
        load_config(path, environ={})


def test_invalid_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "e2e.yaml"
    path.write_text("environments: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_config(path, environ={})


def test_non_mapping_root_rejected(tmp_path: Path) -> None:
    path = tmp_path / "e2e.yml"
    path.write_text("- qa\n- stage\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(path, environ={})


@pytest.mark.parametrize(
    "settings",
    [
        {"base_url": "qa.api.test"},
        {"base_url": "https://qa.api.test", "timeout": 0},
    ],
)
def test_environment_settings_validated(settings: dict) -> None:
    with pytest.raises(ValueError):
        EnvironmentConfig(**settings)


def test_invalid_settings_reported_as_configuration_error(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("environments:\n  qa:\n    base_url: ftp://qa\n", encoding="utf-8")

    with pytest.raises(ConfigurationError) as exc_info:
        load_config(path, environ={})

    assert exc_info.value.details["errors"]


def test_active_environment_must_be_configured() -> None:
    config = HarnessConfig(environment=EnvironmentName.PROD)

    with pytest.raises(ConfigurationError, match="prod") as exc_info:
        config.active_environment

    assert exc_info.value.details == {"configured": []}
