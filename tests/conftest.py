from collections.abc import Iterator
from pathlib import Path

import pytest
import yaml

from e2e_harness.core.config.app_config import HarnessConfig, load_config
from e2e_harness.core.di.container import ServiceContainer
from e2e_harness.core.di.services import (
    register_harness_services,
    reset_service_container,
)

TEST_BASE_URL = "https://qa.api.test"

E2E_ENV_VARS = (
    "E2E_CONFIG",
    "E2E_ENV",
    "E2E_BASE_URL",
    "E2E_TIMEOUT",
    "E2E_LOG_LEVEL",
    "E2E_LOG_FILE",
    "E2E_REPORT_DIR",
    "SLACK_WEBHOOK_URL",
    "DISCORD_WEBHOOK_URL",
)


@pytest.fixture(autouse=True)
def _clean_e2e_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's E2E_* variables out of the tests."""
    for name in E2E_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_global_container() -> Iterator[None]:
    yield
    reset_service_container()


@pytest.fixture
def config_data(tmp_path: Path) -> dict:
    return {
        "environment": "qa",
        "environments": {
            "qa": {
                "base_url": TEST_BASE_URL,
                "timeout": 5,
                "headers": {"X-Client": "e2e"},
            },
            "stage": {"base_url": "https://stage.api.test"},
        },
        "reporting": {"output_dir": str(tmp_path / "reports")},
    }


@pytest.fixture
def config_file(tmp_path: Path, config_data: dict) -> Path:
    """Write config_data to a YAML file and return its path."""
    path = tmp_path / "e2e.yaml"
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config_data, f, sort_keys=False)
    return path


@pytest.fixture
def harness_config(config_file: Path) -> HarnessConfig:
    return load_config(config_file, environ={})


@pytest.fixture
def container(harness_config: HarnessConfig) -> ServiceContainer:
    """A container with the harness services registered."""
    return register_harness_services(ServiceContainer(), harness_config)
