from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator

from e2e_harness.core.common.exceptions import ConfigurationError
from e2e_harness.core.interfaces.model_bases import DomainModel

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "E2E_CONFIG"


def _env_to_float(name: str, default: float | None, env: Mapping[str, str]) -> float | None:
    """Return an environment variable parsed as a float."""
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s=%r", name, value)
        return default


def _get_env_value(
    env: Mapping[str, str],
    name: str,
    default: Any,
    *,
    transform: Callable[[str], Any] | None = None,
) -> Any:
    if name in env and env[name] != "":
        raw_value = env[name]
        return transform(raw_value) if transform is not None else raw_value
    return default


class EnvironmentName(str, Enum):
    """Deployment environments a run can target."""

    QA = "qa"
    STAGE = "stage"
    PROD = "prod"


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentConfig(DomainModel):
    """Target API of one environment."""

    base_url: str
    timeout: float = 30.0  # seconds
    headers: dict[str, str] = Field(default_factory=dict)
    verify_tls: bool = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class LoggingConfig(DomainModel):
    level: LogLevel = LogLevel.INFO
    file: str | None = None
    # Request/response bodies longer than this are truncated in exchange records
    body_limit: int = 2048


class ReportingConfig(DomainModel):
    output_dir: str = "reports"
    write_json: bool = True


class EmailConfig(DomainModel):
    smtp_host: str | None = None
    smtp_port: int = 25
    use_tls: bool = False
    username: str | None = None
    password: str | None = None
    sender: str | None = None
    recipients: list[str] = Field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host and self.sender and self.recipients)


class NotificationsConfig(DomainModel):
    slack_webhook_url: str | None = None
    discord_webhook_url: str | None = None
    email: EmailConfig = Field(default_factory=EmailConfig)
    # Only notify when at least one test failed
    only_on_failure: bool = False


class HarnessConfig(DomainModel):
    """Top-level configuration of a test run."""

    environment: EnvironmentName = EnvironmentName.QA
    environments: dict[EnvironmentName, EnvironmentConfig] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)

    @property
    def active_environment(self) -> EnvironmentConfig:
        """Return the settings of the environment selected for this run."""
        try:
            return self.environments[self.environment]
        except KeyError:
            raise ConfigurationError(
                f"No settings configured for environment '{self.environment.value}'",
                details={
                    "configured": sorted(e.value for e in self.environments),
                },
            ) from None

    @property
    def base_url(self) -> str:
        return self.active_environment.base_url


def _read_config_file(path: Path) -> dict[str, Any]:
    if path.suffix.lower() not in (".yaml", ".yml"):
        raise ConfigurationError(
            f"Unsupported configuration file format: {path.suffix}. Use YAML (.yaml/.yml)."
        )
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root in {path} must be a mapping")
    return data


def _apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> None:
    environment = _get_env_value(env, "E2E_ENV", None, transform=str.lower)
    if environment is not None:
        data["environment"] = environment

    active = str(data.get("environment", EnvironmentName.QA.value))
    environments: dict[str, Any] = data.setdefault("environments", {})

    base_url = _get_env_value(env, "E2E_BASE_URL", None)
    if base_url is not None:
        environments.setdefault(active, {})["base_url"] = base_url

    timeout = _env_to_float("E2E_TIMEOUT", None, env)
    if timeout is not None and active in environments:
        environments[active]["timeout"] = timeout

    logging_data: dict[str, Any] = data.setdefault("logging", {})
    level = _get_env_value(env, "E2E_LOG_LEVEL", None, transform=str.upper)
    if level is not None:
        logging_data["level"] = level
    log_file = _get_env_value(env, "E2E_LOG_FILE", None)
    if log_file is not None:
        logging_data["file"] = log_file

    report_dir = _get_env_value(env, "E2E_REPORT_DIR", None)
    if report_dir is not None:
        data.setdefault("reporting", {})["output_dir"] = report_dir

    notifications: dict[str, Any] = data.setdefault("notifications", {})
    for name, key in (
        ("SLACK_WEBHOOK_URL", "slack_webhook_url"),
        ("DISCORD_WEBHOOK_URL", "discord_webhook_url"),
    ):
        value = _get_env_value(env, name, None)
        if value is not None:
            notifications[key] = value


def load_config(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> HarnessConfig:
    """
    Load configuration from file and environment.

    Environment variables win over the file. When no explicit environ
    mapping is given, a local .env file is loaded into os.environ first.

    Args:
        config_path: Optional path to a YAML configuration file; defaults to $E2E_CONFIG
        environ: Mapping used instead of os.environ

    Returns:
        HarnessConfig instance
    """
    if environ is None:
        load_dotenv()
        env: Mapping[str, str] = os.environ
    else:
        env = environ

    config_data: dict[str, Any] = {}

    path_value = config_path or env.get(CONFIG_PATH_ENV)
    if path_value:
        path = Path(path_value)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        config_data = _read_config_file(path)
        logger.debug("Loaded configuration from %s", path)

    _apply_env_overrides(config_data, env)

    try:
        config = HarnessConfig.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration", details={"errors": e.errors(include_url=False)}
        ) from e

    logger.info("Active environment: %s", config.environment.value)
    return config
