"""
Logging utilities for the harness.

This module provides:
- Structured loggers (structlog bound to the stdlib logging backend)
- Redaction of sensitive headers and payload fields
- Body truncation for exchange records
- Environment tagging (qa/stage/prod) of every log line
"""

import logging
import os
from typing import Any, Literal

import structlog

DEFAULT_LOG_FORMAT = (
    "%(asctime)s [%(levelname)-8s] [%(env_tag)s] %(name)s:%(lineno)d %(message)s"
)

# Default set of fields and headers to redact (compared lower-case)
DEFAULT_REDACTED_FIELDS = {
    "api_key",
    "x-api-key",
    "access_token",
    "refresh_token",
    "password",
    "secret",
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "credentials",
}

_environment_tag = os.getenv("E2E_ENV", "local")


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Args:
        name: Optional logger name

    Returns:
        A structured logger
    """
    return structlog.get_logger(name)  # type: ignore


def set_environment_tag(tag: str) -> None:
    """Set the tag stamped on every record by EnvironmentTaggingFilter."""
    global _environment_tag
    _environment_tag = tag


def get_environment_tag() -> str:
    return _environment_tag


class EnvironmentTaggingFilter(logging.Filter):
    """Logging filter that adds the active environment to log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.env_tag = _environment_tag
        return True


class EnvironmentTaggingFormatter(logging.Formatter):
    """Logging formatter that includes environment tags."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
    ) -> None:
        super().__init__(fmt or DEFAULT_LOG_FORMAT, datefmt, style=style)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "env_tag"):
            record.env_tag = _environment_tag
        return super().format(record)


def redact(value: str, mask: str = "***") -> str:
    """Redact a sensitive value.

    Args:
        value: The value to redact
        mask: The mask to use

    Returns:
        The redacted value
    """
    if not value:
        return value

    # Keep first and last two characters
    if len(value) > 6:
        return f"{value[0:2]}{mask}{value[-2:]}"
    else:
        return mask


def redact_dict(
    data: dict[str, Any], redacted_fields: set[str] | None = None, mask: str = "***"
) -> dict[str, Any]:
    """Redact sensitive fields in a (possibly nested) dictionary.

    Args:
        data: The dictionary to redact
        redacted_fields: The fields to redact
        mask: The mask to use

    Returns:
        The redacted dictionary
    """
    if redacted_fields is None:
        redacted_fields = DEFAULT_REDACTED_FIELDS

    result: dict[str, Any] = {}

    for key, value in data.items():
        if str(key).lower() in redacted_fields:
            if isinstance(value, str):
                result[key] = redact(value, mask)
            else:
                result[key] = mask
        elif isinstance(value, dict):
            result[key] = redact_dict(value, redacted_fields, mask)
        elif isinstance(value, list):
            result[key] = [
                (
                    redact_dict(item, redacted_fields, mask)
                    if isinstance(item, dict)
                    else item
                )
                for item in value
            ]
        else:
            result[key] = value

    return result


def truncate(text: str | None, limit: int, marker: str = "...[truncated]") -> str | None:
    """Cut text down to limit characters, flagging the cut."""
    if text is None or limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + marker


def configure_structlog() -> None:
    """Route structlog records through the stdlib logging handlers."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(
                key_order=["event"], drop_missing=True
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def add_file_handler(
    log_file: str, log_format: str | None = None, level: int | str = logging.NOTSET
) -> logging.Handler:
    """Attach an environment-tagged file handler to the root logger."""
    os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(EnvironmentTaggingFormatter(fmt=log_format))
    handler.addFilter(EnvironmentTaggingFilter())
    handler.setLevel(level)
    logging.getLogger().addHandler(handler)
    return handler


def configure_logging(
    level: int | str = logging.INFO,
    log_format: str | None = None,
    log_file: str | None = None,
    environment: str | None = None,
) -> None:
    """Configure root logging with environment tagging.

    Args:
        level: Logging level
        log_format: Optional log format string
        log_file: Optional log file path
        environment: Tag stamped on every record (defaults to $E2E_ENV)
    """
    if environment is not None:
        set_environment_tag(environment)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(EnvironmentTaggingFormatter(fmt=log_format))
    console_handler.addFilter(EnvironmentTaggingFilter())

    logging.basicConfig(
        level=level,
        handlers=[console_handler],
        force=True,  # Override any existing configuration
    )

    if log_file:
        add_file_handler(log_file, log_format)

    configure_structlog()
