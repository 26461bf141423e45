# Configuration package

from e2e_harness.core.config.app_config import (
    EnvironmentConfig,
    EnvironmentName,
    HarnessConfig,
    load_config,
)

__all__ = [
    "EnvironmentConfig",
    "EnvironmentName",
    "HarnessConfig",
    "load_config",
]
