"""Configuration models.

This module provides Pydantic models for stackup configuration sections
and the main Config container class.
"""

from stackup.config._models._common import (
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LogLevel,
)
from stackup.config._models._config import Config
from stackup.config._models._logging import LoggingConfig
from stackup.config._models._services import ReadinessConfig, ServiceConfig
from stackup.config._models._supervisor import SupervisorSettings

__all__ = [
    "Config",
    "ConfigSource",
    "ConfigSourceName",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ReadinessConfig",
    "ServiceConfig",
    "SupervisorSettings",
]
