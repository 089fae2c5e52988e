"""stackup configuration.

This module provides the public API for stackup configuration management:
loading from TOML files and STACKUP_* environment variables, validation,
and typed access to the service table.

Example:
    >>> from stackup.config import Config
    >>> config = Config.load()
    >>> [service.name for service in config.services][:2]
    ['registry', 'credential-store']
"""

# Re-export exceptions from main exceptions module
from stackup.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    MissingExecutableError,
)

from ._defaults import DEFAULT_CONFIG
from ._discovery import (
    CONFIG_ENV_VAR,
    CONFIG_FILE_NAME,
    SYSTEM_CONFIG_PATH,
    discover_sources,
    find_config_file,
    get_user_config_path,
)
from ._loader import (
    ENV_PREFIX,
    deep_merge,
    parse_env_value,
    parse_env_vars,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    Config,
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ReadinessConfig,
    ServiceConfig,
    SupervisorSettings,
)
from ._validation import (
    ValidationIssue,
    check_executables,
    raise_if_validation_errors,
    resolve_command,
    validate_config,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILE_NAME",
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "SYSTEM_CONFIG_PATH",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "MissingExecutableError",
    "ReadinessConfig",
    "ServiceConfig",
    "SupervisorSettings",
    "ValidationIssue",
    "check_executables",
    "deep_merge",
    "discover_sources",
    "find_config_file",
    "get_user_config_path",
    "parse_env_value",
    "parse_env_vars",
    "raise_if_validation_errors",
    "read_toml_file",
    "resolve_command",
    "set_nested_key",
    "validate_config",
]
