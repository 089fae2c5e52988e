"""Config file discovery.

This module locates the configuration file and lists the configuration
sources in precedence order.
"""

import os
from pathlib import Path
from typing import Any, Final

import platformdirs

from ._defaults import DEFAULT_CONFIG
from ._models._common import ConfigSource, ConfigSourceName

CONFIG_FILE_NAME: Final = "stackup.toml"
CONFIG_ENV_VAR: Final = "STACKUP_CONFIG"
SYSTEM_CONFIG_PATH: Final = Path("/etc/stackup") / CONFIG_FILE_NAME


def get_user_config_path() -> Path:
    """Get platform-specific user config file path.

    - Linux: ``~/.config/stackup/stackup.toml``
    - macOS: ``~/Library/Application Support/stackup/stackup.toml``

    The path is returned regardless of whether the file exists.
    """
    return platformdirs.user_config_path("stackup") / CONFIG_FILE_NAME


def _file_exists(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def find_config_file(config_path: Path | None = None) -> Path | None:
    """Locate the configuration file.

    Search order: the explicit path, $STACKUP_CONFIG, ./stackup.toml, the
    user config directory, /etc/stackup/stackup.toml.

    Args:
        config_path: Explicit path (--config flag).

    Returns:
        The file to load, or None to use the built-in configuration.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist.
    """
    explicit = config_path
    if explicit is None and (env_path := os.environ.get(CONFIG_ENV_VAR)):
        explicit = Path(env_path)

    if explicit is not None:
        if not _file_exists(explicit):
            msg = f"Config file not found: {explicit}"
            raise FileNotFoundError(msg)
        return explicit

    for candidate in (
        Path.cwd() / CONFIG_FILE_NAME,
        get_user_config_path(),
        SYSTEM_CONFIG_PATH,
    ):
        if _file_exists(candidate):
            return candidate
    return None


def discover_sources(
    *,
    config_path: Path | None = None,
    include_env: bool = True,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> list[ConfigSource]:
    """Discover all configuration sources.

    Args:
        config_path: Explicit config file (--config flag).
        include_env: Include environment variables as a source.
        cli_overrides: Dictionary of CLI argument overrides.

    Returns:
        List of ConfigSource objects in precedence order (highest first).

    Raises:
        FileNotFoundError: If an explicitly named file does not exist.
    """
    sources: list[ConfigSource] = []

    if cli_overrides:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.CLI,
                path=None,
                exists=True,
                values=cli_overrides,
            )
        )

    if include_env:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.ENV,
                path=None,
                exists=True,  # Actual values parsed during loading phase
                values={},
            )
        )

    file_path = find_config_file(config_path)
    if file_path is not None:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.FILE,
                path=file_path,
                exists=True,
                values={},
            )
        )

    sources.append(
        ConfigSource(
            name=ConfigSourceName.DEFAULT,
            path=None,
            exists=True,
            values=DEFAULT_CONFIG,
        )
    )

    return sources
