"""Exit codes and error reporting shared by the run, check and health commands."""

from enum import IntEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any, Never

from rich.console import Console

from stackup.config import Config
from stackup.exceptions import ConfigError

__all__ = [
    "ExitCode",
    "exit_with_error",
    "get_error_console",
    "load_config_or_exit",
]


class ExitCode(IntEnum):
    """Standard exit codes for stackup CLI commands.

    The container runtime reads these: SUCCESS after a clean shutdown,
    SERVICE_FAILED when any service ended failed (or the health check
    fails), VALIDATION_ERROR when nothing was started because the
    configuration is invalid.
    """

    SUCCESS = 0
    SERVICE_FAILED = 1
    VALIDATION_ERROR = 2


def get_error_console() -> Console:
    """Get a Rich console configured for error output to stderr.

    Returns:
        Console instance writing to stderr.
    """
    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.SERVICE_FAILED,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use (defaults to SERVICE_FAILED).
        console: Optional Rich console for output. If not provided,
            a new stderr console will be created.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}", highlight=False)
    raise SystemExit(code)


def load_config_or_exit(
    config_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    *,
    console: Console | None = None,
) -> Config:
    """Load configuration, exiting with VALIDATION_ERROR on failure.

    Args:
        config_path: Explicit path to the config file (--config flag).
        cli_overrides: Values given as CLI flags.
        console: Console for the error message.

    Returns:
        The loaded configuration.

    Raises:
        SystemExit: If the configuration cannot be loaded or is invalid.
    """
    try:
        return Config.load(config_path=config_path, cli_overrides=cli_overrides)
    except FileNotFoundError as e:
        exit_with_error(str(e), ExitCode.VALIDATION_ERROR, console=console)
    except ConfigError as e:
        exit_with_error(str(e), ExitCode.VALIDATION_ERROR, console=console)
