"""stackup CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._check import app as check_app
from ._health import app as health_app
from ._run import app as run_app
from ._shared import (
    ExitCode,
    exit_with_error,
    get_error_console,
    load_config_or_exit,
)

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "ExitCode",
    "check_app",
    "exit_with_error",
    "get_error_console",
    "health_app",
    "load_config_or_exit",
    "register_commands",
    "run_app",
]


def register_commands(app: "App") -> None:  # noqa: UP037
    app.command(check_app)
    app.command(health_app)
    app.command(run_app)
