"""The command-line interface for stackup."""

from cyclopts import App
from rich.console import Console

from stackup import __version__

from ._commands import register_commands

HELP = "Launch, watch and stop a table of interdependent services."

app = App(name="stackup", help=HELP, version=__version__, help_on_error=True)
register_commands(app)


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Create a stackup App with its own consoles.

    Args:
        console: Console for regular output.
        error_console: Console for errors.
        exit_on_error: Whether parse errors exit the process.

    Returns:
        A new App with every command registered.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    new_app = App(
        name="stackup",
        help=HELP,
        version=__version__,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )
    register_commands(new_app)
    return new_app


def main() -> None:
    """Default entrypoint for the `stackup` CLI."""
    app()


if __name__ == "__main__":
    main()
