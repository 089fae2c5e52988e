from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from stackup.cli import create_app


@pytest.fixture
def stackup_cli_with_exit_code(console: Console) -> Callable[..., int]:
    """Create CLI app for testing that returns the exit code.

    Use this fixture when tests need to verify the exit code.
    """

    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        """Run CLI app and return exit code (0 if no SystemExit)."""

        try:
            app(args)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    """Return a helper writing a stackup.toml into a temporary directory."""

    def _write(contents: str) -> Path:
        path = tmp_path / "stackup.toml"
        _ = path.write_text(contents)
        return path

    return _write
