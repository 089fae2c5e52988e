from pathlib import Path

import pytest
from rich.console import Console

from stackup.cli._commands import ExitCode, exit_with_error, load_config_or_exit


class TestExitCode:
    def test_values(self) -> None:
        assert ExitCode.SUCCESS == 0
        assert ExitCode.SERVICE_FAILED == 1
        assert ExitCode.VALIDATION_ERROR == 2


class TestExitWithError:
    def test_prints_and_exits(self, console: Console) -> None:
        with console.capture() as capture, pytest.raises(SystemExit) as exc_info:
            exit_with_error("boom", ExitCode.VALIDATION_ERROR, console=console)

        assert exc_info.value.code == ExitCode.VALIDATION_ERROR
        assert "Error: boom" in capture.get()

    def test_default_code(self, console: Console) -> None:
        with pytest.raises(SystemExit) as exc_info:
            exit_with_error("boom", console=console)

        assert exc_info.value.code == ExitCode.SERVICE_FAILED


class TestLoadConfigOrExit:
    def test_missing_file(self, tmp_path: Path, console: Console) -> None:
        with console.capture() as capture, pytest.raises(SystemExit) as exc_info:
            _ = load_config_or_exit(tmp_path / "missing.toml", console=console)

        assert exc_info.value.code == ExitCode.VALIDATION_ERROR
        assert "Config file not found" in capture.get()

    def test_invalid_value(self, tmp_path: Path, console: Console) -> None:
        path = tmp_path / "stackup.toml"
        _ = path.write_text("[supervisor]\ncontrol_port = 0\n")

        with console.capture() as capture, pytest.raises(SystemExit) as exc_info:
            _ = load_config_or_exit(path, console=console)

        assert exc_info.value.code == ExitCode.VALIDATION_ERROR
        assert "supervisor.control_port" in capture.get()

    def test_applies_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "stackup.toml"
        _ = path.write_text("[supervisor]\ncontrol_port = 9191\n")

        config = load_config_or_exit(
            path, {"supervisor": {"control_host": "127.0.0.1"}}
        )

        assert config.supervisor.control_port == 9191
        assert config.supervisor.control_host == "127.0.0.1"
