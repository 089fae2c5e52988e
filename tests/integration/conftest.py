import socket
from collections.abc import Callable
from pathlib import Path

import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def free_port() -> Callable[[], int]:
    """Return a helper reserving an unused loopback port."""

    def _free_port() -> int:
        with socket.socket() as sock:
            sock.bind(("127.0.0.1", 0))
            return int(sock.getsockname()[1])

    return _free_port


def _is_running(pid: int) -> bool:
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except FileNotFoundError:
        return False
    # Zombies are dead but not yet reaped
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


@pytest.fixture
def is_running() -> Callable[[int], bool]:
    """Return a helper telling whether a process is still alive."""
    return _is_running
