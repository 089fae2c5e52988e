"""End-to-end supervisor scenarios with real child processes."""

import signal
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import anyio
import pytest

from stackup.supervisor import (
    HealthStatus,
    ReadinessCheck,
    ReadinessKind,
    ServiceSpec,
    ServiceStatus,
    Supervisor,
)

pytestmark = pytest.mark.anyio

# Waits <delay> seconds, then accepts connections on <port> until stopped.
SERVER = """
import signal, socket, sys, time
port, delay, mode = int(sys.argv[1]), float(sys.argv[2]), sys.argv[3]
if mode == "ignore-term":
    signal.signal(signal.SIGTERM, signal.SIG_IGN)
time.sleep(delay)
if mode == "never-listen":
    time.sleep(60)
sock = socket.socket()
sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
sock.bind(("127.0.0.1", port))
sock.listen()
print(f"listening on {port}", flush=True)
while True:
    conn, _ = sock.accept()
    conn.close()
"""


def server(  # noqa: PLR0913
    name: str,
    port: int,
    *depends_on: str,
    delay: float = 0.0,
    mode: str = "serve",
    critical: bool = False,
    start_timeout: float = 10.0,
    stop_timeout: float = 5.0,
) -> ServiceSpec:
    return ServiceSpec(
        name=name,
        command=sys.executable,
        args=("-c", SERVER, str(port), str(delay), mode),
        readiness=ReadinessCheck(kind=ReadinessKind.TCP, port=port),
        ports=(port,),
        depends_on=depends_on,
        critical=critical,
        start_timeout=start_timeout,
        stop_timeout=stop_timeout,
    )


def make_supervisor(specs: list[ServiceSpec], sink: Any) -> Supervisor:
    return Supervisor(
        specs,
        sink,
        poll_interval=0.05,
        probe_timeout=0.04,
        liveness_interval=None,
    )


@asynccontextmanager
async def supervising(supervisor: Supervisor) -> AsyncIterator[None]:
    """Run the supervisor until the launch completes, shut it down on exit."""
    async with anyio.create_task_group() as tg:

        async def _run() -> None:
            _ = await supervisor.run(handle_signals=False)

        tg.start_soon(_run)
        try:
            with anyio.fail_after(20):
                while supervisor.launch_result is None:
                    await anyio.sleep(0.05)
            yield
        finally:
            await supervisor.shutdown()


def event_index(sink: Any, name: str, status: str) -> int:
    for index, event in enumerate(sink.events):
        if event.service_name == name and event.status.value == status:
            return index
    msg = f"no {status} event for {name}"
    raise AssertionError(msg)


async def test_dependents_start_after_dependencies_are_ready(
    sink: Any, free_port: Callable[[], int]
) -> None:
    supervisor = make_supervisor(
        [
            server("registry", free_port(), delay=0.3, critical=True),
            server("credential-store", free_port(), delay=0.1, critical=True),
            server(
                "api-server",
                free_port(),
                "registry",
                "credential-store",
                critical=True,
            ),
        ],
        sink,
    )

    async with supervising(supervisor):
        assert supervisor.launch_result is not None
        assert supervisor.launch_result.ok
        assert supervisor.health().overall is HealthStatus.HEALTHY

    api_started = event_index(sink, "api-server", "starting")
    assert api_started > event_index(sink, "registry", "ready")
    assert api_started > event_index(sink, "credential-store", "ready")

    result = supervisor.shutdown_result
    assert result is not None
    assert result.clean
    assert result.order[0] == "api-server"
    assert set(result.stopped) == {"registry", "credential-store", "api-server"}
    assert any(text.startswith("listening on") for text in sink.texts("registry"))
    for name in ("registry", "credential-store", "api-server"):
        assert supervisor.get_service(name).exit_code == -signal.SIGTERM
        assert sink.statuses(name)[-2:] == ["stopping", "stopped"]


async def test_readiness_timeout_fails_dependents_only(
    sink: Any, free_port: Callable[[], int]
) -> None:
    supervisor = make_supervisor(
        [
            server(
                "registry",
                free_port(),
                mode="never-listen",
                critical=True,
                start_timeout=0.5,
            ),
            server("credential-store", free_port(), critical=True),
            server("api-server", free_port(), "registry", critical=True),
        ],
        sink,
    )

    async with supervising(supervisor):
        launch = supervisor.launch_result
        assert launch is not None
        assert launch.ready == ("credential-store",)
        assert launch.failed["registry"] == "not ready after 0.5s"
        assert launch.failed["api-server"] == "dependency failed"
        assert supervisor.health().overall is HealthStatus.UNHEALTHY
        assert set(supervisor.failed_services()) == {"registry", "api-server"}

    assert "starting" not in sink.statuses("api-server")
    assert sink.texts("api-server") == []
    assert supervisor.get_service("api-server").status is ServiceStatus.FAILED
    assert supervisor.get_service("credential-store").status is ServiceStatus.STOPPED
    assert supervisor.get_service("registry").status is ServiceStatus.FAILED
    assert set(supervisor.failed_services()) == {"registry", "api-server"}


async def test_process_ignoring_sigterm_is_killed(
    sink: Any, free_port: Callable[[], int]
) -> None:
    supervisor = make_supervisor(
        [
            server("registry", free_port(), critical=True),
            server(
                "file-server",
                free_port(),
                "registry",
                mode="ignore-term",
                stop_timeout=0.5,
            ),
        ],
        sink,
    )

    async with supervising(supervisor):
        assert supervisor.launch_result is not None
        assert supervisor.launch_result.ok

    result = supervisor.shutdown_result
    assert result is not None
    assert result.order == ("file-server", "registry")
    assert result.forced == ("file-server",)
    assert result.stopped == ("file-server", "registry")
    assert supervisor.get_service("file-server").exit_code == -signal.SIGKILL
    assert supervisor.get_service("registry").exit_code == -signal.SIGTERM


async def test_unexpected_exit_is_reported(
    sink: Any, free_port: Callable[[], int]
) -> None:
    port = free_port()
    crasher = ServiceSpec(
        name="tunnel",
        command=sys.executable,
        args=("-c", "raise SystemExit(4)"),
        readiness=ReadinessCheck(kind=ReadinessKind.TCP, port=port),
        ports=(port,),
        start_timeout=10.0,
    )
    supervisor = make_supervisor(
        [server("registry", free_port(), critical=True), crasher], sink
    )

    async with supervising(supervisor):
        launch = supervisor.launch_result
        assert launch is not None
        assert launch.failed["tunnel"] == "exited during startup (code 4)"
        assert supervisor.health().overall is HealthStatus.DEGRADED


async def test_exited_start_script_leaves_nothing_running(
    sink: Any,
    free_port: Callable[[], int],
    is_running: Callable[[int], bool],
    tmp_path: Path,
) -> None:
    pidfile = tmp_path / "server.pid"
    port = free_port()
    wrapper = ServiceSpec(
        name="api-server",
        command="/bin/sh",
        args=("-c", f"sleep 300 & echo $! > {pidfile}; exit 3"),
        readiness=ReadinessCheck(kind=ReadinessKind.TCP, port=port),
        ports=(port,),
        start_timeout=10.0,
        stop_timeout=2.0,
    )
    supervisor = make_supervisor([wrapper], sink)

    async with supervising(supervisor):
        launch = supervisor.launch_result
        assert launch is not None
        assert launch.failed["api-server"] == "exited during startup (code 3)"

    with anyio.fail_after(5):
        while is_running(int(pidfile.read_text())):
            await anyio.sleep(0.05)

    snapshot = supervisor.get_service("api-server")
    assert snapshot.status is ServiceStatus.FAILED
    assert snapshot.cause == "exited during startup (code 3)"
    assert set(supervisor.failed_services()) == {"api-server"}
