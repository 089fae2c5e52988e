"""In-memory stand-ins for processes and probes."""

import itertools
from typing import cast

import anyio
import anyio.lowlevel
import pytest

from stackup.exceptions import ServiceStartError, ServiceStopError
from stackup.supervisor import (
    LogLine,
    ReadinessResult,
    ServiceProcess,
    ServiceSpec,
)
from stackup.supervisor._process import LinePublisher

_pids = itertools.count(1000)


class FakeProcess:
    """Process double finishing when told to or when signalled."""

    def __init__(
        self,
        spec: ServiceSpec,
        *,
        exit_code: int | None = None,
        ignore_term: bool = False,
        stop_error: bool = False,
    ) -> None:
        self.spec = spec
        self.pid = next(_pids)
        self.returncode: int | None = None
        self.exited = anyio.Event()
        self.ignore_term = ignore_term
        self.stop_error = stop_error
        self.terminated = False
        self.stop_timeouts: list[float] = []
        self._finished = anyio.Event()
        if exit_code is not None:
            self.finish(exit_code)

    @property
    def name(self) -> str:
        return self.spec.name

    def finish(self, exit_code: int) -> None:
        if self.returncode is None:
            self.returncode = exit_code
            self._finished.set()

    async def run(self) -> int:
        await self._finished.wait()
        self.exited.set()
        assert self.returncode is not None
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if not self.ignore_term:
            self.finish(-15)

    async def stop(self, timeout: float) -> bool:
        self.stop_timeouts.append(timeout)
        await anyio.lowlevel.checkpoint()
        if self.stop_error:
            msg = f"Failed to stop service '{self.name}': permission denied"
            raise ServiceStopError(msg, service_name=self.name)
        if self.returncode is not None:
            return False
        if self.ignore_term:
            self.finish(-9)
            return True
        self.finish(-15)
        return False


class FakeSpawner:
    """Spawner double recording the order services are spawned in.

    Attributes:
        exit_codes: Services whose process exits right after spawning.
        failures: Services whose spawn raises ServiceStartError.
        ignore_term: Services that only die from SIGKILL.
        stop_errors: Services whose stop raises ServiceStopError.
    """

    def __init__(self) -> None:
        self.order: list[str] = []
        self.processes: dict[str, FakeProcess] = {}
        self.exit_codes: dict[str, int] = {}
        self.failures: set[str] = set()
        self.ignore_term: set[str] = set()
        self.stop_errors: set[str] = set()

    async def spawn(self, spec: ServiceSpec, publish: LinePublisher) -> ServiceProcess:
        await anyio.lowlevel.checkpoint()
        if spec.name in self.failures:
            msg = f"Failed to start service '{spec.name}': No such file or directory"
            raise ServiceStartError(msg, service_name=spec.name)

        process = FakeProcess(
            spec,
            exit_code=self.exit_codes.get(spec.name),
            ignore_term=spec.name in self.ignore_term,
            stop_error=spec.name in self.stop_errors,
        )
        self.order.append(spec.name)
        self.processes[spec.name] = process
        publish(
            LogLine(
                service_name=spec.name,
                stream="stdout",
                timestamp="2025-01-01T00:00:00Z",
                text="started",
                pid=process.pid,
            )
        )
        return cast("ServiceProcess", cast("object", process))


class FakeProber:
    """Prober double answering from per-service tables.

    Attributes:
        results: Outcome of await_ready per service, READY by default.
        alive: Outcome of probe_once per service, True by default.
        probed: Services in the order await_ready was called.
    """

    def __init__(self) -> None:
        self.results: dict[str, ReadinessResult] = {}
        self.alive: dict[str, bool] = {}
        self.probed: list[str] = []

    async def await_ready(
        self, spec: ServiceSpec, *, exited: anyio.Event | None = None
    ) -> ReadinessResult:
        self.probed.append(spec.name)
        await anyio.lowlevel.checkpoint()
        return self.results.get(spec.name, ReadinessResult.READY)

    async def probe_once(self, spec: ServiceSpec) -> bool:
        await anyio.lowlevel.checkpoint()
        return self.alive.get(spec.name, True)


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()
