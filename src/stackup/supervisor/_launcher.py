"""Wave-based launcher for supervised services.

This module provides the Launcher class that spawns services in dependency
order, gates dependents on readiness, and watches every spawned process for
unexpected exits.
"""

from collections.abc import Awaitable, Callable  # noqa: TC003 - Used in runtime type annotations
from types import MappingProxyType
from typing import Final, final

import anyio
import anyio.abc
import structlog
from structlog.typing import FilteringBoundLogger  # noqa: TC002 - Used in runtime type annotations

from stackup.exceptions import ServiceStartError, ServiceStopError

from ._graph import DependencyGraph  # noqa: TC001 - Used in runtime type annotations
from ._models import (
    LaunchResult,
    Owner,
    ReadinessResult,
    ServiceSpec,
    ServiceStatus,
)
from ._process import LinePublisher, ServiceProcess
from ._readiness import ReadinessProber  # noqa: TC001 - Used in runtime type annotations
from ._state import StateTable  # noqa: TC001 - Used in runtime type annotations

DEPENDENCY_FAILED: Final = "dependency failed"

Spawner = Callable[[ServiceSpec, LinePublisher], Awaitable[ServiceProcess]]

_SATISFIED: Final = frozenset({ServiceStatus.READY, ServiceStatus.DEGRADED})


@final
class Launcher:
    """Launches services wave by wave.

    Wave k starts only once every service of wave k-1 is ready or failed.
    Services of one wave launch concurrently. A service whose dependency
    failed is marked failed with cause "dependency failed" and never spawned.

    Process watchers are started in the task group handed to the launcher,
    so they outlive launch_all() and keep reaping processes until shutdown.
    """

    __slots__ = (
        "_graph",
        "_logger",
        "_prober",
        "_publish",
        "_spawn",
        "_table",
        "_watchers",
    )

    def __init__(  # noqa: PLR0913
        self,
        graph: DependencyGraph,
        table: StateTable,
        prober: ReadinessProber,
        publish: LinePublisher,
        watchers: anyio.abc.TaskGroup,
        *,
        spawn: Spawner = ServiceProcess.spawn,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the launcher.

        Args:
            graph: Validated dependency graph.
            table: Shared state table.
            prober: Readiness prober.
            publish: Receives every line written by child processes.
            watchers: Long-lived task group for process watchers.
            spawn: Coroutine creating a ServiceProcess.
            logger: Logger for launch progress.
        """
        self._graph = graph
        self._table = table
        self._prober = prober
        self._publish = publish
        self._watchers = watchers
        self._spawn = spawn
        self._logger: FilteringBoundLogger = logger or structlog.get_logger("stackup")

    def _fail(self, name: str, cause: str, exit_code: int | None = None) -> None:
        _ = self._table.transition(
            name,
            ServiceStatus.FAILED,
            owner=Owner.LAUNCHER,
            cause=cause,
            exit_code=exit_code,
        )
        self._logger.error("service_failed", service=name, cause=cause)

    async def launch_all(self) -> LaunchResult:
        """Launch every service in dependency order.

        Returns:
            Which services became ready and why the others failed.
        """
        waves = self._graph.launch_waves()
        for number, wave in enumerate(waves):
            self._logger.info("launching_wave", wave=number, services=list(wave))
            async with anyio.create_task_group() as tg:
                for name in wave:
                    tg.start_soon(self._launch_one, self._graph.spec(name))

        snapshot = self._table.snapshot()
        ready = tuple(
            name for name, state in snapshot.items() if state.status in _SATISFIED
        )
        failed = {
            name: state.cause or state.status.value
            for name, state in snapshot.items()
            if state.status not in _SATISFIED
        }
        self._logger.info("launch_complete", ready=list(ready), failed=failed)
        return LaunchResult(ready=ready, failed=MappingProxyType(failed))

    def _blocking_dependencies(self, spec: ServiceSpec) -> list[str]:
        blocking: list[str] = []
        for dependency in spec.depends_on:
            state = self._table.get(dependency)
            if state.ready_at is None or state.status not in _SATISFIED:
                blocking.append(dependency)
        return blocking

    async def _launch_one(self, spec: ServiceSpec) -> None:
        """Spawn one service and wait for it to become ready."""
        name = spec.name
        blocking = self._blocking_dependencies(spec)
        if blocking:
            self._logger.warning(
                "dependency_failed", service=name, dependencies=blocking
            )
            self._fail(name, DEPENDENCY_FAILED)
            return

        _ = self._table.transition(name, ServiceStatus.STARTING, owner=Owner.LAUNCHER)

        # A spawned process must reach the table even if shutdown begins now
        with anyio.CancelScope(shield=True):
            try:
                process = await self._spawn(spec, self._publish)
            except ServiceStartError as e:
                self._fail(name, str(e))
                return

            self._table.attach_process(name, process, owner=Owner.LAUNCHER)
            self._watchers.start_soon(self._watch_exit, process)
        self._logger.info("service_spawned", service=name, pid=process.pid)

        result = await self._prober.await_ready(spec, exited=process.exited)
        if process.exited.is_set():
            # Exited while the last probe was in flight
            result = ReadinessResult.EXITED

        if result is ReadinessResult.READY:
            _ = self._table.transition(name, ServiceStatus.READY, owner=Owner.LAUNCHER)
        elif result is ReadinessResult.EXITED:
            code = process.returncode
            self._fail(name, f"exited during startup (code {code})", exit_code=code)
            process.terminate()
        else:
            self._fail(name, f"not ready after {spec.start_timeout:g}s")
            process.terminate()

    async def _watch_exit(self, process: ServiceProcess) -> None:
        """Reap a process, record unexpected exits and clear its group.

        The handle stays attached until whatever the process left running
        in its group is gone, so shutdown can still reach it.
        """
        exit_code = await process.run()
        name = process.name
        try:
            if self._table.owner(name) is Owner.LAUNCHER:
                if self._table.get(name).status in _SATISFIED:
                    self._fail(
                        name, f"exited unexpectedly (code {exit_code})", exit_code
                    )
                await self._clear_group(process)
        finally:
            self._table.release_process(name, process)

    async def _clear_group(self, process: ServiceProcess) -> None:
        try:
            forced = await process.stop(process.spec.stop_timeout)
        except ServiceStopError as e:
            self._logger.error(
                "service_stop_failed", service=process.name, cause=str(e)
            )
            return
        if forced:
            self._logger.warning("service_group_killed", service=process.name)

    async def monitor_liveness(self, interval: float) -> None:
        """Re-probe ready services forever, flagging degraded ones.

        A failed probe moves a ready service to degraded; a later successful
        probe moves it back. Services owned by the shutdown coordinator are
        left alone.

        Args:
            interval: Seconds between two rounds of probes.
        """
        while True:
            await anyio.sleep(interval)
            async with anyio.create_task_group() as tg:
                for name, state in self._table.snapshot().items():
                    if state.status in _SATISFIED and state.owner is Owner.LAUNCHER:
                        tg.start_soon(self._check_liveness, name)

    async def _check_liveness(self, name: str) -> None:
        alive = await self._prober.probe_once(self._graph.spec(name))
        state = self._table.get(name)
        if state.owner is not Owner.LAUNCHER:
            return

        if not alive and state.status is ServiceStatus.READY:
            self._logger.warning("service_degraded", service=name)
            _ = self._table.transition(
                name,
                ServiceStatus.DEGRADED,
                owner=Owner.LAUNCHER,
                cause="liveness probe failed",
            )
        elif alive and state.status is ServiceStatus.DEGRADED:
            self._logger.info("service_recovered", service=name)
            _ = self._table.transition(name, ServiceStatus.READY, owner=Owner.LAUNCHER)
