"""Reverse-order shutdown of supervised services.

This module provides the ShutdownCoordinator class that takes ownership of
every service from the launcher and stops them in reverse dependency order.
"""

from types import MappingProxyType
from typing import final

import anyio
import structlog
from structlog.typing import FilteringBoundLogger  # noqa: TC002 - Used in runtime type annotations

from stackup.exceptions import SupervisorError

from ._graph import DependencyGraph  # noqa: TC001 - Used in runtime type annotations
from ._models import Owner, ServiceStatus, ShutdownResult
from ._process import ServiceProcess  # noqa: TC001 - Used in runtime type annotations
from ._state import StateTable  # noqa: TC001 - Used in runtime type annotations


@final
class ShutdownCoordinator:
    """Stops services wave by wave, dependents before their dependencies.

    Stopping is best-effort and exhaustive: a service that cannot be stopped
    is marked failed with the cause, and every other service still receives
    its stop attempt.
    A service that had already failed keeps its status and cause; only the
    processes it left running are stopped.
    """

    __slots__ = ("_forced", "_graph", "_logger", "_order", "_stop_errors", "_table")

    def __init__(
        self,
        graph: DependencyGraph,
        table: StateTable,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._graph = graph
        self._table = table
        self._logger: FilteringBoundLogger = logger or structlog.get_logger("stackup")
        self._order: list[str] = []
        self._forced: list[str] = []
        self._stop_errors: dict[str, str] = {}

    async def shutdown_all(self) -> ShutdownResult:
        """Stop every service in reverse dependency order.

        Returns:
            Stop order, services stopped, killed, and failed to stop.
        """
        self._order.clear()
        self._forced.clear()
        self._stop_errors.clear()

        for number, wave in enumerate(self._graph.shutdown_waves()):
            self._logger.info("stopping_wave", wave=number, services=list(wave))
            async with anyio.create_task_group() as tg:
                for name in wave:
                    self._order.append(name)
                    tg.start_soon(self._stop_one, name)

        snapshot = self._table.snapshot()
        stopped = tuple(
            name
            for name in self._order
            if snapshot[name].status is ServiceStatus.STOPPED
        )
        self._logger.info(
            "shutdown_complete",
            stopped=list(stopped),
            forced=self._forced,
            failed=self._stop_errors,
        )
        return ShutdownResult(
            order=tuple(self._order),
            stopped=stopped,
            forced=tuple(self._forced),
            failed=MappingProxyType(dict(self._stop_errors)),
        )

    async def _stop_one(self, name: str) -> None:
        """Take ownership of one service and stop it."""
        process = self._table.transfer(name, Owner.SHUTDOWN)
        status = self._table.get(name).status

        if status is ServiceStatus.PENDING:
            _ = self._table.transition(
                name, ServiceStatus.STOPPED, owner=Owner.SHUTDOWN
            )
            return

        if status is ServiceStatus.STOPPED:
            return

        if status is ServiceStatus.FAILED:
            # Stop what is left but keep the original failure cause
            if process is not None:
                _ = await self._stop_process(name, process)
            return

        try:
            _ = self._table.transition(
                name, ServiceStatus.STOPPING, owner=Owner.SHUTDOWN
            )
        except SupervisorError as e:
            self._record_failure(name, str(e))
            return

        if process is not None and not await self._stop_process(name, process):
            return

        _ = self._table.transition(
            name,
            ServiceStatus.STOPPED,
            owner=Owner.SHUTDOWN,
            exit_code=process.returncode if process is not None else None,
        )

    async def _stop_process(self, name: str, process: ServiceProcess) -> bool:
        """Stop one process, recording forced kills and stop failures.

        Returns:
            False if the process could not be stopped.
        """
        timeout = self._graph.spec(name).stop_timeout
        try:
            forced = await process.stop(timeout)
        except SupervisorError as e:
            self._record_failure(name, str(e))
            return False

        if forced:
            self._logger.warning("service_killed", service=name, stop_timeout=timeout)
            self._forced.append(name)
        return True

    def _record_failure(self, name: str, cause: str) -> None:
        self._logger.error("service_stop_failed", service=name, cause=cause)
        self._stop_errors[name] = cause
        if self._table.get(name).status is ServiceStatus.STOPPING:
            _ = self._table.transition(
                name, ServiceStatus.FAILED, owner=Owner.SHUTDOWN, cause=cause
            )
