"""Main supervisor coordinating launch, health and shutdown.

This module provides the Supervisor class that wires the dependency graph,
state table, log multiplexer, launcher and shutdown coordinator together
using anyio for structured concurrency.
"""

import signal
from collections.abc import Mapping, Sequence  # noqa: TC003 - Used in runtime type annotations
from typing import final

import anyio
import structlog
from structlog.typing import FilteringBoundLogger  # noqa: TC002 - Used in runtime type annotations

from ._graph import DependencyGraph
from ._health import HealthReporter
from ._launcher import Launcher, Spawner
from ._models import (
    HealthReport,
    LaunchResult,
    ServiceSnapshot,
    ServiceSpec,
    ServiceStatus,
    ShutdownResult,
)
from ._output import DEFAULT_BUFFER_SIZE, ConcatenatedOutputSink, LogMultiplexer
from ._process import ServiceProcess
from ._protocol import OutputSink  # noqa: TC001 - Used in runtime type annotations
from ._readiness import DEFAULT_POLL_INTERVAL, DEFAULT_PROBE_TIMEOUT, ReadinessProber
from ._shutdown import ShutdownCoordinator
from ._state import StateTable

DEFAULT_LIVENESS_INTERVAL = 5.0


@final
class Supervisor:
    """Runs a table of interdependent services inside one container.

    Services launch in dependency waves, are watched for readiness and
    unexpected exits, and stop in reverse order when the supervisor receives
    SIGINT/SIGTERM or shutdown() is called.

    The dependency graph is validated on construction, so a cyclic or
    dangling table fails before any process is spawned.
    """

    __slots__ = (
        "_coordinator",
        "_graph",
        "_launch_result",
        "_liveness_interval",
        "_logger",
        "_multiplexer",
        "_prober",
        "_reporter",
        "_shutdown_event",
        "_shutdown_requested",
        "_shutdown_result",
        "_spawn",
        "_table",
    )

    def __init__(  # noqa: PLR0913
        self,
        specs: Sequence[ServiceSpec],
        output_sink: OutputSink | None = None,
        *,
        probe_host: str = "127.0.0.1",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        liveness_interval: float | None = DEFAULT_LIVENESS_INTERVAL,
        log_buffer_size: int = DEFAULT_BUFFER_SIZE,
        spawn: Spawner = ServiceProcess.spawn,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            specs: Descriptors of the services to supervise.
            output_sink: Sink for service output. Uses ConcatenatedOutputSink if None.
            probe_host: Host readiness probes connect to.
            poll_interval: Seconds between readiness attempts.
            probe_timeout: Seconds allowed for one readiness attempt.
            liveness_interval: Seconds between liveness rounds after launch,
                or None to disable liveness probing.
            log_buffer_size: Capacity of the log multiplexer.
            spawn: Coroutine creating a ServiceProcess.
            logger: Logger for supervisor events.

        Raises:
            ConfigError: If the dependency graph is invalid.
        """
        self._logger: FilteringBoundLogger = logger or structlog.get_logger("stackup")
        self._graph = DependencyGraph(specs)
        self._multiplexer = LogMultiplexer(
            output_sink or ConcatenatedOutputSink(),
            max_buffered=log_buffer_size,
            logger=self._logger,
        )
        self._table = StateTable(
            self._graph.names, listener=self._multiplexer.publish_event
        )
        self._prober = ReadinessProber(
            host=probe_host,
            poll_interval=poll_interval,
            probe_timeout=probe_timeout,
            logger=self._logger,
        )
        self._reporter = HealthReporter(self._graph, self._table, self._multiplexer)
        self._coordinator = ShutdownCoordinator(
            self._graph, self._table, logger=self._logger
        )
        self._liveness_interval = liveness_interval
        self._spawn = spawn
        self._shutdown_event: anyio.Event | None = None
        self._shutdown_requested = False
        self._launch_result: LaunchResult | None = None
        self._shutdown_result: ShutdownResult | None = None

    @property
    def graph(self) -> DependencyGraph:
        """Return the validated dependency graph."""
        return self._graph

    @property
    def multiplexer(self) -> LogMultiplexer:
        """Return the log multiplexer."""
        return self._multiplexer

    @property
    def launch_result(self) -> LaunchResult | None:
        """Return the outcome of the launch, once it completed."""
        return self._launch_result

    @property
    def shutdown_result(self) -> ShutdownResult | None:
        """Return the outcome of the shutdown, once it completed."""
        return self._shutdown_result

    def get_service(self, name: str) -> ServiceSnapshot:
        """Get the current state of a service.

        Raises:
            ServiceNotFoundError: If no service exists with that name.
        """
        return self._table.get(name)

    def get_status(self) -> dict[str, dict[str, object]]:
        """Get status summary for all services.

        Returns:
            Dictionary mapping service names to status dictionaries.
        """
        return {
            name: state.to_dict() for name, state in self._table.snapshot().items()
        }

    def health(self) -> HealthReport:
        """Evaluate the aggregate health of all services."""
        return self._reporter.health()

    def failed_services(self) -> Mapping[str, str]:
        """Return the failure cause of every service currently failed."""
        return {
            name: state.cause or ""
            for name, state in self._table.snapshot().items()
            if state.status is ServiceStatus.FAILED
        }

    async def _handle_signals(self) -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                self._logger.info("signal_received", signal=signal.Signals(signum).name)
                await self.shutdown()
                break

    async def _launch(self, launcher: Launcher) -> None:
        self._launch_result = await launcher.launch_all()
        if self._liveness_interval is not None:
            await launcher.monitor_liveness(self._liveness_interval)

    async def _supervise(self, shutdown_event: anyio.Event) -> ShutdownResult:
        async with anyio.create_task_group() as watchers:
            async with anyio.create_task_group() as launch:
                launcher = Launcher(
                    self._graph,
                    self._table,
                    self._prober,
                    self._multiplexer.publish,
                    watchers,
                    spawn=self._spawn,
                    logger=self._logger,
                )
                launch.start_soon(self._launch, launcher)

                await shutdown_event.wait()
                launch.cancel_scope.cancel()

            self._logger.info("shutdown_started")
            with anyio.CancelScope(shield=True):
                result = await self._coordinator.shutdown_all()

            # Every process has been stopped; remaining watchers only drain pipes
            watchers.cancel_scope.cancel()

        return result

    async def run(self, *, handle_signals: bool = True) -> ShutdownResult:
        """Run the supervisor, launching all services.

        Blocks until shutdown is triggered (via signal or shutdown()), then
        stops every service and flushes pending output.

        Args:
            handle_signals: Whether SIGINT/SIGTERM trigger the shutdown.

        Returns:
            The outcome of the shutdown.
        """
        shutdown_event = anyio.Event()
        self._shutdown_event = shutdown_event
        if self._shutdown_requested:
            shutdown_event.set()

        async with anyio.create_task_group() as tg:
            if handle_signals:
                tg.start_soon(self._handle_signals)

            async with anyio.create_task_group() as output:
                output.start_soon(self._multiplexer.run)
                try:
                    result = await self._supervise(shutdown_event)
                finally:
                    self._multiplexer.close()

            tg.cancel_scope.cancel()

        self._shutdown_result = result
        return result

    async def shutdown(self) -> None:
        """Trigger graceful shutdown of all services.

        Sets the shutdown event, which will cause run() to begin
        stopping services and exit.
        """
        self._shutdown_requested = True
        if self._shutdown_event is not None:
            self._shutdown_event.set()
