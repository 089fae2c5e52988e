from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, cast

import anyio
import pytest

from stackup.supervisor import (
    DependencyGraph,
    Launcher,
    Owner,
    ReadinessProber,
    ReadinessResult,
    ServiceEvent,
    ServiceSpec,
    ServiceStatus,
    ShutdownCoordinator,
    StateTable,
)

SpecFactory = Callable[..., ServiceSpec]


@pytest.fixture
def graph(make_spec: SpecFactory) -> DependencyGraph:
    return DependencyGraph([
        make_spec("registry", stop_timeout=3.0),
        make_spec("api-server", depends_on=("registry",), stop_timeout=2.0),
        make_spec("file-server", depends_on=("api-server",), stop_timeout=1.0),
        make_spec("tunnel"),
    ])


@pytest.fixture
def events() -> list[ServiceEvent]:
    return []


@pytest.fixture
def table(graph: DependencyGraph, events: list[ServiceEvent]) -> StateTable:
    return StateTable(graph.names, listener=events.append)


@asynccontextmanager
async def launched(
    graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
) -> AsyncIterator[None]:
    """Launch every service with fakes and keep their watchers running."""
    async with anyio.create_task_group() as watchers:
        launcher = Launcher(
            graph,
            table,
            cast("ReadinessProber", prober),
            lambda _line: None,
            watchers,
            spawn=spawner.spawn,
        )
        _ = await launcher.launch_all()
        try:
            yield
        finally:
            watchers.cancel_scope.cancel()


def event_index(
    events: list[ServiceEvent], name: str, status: ServiceStatus
) -> int:
    return next(
        i
        for i, e in enumerate(events)
        if e.service_name == name and e.status is status
    )


class TestShutdownAll:
    @pytest.mark.anyio
    async def test_stops_everything_in_reverse_order(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        async with launched(graph, table, spawner, prober):
            result = await ShutdownCoordinator(graph, table).shutdown_all()

        assert result.clean
        assert result.order == ("file-server", "tunnel", "api-server", "registry")
        assert set(result.stopped) == set(graph.names)
        assert result.forced == ()
        assert all(
            state.status is ServiceStatus.STOPPED
            for state in table.snapshot().values()
        )

    @pytest.mark.anyio
    async def test_dependent_stopped_before_dependency_stops(
        self,
        graph: DependencyGraph,
        table: StateTable,
        events: list[ServiceEvent],
        spawner: Any,
        prober: Any,
    ) -> None:
        async with launched(graph, table, spawner, prober):
            _ = await ShutdownCoordinator(graph, table).shutdown_all()

        for name in graph.names:
            for dependency in graph.dependencies(name):
                assert event_index(
                    events, name, ServiceStatus.STOPPED
                ) < event_index(events, dependency, ServiceStatus.STOPPING)

    @pytest.mark.anyio
    async def test_takes_ownership(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        async with launched(graph, table, spawner, prober):
            _ = await ShutdownCoordinator(graph, table).shutdown_all()

        assert all(table.owner(name) is Owner.SHUTDOWN for name in graph.names)

    @pytest.mark.anyio
    async def test_uses_stop_timeout_of_each_service(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        async with launched(graph, table, spawner, prober):
            _ = await ShutdownCoordinator(graph, table).shutdown_all()

        assert spawner.processes["registry"].stop_timeouts == [3.0]
        assert spawner.processes["file-server"].stop_timeouts == [1.0]

    @pytest.mark.anyio
    async def test_records_exit_code(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        async with launched(graph, table, spawner, prober):
            _ = await ShutdownCoordinator(graph, table).shutdown_all()

        snapshot = table.get("tunnel")
        assert snapshot.exit_code == -15
        assert snapshot.stopped_at is not None

    @pytest.mark.anyio
    async def test_pending_services_stop_without_process(
        self, graph: DependencyGraph, table: StateTable
    ) -> None:
        result = await ShutdownCoordinator(graph, table).shutdown_all()

        assert set(result.stopped) == set(graph.names)
        assert result.clean

    @pytest.mark.anyio
    async def test_failed_service_keeps_cause(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        spawner.failures.add("registry")

        async with launched(graph, table, spawner, prober):
            result = await ShutdownCoordinator(graph, table).shutdown_all()

        assert table.get("registry").status is ServiceStatus.FAILED
        assert table.get("api-server").cause == "dependency failed"
        assert "registry" not in result.stopped
        assert "registry" in result.order
        assert result.clean

    @pytest.mark.anyio
    async def test_forced_kill(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        spawner.ignore_term.add("api-server")

        async with launched(graph, table, spawner, prober):
            result = await ShutdownCoordinator(graph, table).shutdown_all()

        assert result.forced == ("api-server",)
        assert table.get("api-server").status is ServiceStatus.STOPPED
        assert table.get("api-server").exit_code == -9

    @pytest.mark.anyio
    async def test_stop_failure_does_not_block_others(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        spawner.stop_errors.add("api-server")

        async with launched(graph, table, spawner, prober):
            result = await ShutdownCoordinator(graph, table).shutdown_all()

        assert not result.clean
        assert "permission denied" in result.failed["api-server"]
        assert table.get("api-server").status is ServiceStatus.FAILED
        assert table.get("registry").status is ServiceStatus.STOPPED
        assert "registry" in result.stopped

    @pytest.mark.anyio
    async def test_process_exited_before_shutdown(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        async with launched(graph, table, spawner, prober):
            spawner.processes["tunnel"].finish(0)
            with anyio.fail_after(2):
                while table.get("tunnel").status is not ServiceStatus.FAILED:
                    await anyio.sleep(0.01)

            result = await ShutdownCoordinator(graph, table).shutdown_all()

        # Unexpected exit was already recorded; nothing left to stop
        assert table.get("tunnel").cause == "exited unexpectedly (code 0)"
        assert "tunnel" not in result.stopped

    @pytest.mark.anyio
    async def test_failed_service_with_running_process_stays_failed(
        self, graph: DependencyGraph, table: StateTable, spawner: Any, prober: Any
    ) -> None:
        prober.results["tunnel"] = ReadinessResult.TIMED_OUT
        spawner.ignore_term.add("tunnel")

        async with launched(graph, table, spawner, prober):
            assert table.process("tunnel") is not None
            result = await ShutdownCoordinator(graph, table).shutdown_all()

        snapshot = table.get("tunnel")
        assert snapshot.status is ServiceStatus.FAILED
        assert snapshot.cause == "not ready after 5s"
        assert spawner.processes["tunnel"].stop_timeouts == [5.0]
        assert spawner.processes["tunnel"].returncode == -9
        assert result.forced == ("tunnel",)
        assert "tunnel" not in result.stopped
