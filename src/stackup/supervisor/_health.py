"""Aggregate health evaluation.

This module provides the HealthReporter class that folds the per-service
states of the StateTable into one overall status for the container health
check.
"""

from collections.abc import Mapping  # noqa: TC003 - Used in runtime type annotations
from types import MappingProxyType
from typing import final

from ._graph import DependencyGraph  # noqa: TC001 - Used in runtime type annotations
from ._models import HealthReport, HealthStatus, ServiceSnapshot, ServiceStatus
from ._output import LogMultiplexer  # noqa: TC001 - Used in runtime type annotations
from ._state import StateTable  # noqa: TC001 - Used in runtime type annotations


def evaluate_health(
    snapshot: Mapping[str, ServiceSnapshot],
    graph: DependencyGraph,
) -> HealthStatus:
    """Compute the overall status of a snapshot.

    Rules, first match wins:
    1. Every service is ready: healthy.
    2. A critical service has failed: unhealthy.
    3. A critical-path service (critical, or depended on by another
       service) is ready or degraded: degraded.
    4. Otherwise: unhealthy.

    Args:
        snapshot: Consistent snapshot of every service.
        graph: Dependency graph the snapshot belongs to.

    Returns:
        The overall health status.
    """
    states = snapshot.values()
    if all(state.status is ServiceStatus.READY for state in states):
        return HealthStatus.HEALTHY

    if any(
        state.status is ServiceStatus.FAILED and graph.spec(state.name).critical
        for state in states
    ):
        return HealthStatus.UNHEALTHY

    for state in states:
        on_critical_path = graph.spec(state.name).critical or graph.has_dependents(
            state.name
        )
        if on_critical_path and state.status in (
            ServiceStatus.READY,
            ServiceStatus.DEGRADED,
        ):
            return HealthStatus.DEGRADED

    return HealthStatus.UNHEALTHY


@final
class HealthReporter:
    """Read-only view producing HealthReports from the state table."""

    __slots__ = ("_graph", "_multiplexer", "_table")

    def __init__(
        self,
        graph: DependencyGraph,
        table: StateTable,
        multiplexer: LogMultiplexer | None = None,
    ) -> None:
        self._graph = graph
        self._table = table
        self._multiplexer = multiplexer

    def health(self) -> HealthReport:
        """Evaluate the current health of every service."""
        snapshot = self._table.snapshot()
        return HealthReport(
            overall=evaluate_health(snapshot, self._graph),
            services=MappingProxyType({
                name: state.status for name, state in snapshot.items()
            }),
            dropped_log_lines=(
                self._multiplexer.dropped if self._multiplexer is not None else 0
            ),
        )
