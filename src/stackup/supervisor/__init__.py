"""Supervisor package for running interdependent services in one container.

This package launches a table of services in dependency order, waits for
each to become ready, multiplexes their output, reports aggregate health,
and stops them in reverse order on shutdown.

Key Components:
    - ServiceSpec / ReadinessCheck: Immutable service descriptors
    - DependencyGraph: Validated dependency graph and wave computation
    - StateTable: Lock-guarded per-service state with ownership
    - ReadinessProber: TCP/HTTP readiness polling
    - ServiceProcess: Spawned child process with output pumps
    - LogMultiplexer: Bounded, drop-oldest output funnel
    - ConcatenatedOutputSink / JsonLinesOutputSink: Output renderers
    - Launcher: Wave-based launch with failure propagation
    - HealthReporter: Aggregate Healthy/Degraded/Unhealthy view
    - ShutdownCoordinator: Reverse-order best-effort shutdown
    - Supervisor: Coordinator wiring everything together
    - create_control_router / create_health_router: FastAPI endpoint factories

Example:
    >>> from stackup.supervisor import ReadinessCheck, ReadinessKind, ServiceSpec
    >>> from stackup.supervisor import Supervisor
    >>> specs = [
    ...     ServiceSpec(
    ...         name="registry",
    ...         command="bin/registry.sh",
    ...         ports=(8970,),
    ...         readiness=ReadinessCheck(ReadinessKind.TCP, 8970),
    ...     ),
    ... ]
    >>> supervisor = Supervisor(specs)
    >>> await supervisor.run()  # Blocks until shutdown
"""

from ._api import create_control_router, create_health_router
from ._graph import DependencyGraph
from ._health import HealthReporter, evaluate_health
from ._launcher import DEPENDENCY_FAILED, Launcher
from ._models import (
    HealthReport,
    HealthStatus,
    LaunchResult,
    LogLine,
    Owner,
    ReadinessCheck,
    ReadinessKind,
    ReadinessResult,
    ServiceEvent,
    ServiceSnapshot,
    ServiceSpec,
    ServiceStatus,
    ShutdownResult,
)
from ._output import ConcatenatedOutputSink, JsonLinesOutputSink, LogMultiplexer
from ._process import ServiceProcess
from ._protocol import OutputSink
from ._readiness import ReadinessProber
from ._shutdown import ShutdownCoordinator
from ._state import ALLOWED_TRANSITIONS, StateTable
from ._supervisor import Supervisor

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DEPENDENCY_FAILED",
    "ConcatenatedOutputSink",
    "DependencyGraph",
    "HealthReport",
    "HealthReporter",
    "HealthStatus",
    "JsonLinesOutputSink",
    "LaunchResult",
    "Launcher",
    "LogLine",
    "LogMultiplexer",
    "OutputSink",
    "Owner",
    "ReadinessCheck",
    "ReadinessKind",
    "ReadinessProber",
    "ReadinessResult",
    "ServiceEvent",
    "ServiceProcess",
    "ServiceSnapshot",
    "ServiceSpec",
    "ServiceStatus",
    "ShutdownCoordinator",
    "ShutdownResult",
    "StateTable",
    "Supervisor",
    "create_control_router",
    "create_health_router",
    "evaluate_health",
]
