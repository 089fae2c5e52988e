"""Data models for the supervisor system.

This module defines the core data types for service supervision:
- ServiceStatus: Lifecycle states of a supervised service
- Owner: Component allowed to transition a service
- ReadinessKind / ReadinessCheck: How readiness is observed
- ServiceSpec: Immutable service descriptor
- ServiceState: Mutable per-service record, owned by the StateTable
- ServiceSnapshot: Immutable copy of a ServiceState handed to readers
- LogLine / ServiceEvent: Items carried by the log multiplexer
- HealthStatus / HealthReport: Aggregate health view
"""

from collections.abc import Mapping  # noqa: TC003 - Used in runtime type annotations
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from ._process import ServiceProcess

StreamName = Literal["stdout", "stderr"]


def get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC").to_iso8601_string()


class ServiceStatus(StrEnum):
    """Service lifecycle states.

    - PENDING: Registered, not yet launched
    - STARTING: Process spawned, readiness not yet observed
    - READY: Readiness check succeeded
    - DEGRADED: Was ready, a later liveness probe failed
    - STOPPING: Shutdown in progress
    - STOPPED: Stopped by the supervisor
    - FAILED: Could not start, never became ready, or exited unexpectedly
    """

    PENDING = "pending"
    STARTING = "starting"
    READY = "ready"
    DEGRADED = "degraded"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


class Owner(StrEnum):
    """Component currently allowed to transition a service."""

    LAUNCHER = "launcher"
    SHUTDOWN = "shutdown"


class ReadinessKind(StrEnum):
    """Kinds of readiness checks."""

    TCP = "tcp"
    HTTP = "http"


class ReadinessResult(StrEnum):
    """Outcome of waiting for a service to become ready."""

    READY = "ready"
    TIMED_OUT = "timed_out"
    EXITED = "exited"


class HealthStatus(StrEnum):
    """Aggregate health of the supervised system."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True, slots=True)
class ReadinessCheck:
    """Readiness check descriptor.

    Attributes:
        kind: TCP connect or HTTP GET.
        port: Port the check targets.
        path: HTTP path, ignored for TCP checks.
    """

    kind: ReadinessKind
    port: int
    path: str = "/"


@dataclass(frozen=True, slots=True)
class ServiceSpec:
    """Immutable descriptor of a supervised service.

    Attributes:
        name: Unique identifier for the service.
        command: Executable to run.
        args: Arguments passed to the executable.
        working_dir: Working directory of the process.
        env: Additional environment variables.
        ports: TCP ports the service is expected to bind.
        readiness: Check that decides when the service is ready.
        depends_on: Services that must be ready before this one launches.
        critical: Whether failure of this service makes the system unhealthy.
        start_timeout: Seconds allowed to become ready.
        stop_timeout: Seconds allowed for graceful shutdown.
    """

    name: str
    command: str
    readiness: ReadinessCheck
    args: tuple[str, ...] = ()
    working_dir: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    ports: tuple[int, ...] = ()
    depends_on: tuple[str, ...] = ()
    critical: bool = False
    start_timeout: float = 60.0
    stop_timeout: float = 10.0

    @property
    def argv(self) -> tuple[str, ...]:
        """Return the full command line."""
        return (self.command, *self.args)


@dataclass(frozen=True, slots=True)
class ServiceSnapshot:
    """Immutable view of a service's state at one point in time."""

    name: str
    status: ServiceStatus
    owner: Owner
    pid: int | None
    started_at: str | None
    ready_at: str | None
    stopped_at: str | None
    exit_code: int | None
    cause: str | None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-compatible dictionary."""
        return {
            "status": self.status.value,
            "pid": self.pid,
            "started_at": self.started_at,
            "ready_at": self.ready_at,
            "stopped_at": self.stopped_at,
            "exit_code": self.exit_code,
            "cause": self.cause,
        }


@dataclass(slots=True)
class ServiceState:
    """Mutable runtime record of a service.

    Only the StateTable touches instances of this class; everything else
    sees ServiceSnapshot copies.
    """

    name: str
    status: ServiceStatus = ServiceStatus.PENDING
    owner: Owner = Owner.LAUNCHER
    process: "ServiceProcess | None" = None  # noqa: UP037
    pid: int | None = None
    started_at: str | None = None
    ready_at: str | None = None
    stopped_at: str | None = None
    exit_code: int | None = None
    cause: str | None = None

    def snapshot(self) -> ServiceSnapshot:
        """Return an immutable copy of this record."""
        return ServiceSnapshot(
            name=self.name,
            status=self.status,
            owner=self.owner,
            pid=self.pid,
            started_at=self.started_at,
            ready_at=self.ready_at,
            stopped_at=self.stopped_at,
            exit_code=self.exit_code,
            cause=self.cause,
        )


@dataclass(frozen=True, slots=True)
class LogLine:
    """One line of child process output.

    Attributes:
        service_name: Service that produced the line.
        stream: Which output stream the line came from.
        timestamp: ISO 8601 time the line was read.
        text: The line without its trailing newline.
        pid: Process ID of the producer.
    """

    service_name: str
    stream: StreamName
    timestamp: str
    text: str
    pid: int | None = None


@dataclass(frozen=True, slots=True)
class ServiceEvent:
    """Immutable record of a service state transition.

    Attributes:
        service_name: Service that changed state.
        status: Status entered.
        previous: Status left.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        exit_code: Exit code if the process terminated.
        message: Optional human-readable message.
    """

    service_name: str
    status: ServiceStatus
    previous: ServiceStatus
    timestamp: str
    pid: int | None = None
    exit_code: int | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class HealthReport:
    """Aggregate health of all supervised services.

    Attributes:
        overall: Aggregate status.
        services: Status per service name.
        dropped_log_lines: Lines dropped by the log multiplexer so far.
    """

    overall: HealthStatus
    services: Mapping[str, ServiceStatus]
    dropped_log_lines: int = 0

    @property
    def acceptable(self) -> bool:
        """Return True if the container health check should pass."""
        return self.overall in (HealthStatus.HEALTHY, HealthStatus.DEGRADED)


@dataclass(frozen=True, slots=True)
class LaunchResult:
    """Outcome of launching every service.

    Attributes:
        ready: Services that became ready.
        failed: Failure cause per service that did not.
    """

    ready: tuple[str, ...]
    failed: Mapping[str, str]

    @property
    def ok(self) -> bool:
        """Return True if every service became ready."""
        return not self.failed


@dataclass(frozen=True, slots=True)
class ShutdownResult:
    """Outcome of stopping every service.

    Attributes:
        order: Service names in the order their stop attempts began.
        stopped: Services that ended in the stopped state.
        forced: Services that had to be killed after the graceful timeout.
        failed: Error message per service whose stop attempt failed.
    """

    order: tuple[str, ...]
    stopped: tuple[str, ...]
    forced: tuple[str, ...]
    failed: Mapping[str, str]

    @property
    def clean(self) -> bool:
        """Return True if every stop attempt succeeded."""
        return not self.failed
