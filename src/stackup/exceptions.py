"""Stackup exceptions."""

from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any


class StackupError(Exception):
    """Base exception for stackup errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(StackupError):
    """Base exception for configuration errors.

    Every configuration error is fatal: the supervisor exits before any
    service process is spawned.
    """


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source


class CircularDependencyError(ConfigError, ValueError):
    """Raised when service dependencies form a cycle.

    Attributes:
        cycle: Service names forming the cycle, first name repeated at the end.
    """

    def __init__(self, message: str, *, cycle: list[str] | None = None) -> None:
        """Initialize with error message and cycle context.

        Args:
            message: Human-readable error message.
            cycle: Service names forming the circular dependency.
        """
        super().__init__(message)
        self.cycle: list[str] | None = cycle


class UnknownDependencyError(ConfigError, KeyError):
    """Raised when a service depends on a name that is not in the table.

    Attributes:
        service_name: The service declaring the dependency.
        dependency: The unknown dependency name.
    """

    def __init__(self, message: str, *, service_name: str, dependency: str) -> None:
        """Initialize with error message and dependency context.

        Args:
            message: Human-readable error message.
            service_name: The service declaring the dependency.
            dependency: The unknown dependency name.
        """
        super().__init__(message)
        self.service_name: str = service_name
        self.dependency: str = dependency

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead.
        return str(self.args[0])


class MissingExecutableError(ConfigError):
    """Raised when a service command cannot be resolved to an executable.

    Attributes:
        service_name: The service whose command is missing.
        command: The command as configured.
    """

    def __init__(self, message: str, *, service_name: str, command: str) -> None:
        """Initialize with error message and command context.

        Args:
            message: Human-readable error message.
            service_name: The service whose command is missing.
            command: The command as configured.
        """
        super().__init__(message)
        self.service_name: str = service_name
        self.command: str = command


# =============================================================================
# Supervisor Exceptions
# =============================================================================


class SupervisorError(StackupError):
    """Base exception for supervisor errors."""


class ServiceNotFoundError(SupervisorError, KeyError):
    """Raised when a service cannot be found by name.

    Attributes:
        service_name: The name of the service that was not found.
    """

    def __init__(self, message: str, *, service_name: str | None = None) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: The name of the service that was not found.
        """
        super().__init__(message)
        self.service_name: str | None = service_name

    def __str__(self) -> str:
        return str(self.args[0])


class ServiceStartError(SupervisorError):
    """Raised when a service process fails to start.

    Attributes:
        service_name: The name of the service that failed to start.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: The name of the service that failed to start.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.service_name: str | None = service_name
        self.cause: Exception | None = cause


class ServiceStopError(SupervisorError):
    """Raised when a service process cannot be signalled or reaped.

    Attributes:
        service_name: The name of the service that failed to stop.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and service context.

        Args:
            message: Human-readable error message.
            service_name: The name of the service that failed to stop.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.service_name: str | None = service_name
        self.cause: Exception | None = cause


class InvalidTransitionError(SupervisorError):
    """Raised when a service state transition is not allowed.

    Attributes:
        service_name: The service being transitioned.
        current: The status the service is in.
        requested: The status that was requested.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str,
        current: str,
        requested: str,
    ) -> None:
        """Initialize with error message and transition context."""
        super().__init__(message)
        self.service_name: str = service_name
        self.current: str = current
        self.requested: str = requested


class OwnershipError(SupervisorError):
    """Raised when a component transitions a service it does not own.

    Attributes:
        service_name: The service being transitioned.
        owner: The component currently owning the service.
        caller: The component that attempted the transition.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str,
        owner: str,
        caller: str,
    ) -> None:
        """Initialize with error message and ownership context."""
        super().__init__(message)
        self.service_name: str = service_name
        self.owner: str = owner
        self.caller: str = caller


class DoubleLaunchError(SupervisorError):
    """Raised when a process is attached to a service that already has one.

    Attributes:
        service_name: The service that already owns a process.
    """

    def __init__(self, message: str, *, service_name: str) -> None:
        """Initialize with error message and service context."""
        super().__init__(message)
        self.service_name: str = service_name
