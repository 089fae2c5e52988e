"""Guarded service state table.

This module provides the StateTable class, the only shared mutable
structure of the supervisor. Every transition goes through one lock and
names the component performing it; a component may only transition the
services it currently owns.
"""

import threading
from collections.abc import (  # noqa: TC003 - Used in runtime type annotations
    Callable,
    Iterable,
    Iterator,
    Mapping,
)
from types import MappingProxyType
from typing import Final, final

from stackup.exceptions import (
    DoubleLaunchError,
    InvalidTransitionError,
    OwnershipError,
    ServiceNotFoundError,
)

from ._models import (
    Owner,
    ServiceEvent,
    ServiceSnapshot,
    ServiceState,
    ServiceStatus,
    get_timestamp,
)
from ._process import ServiceProcess  # noqa: TC001 - Used in runtime type annotations

TransitionListener = Callable[[ServiceEvent], None]

ALLOWED_TRANSITIONS: Final[Mapping[ServiceStatus, frozenset[ServiceStatus]]] = (
    MappingProxyType({
        ServiceStatus.PENDING: frozenset({
            ServiceStatus.STARTING,
            ServiceStatus.FAILED,
            ServiceStatus.STOPPED,
        }),
        ServiceStatus.STARTING: frozenset({
            ServiceStatus.READY,
            ServiceStatus.FAILED,
            ServiceStatus.STOPPING,
        }),
        ServiceStatus.READY: frozenset({
            ServiceStatus.DEGRADED,
            ServiceStatus.FAILED,
            ServiceStatus.STOPPING,
        }),
        ServiceStatus.DEGRADED: frozenset({
            ServiceStatus.READY,
            ServiceStatus.FAILED,
            ServiceStatus.STOPPING,
        }),
        ServiceStatus.STOPPING: frozenset({
            ServiceStatus.STOPPED,
            ServiceStatus.FAILED,
        }),
        ServiceStatus.FAILED: frozenset(),
        ServiceStatus.STOPPED: frozenset(),
    })
)


@final
class StateTable:
    """Table of ServiceState records guarded by a single lock.

    Writers call transition() naming themselves as owner; readers call
    get() or snapshot() and receive immutable copies, never a half-updated
    record.
    """

    __slots__: Final = ("_listener", "_lock", "_states")

    def __init__(
        self,
        names: Iterable[str],
        listener: TransitionListener | None = None,
    ) -> None:
        """Create a Pending record for every service.

        Args:
            names: Service names, in declaration order.
            listener: Called with a ServiceEvent after every transition.
        """
        self._states: dict[str, ServiceState] = {
            name: ServiceState(name=name) for name in names
        }
        self._lock = threading.Lock()
        self._listener = listener

    def _state(self, name: str) -> ServiceState:
        state = self._states.get(name)
        if state is None:
            msg = f"Service '{name}' not found"
            raise ServiceNotFoundError(msg, service_name=name)
        return state

    @staticmethod
    def _check_owner(state: ServiceState, owner: Owner) -> None:
        if state.owner is not owner:
            msg = (
                f"Service '{state.name}' is owned by {state.owner.value}, "
                f"not {owner.value}"
            )
            raise OwnershipError(
                msg,
                service_name=state.name,
                owner=state.owner.value,
                caller=owner.value,
            )

    def get(self, name: str) -> ServiceSnapshot:
        """Return a snapshot of one service.

        Raises:
            ServiceNotFoundError: If no service has that name.
        """
        with self._lock:
            return self._state(name).snapshot()

    def snapshot(self) -> Mapping[str, ServiceSnapshot]:
        """Return a consistent snapshot of every service."""
        with self._lock:
            return MappingProxyType({
                name: state.snapshot() for name, state in self._states.items()
            })

    def owner(self, name: str) -> Owner:
        """Return the component currently owning a service."""
        with self._lock:
            return self._state(name).owner

    def process(self, name: str) -> ServiceProcess | None:
        """Return the process attached to a service, if any."""
        with self._lock:
            return self._state(name).process

    def transition(
        self,
        name: str,
        status: ServiceStatus,
        *,
        owner: Owner,
        cause: str | None = None,
        exit_code: int | None = None,
    ) -> ServiceSnapshot:
        """Move a service to a new status.

        Repeating READY is a no-op, so the first successful readiness check
        wins and later identical successes change nothing.

        Args:
            name: The service name.
            status: The status to enter.
            owner: The component performing the transition.
            cause: Why the service failed, if it did.
            exit_code: Exit code of the process, if it terminated.

        Returns:
            Snapshot of the service after the transition.

        Raises:
            ServiceNotFoundError: If no service has that name.
            OwnershipError: If owner does not own the service.
            InvalidTransitionError: If the transition is not allowed.
        """
        with self._lock:
            state = self._state(name)
            self._check_owner(state, owner)

            previous = state.status
            if previous is status is ServiceStatus.READY:
                return state.snapshot()

            if status not in ALLOWED_TRANSITIONS[previous]:
                msg = (
                    f"Service '{name}' cannot go from {previous.value} "
                    f"to {status.value}"
                )
                raise InvalidTransitionError(
                    msg,
                    service_name=name,
                    current=previous.value,
                    requested=status.value,
                )

            now = get_timestamp()
            state.status = status
            if status is ServiceStatus.STARTING and state.started_at is None:
                state.started_at = now
            elif status is ServiceStatus.READY and state.ready_at is None:
                state.ready_at = now
            elif status is ServiceStatus.STOPPED:
                state.stopped_at = now
            if cause is not None:
                state.cause = cause
            if exit_code is not None:
                state.exit_code = exit_code

            event = ServiceEvent(
                service_name=name,
                status=status,
                previous=previous,
                timestamp=now,
                pid=state.pid,
                exit_code=exit_code,
                message=cause,
            )
            snapshot = state.snapshot()

        if self._listener is not None:
            self._listener(event)
        return snapshot

    def attach_process(
        self,
        name: str,
        process: ServiceProcess,
        *,
        owner: Owner,
    ) -> None:
        """Attach a freshly spawned process to a service.

        Raises:
            OwnershipError: If owner does not own the service.
            DoubleLaunchError: If the service already has a process.
        """
        with self._lock:
            state = self._state(name)
            self._check_owner(state, owner)
            if state.process is not None:
                msg = f"Service '{name}' already has a process (pid={state.pid})"
                raise DoubleLaunchError(msg, service_name=name)
            state.process = process
            state.pid = process.pid

    def release_process(self, name: str, process: ServiceProcess) -> None:
        """Drop the process handle once it has been reaped.

        Releasing a handle that is no longer attached does nothing, so the
        handle is released exactly once.
        """
        with self._lock:
            state = self._state(name)
            if state.process is process:
                state.process = None
                state.pid = None
                state.exit_code = process.returncode

    def transfer(self, name: str, new_owner: Owner) -> ServiceProcess | None:
        """Hand ownership of a service and its process to another component.

        Returns:
            The process still attached to the service, if any.
        """
        with self._lock:
            state = self._state(name)
            state.owner = new_owner
            return state.process

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)
