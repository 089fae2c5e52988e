"""Protocol definitions for the supervisor system.

This module defines the interface that decouples the log multiplexer from
the way output is rendered:
- OutputSink: Protocol for consuming service output and events
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ._models import LogLine, ServiceEvent


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming multiplexed service output.

    OutputSinks receive output from every supervised service, one item at a
    time and in arrival order. The protocol is async to support non-blocking
    I/O operations like writing to files or sockets. Blocking writes belong
    in a worker thread, never on the event loop.

    Implementations must handle:
    - Service output lines (stdout/stderr)
    - Service state transition events
    """

    async def write_line(self, line: "LogLine") -> None:  # noqa: UP037
        """Write a line of service output.

        Args:
            line: The tagged output line.
        """
        ...

    async def write_event(self, event: "ServiceEvent") -> None:  # noqa: UP037
        """Write a service state transition event.

        Args:
            event: The transition to record.
        """
        ...
