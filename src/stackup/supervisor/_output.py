"""Log multiplexing and output sink implementations.

This module provides the LogMultiplexer, which funnels the output of every
supervised process into one ordered stream, and concrete implementations of
the OutputSink protocol that render that stream.
"""

import sys
from collections import deque
from typing import BinaryIO, Final, final

import anyio
import anyio.to_thread
import orjson
import structlog
from rich.console import Console
from rich.style import Style
from rich.text import Text
from structlog.typing import FilteringBoundLogger  # noqa: TC002 - Used in runtime type annotations

from ._models import LogLine, ServiceEvent, ServiceStatus
from ._protocol import OutputSink  # noqa: TC001 - Used in runtime type annotations

DEFAULT_BUFFER_SIZE: Final = 10_000


@final
class ConcatenatedOutputSink:
    """Output sink that writes to stdout with formatted prefixes.

    Formats service output as `[name:pid] line` with color coding:
    - stdout: Default styling
    - stderr: Dim red styling
    - Events: Special formatting based on the status entered

    Printing runs in a worker thread, so a slow terminal holds up only the
    multiplexer drain.
    """

    __slots__ = ("_console", "_event_styles", "_stderr_style", "_stdout_style")

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the output sink.

        Args:
            console: Rich Console instance for output. If None, creates one
                that never wraps or highlights child output.
        """
        self._console = console or Console(soft_wrap=True, highlight=False)
        self._stdout_style = Style()
        self._stderr_style = Style(color="red", dim=True)
        self._event_styles: dict[ServiceStatus, Style] = {
            ServiceStatus.STARTING: Style(color="cyan"),
            ServiceStatus.READY: Style(color="green", bold=True),
            ServiceStatus.DEGRADED: Style(color="yellow", bold=True),
            ServiceStatus.STOPPING: Style(color="yellow"),
            ServiceStatus.STOPPED: Style(color="yellow", dim=True),
            ServiceStatus.FAILED: Style(color="red", bold=True),
        }

    async def write_line(self, line: LogLine) -> None:
        """Write a line of service output with prefix.

        Args:
            line: The tagged output line.
        """
        prefix = f"[{line.service_name}:{line.pid}]"
        style = self._stderr_style if line.stream == "stderr" else self._stdout_style

        text = Text()
        _ = text.append(prefix, style=Style(color="blue", bold=True))
        _ = text.append(" ")
        _ = text.append(line.text, style=style)

        await anyio.to_thread.run_sync(self._console.print, text)

    async def write_event(self, event: ServiceEvent) -> None:
        """Write a service state transition with special formatting.

        Args:
            event: The transition to record.
        """
        style = self._event_styles.get(event.status, Style())

        text = Text()
        _ = text.append(f"[{event.service_name}]", style=Style(color="blue", bold=True))
        _ = text.append(" ")
        _ = text.append(event.status.value.upper(), style=style)

        if event.pid is not None:
            _ = text.append(f" (pid={event.pid})", style=Style(dim=True))

        if event.exit_code is not None:
            _ = text.append(f" exit_code={event.exit_code}", style=Style(dim=True))

        if event.message:
            _ = text.append(f" - {event.message}", style=style)

        await anyio.to_thread.run_sync(self._console.print, text)


@final
class JsonLinesOutputSink:
    """Output sink that writes one JSON object per line.

    Suited to log collectors that parse structured container output.
    Writes run in a worker thread like those of ConcatenatedOutputSink.
    """

    __slots__ = ("_stream",)

    def __init__(self, stream: BinaryIO | None = None) -> None:
        """Initialize the output sink.

        Args:
            stream: Binary stream to write to. Defaults to stdout.
        """
        self._stream = stream if stream is not None else sys.stdout.buffer

    def _write_blocking(self, data: bytes) -> None:
        _ = self._stream.write(data)
        self._stream.flush()

    async def _write(self, record: dict[str, object]) -> None:
        await anyio.to_thread.run_sync(
            self._write_blocking, orjson.dumps(record) + b"\n"
        )

    async def write_line(self, line: LogLine) -> None:
        """Write a line of service output as a JSON object."""
        await self._write({
            "timestamp": line.timestamp,
            "service": line.service_name,
            "pid": line.pid,
            "stream": line.stream,
            "message": line.text,
        })

    async def write_event(self, event: ServiceEvent) -> None:
        """Write a service state transition as a JSON object."""
        await self._write({
            "timestamp": event.timestamp,
            "service": event.service_name,
            "pid": event.pid,
            "event": event.status.value,
            "previous": event.previous.value,
            "exit_code": event.exit_code,
            "message": event.message,
        })


@final
class LogMultiplexer:
    """Bounded, drop-oldest funnel from many producers to one sink.

    Producers call publish() or publish_event(), which never block. A single
    drain task started with run() forwards items to the sink in arrival
    order, so lines from one service keep their relative order. When the
    buffer is full the oldest item is discarded and counted.
    Producers keep running while the sink is slow; only the drain waits.
    """

    __slots__ = (
        "_buffer",
        "_closed",
        "_dropped",
        "_logger",
        "_max_buffered",
        "_reported_drops",
        "_sink",
        "_wakeup",
    )

    def __init__(
        self,
        sink: OutputSink,
        *,
        max_buffered: int = DEFAULT_BUFFER_SIZE,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the multiplexer.

        Args:
            sink: Destination of every line and event.
            max_buffered: Maximum number of items held while the sink is busy.
            logger: Logger for sink failures and drop notices.

        Raises:
            ValueError: If max_buffered is not positive.
        """
        if max_buffered < 1:
            msg = f"max_buffered must be positive, got {max_buffered}"
            raise ValueError(msg)

        self._sink = sink
        self._max_buffered = max_buffered
        self._buffer: deque[LogLine | ServiceEvent] = deque()
        self._dropped = 0
        self._reported_drops = 0
        self._closed = False
        self._wakeup: anyio.Event | None = None
        self._logger: FilteringBoundLogger = logger or structlog.get_logger("stackup")

    @property
    def dropped(self) -> int:
        """Return the number of items discarded because the buffer was full."""
        return self._dropped

    @property
    def pending(self) -> int:
        """Return the number of items waiting to be forwarded."""
        return len(self._buffer)

    def _push(self, item: LogLine | ServiceEvent) -> None:
        if len(self._buffer) >= self._max_buffered:
            _ = self._buffer.popleft()
            self._dropped += 1
        self._buffer.append(item)
        if self._wakeup is not None:
            self._wakeup.set()

    def publish(self, line: LogLine) -> None:
        """Queue a line of service output."""
        self._push(line)

    def publish_event(self, event: ServiceEvent) -> None:
        """Queue a service state transition."""
        self._push(event)

    async def _forward(self, item: LogLine | ServiceEvent) -> None:
        try:
            if isinstance(item, LogLine):
                await self._sink.write_line(item)
            else:
                await self._sink.write_event(item)
        except Exception:  # noqa: BLE001
            # Output sink errors should not stop the drain
            self._logger.exception("output_sink_failed", service=item.service_name)

    def _report_drops(self) -> None:
        if self._dropped > self._reported_drops:
            self._logger.warning(
                "log_lines_dropped",
                dropped=self._dropped - self._reported_drops,
                total_dropped=self._dropped,
            )
            self._reported_drops = self._dropped

    async def run(self) -> None:
        """Forward queued items to the sink until closed and drained."""
        while True:
            while self._buffer:
                self._report_drops()
                await self._forward(self._buffer.popleft())

            if self._closed:
                return

            self._wakeup = anyio.Event()
            await self._wakeup.wait()

    def close(self) -> None:
        """Let run() return once everything queued so far is forwarded."""
        self._closed = True
        if self._wakeup is not None:
            self._wakeup.set()
