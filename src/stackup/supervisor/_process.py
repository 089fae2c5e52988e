"""Child process handle for a supervised service.

This module provides the ServiceProcess class that spawns one service,
pumps its stdout/stderr into the log multiplexer line by line, and stops it
with a graceful signal followed by a forced kill.
"""

import os
import signal
import subprocess
from collections.abc import Callable  # noqa: TC003 - Used in runtime type annotations
from typing import Final, final

import anyio
import anyio.abc
from anyio.streams.text import TextReceiveStream

from stackup.exceptions import ServiceStartError, ServiceStopError

from ._models import LogLine, ServiceSpec, StreamName, get_timestamp

LinePublisher = Callable[[LogLine], None]

MAX_LINE_LENGTH: Final = 64 * 1024
GROUP_POLL_INTERVAL: Final = 0.05


@final
class ServiceProcess:
    """Exclusive handle on one spawned service process.

    The child runs in its own session so that terminal signals reach only
    the supervisor, and stop signals are delivered to the whole process
    group so wrapper scripts do not orphan the JVM they launch.

    Attributes:
        spec: Descriptor of the service this process belongs to.
    """

    __slots__ = ("_exited", "_process", "_publish", "spec")

    def __init__(
        self,
        spec: ServiceSpec,
        process: anyio.abc.Process,
        publish: LinePublisher,
    ) -> None:
        """Wrap an already spawned process.

        Args:
            spec: Descriptor of the service.
            process: The spawned child process.
            publish: Receives every line the child writes.
        """
        self.spec = spec
        self._process = process
        self._publish = publish
        self._exited = anyio.Event()

    @classmethod
    async def spawn(
        cls,
        spec: ServiceSpec,
        publish: LinePublisher,
    ) -> "ServiceProcess":  # noqa: UP037
        """Spawn the process of a service.

        Args:
            spec: Descriptor of the service.
            publish: Receives every line the child writes.

        Returns:
            A handle on the running process.

        Raises:
            ServiceStartError: If the process cannot be created.
        """
        env: dict[str, str] | None = None
        if spec.env:
            env = {**os.environ, **spec.env}

        try:
            process = await anyio.open_process(
                spec.argv,
                cwd=spec.working_dir,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            msg = f"Failed to start service '{spec.name}': {e}"
            raise ServiceStartError(msg, service_name=spec.name, cause=e) from e

        return cls(spec, process, publish)

    @property
    def name(self) -> str:
        """Return the name of the service."""
        return self.spec.name

    @property
    def pid(self) -> int:
        """Return the process ID."""
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        """Return the exit code, or None while the process runs."""
        return self._process.returncode

    @property
    def exited(self) -> anyio.Event:
        """Return the event set once the process has exited."""
        return self._exited

    def _emit(self, stream_name: StreamName, text: str) -> None:
        self._publish(
            LogLine(
                service_name=self.name,
                stream=stream_name,
                timestamp=get_timestamp(),
                text=text,
                pid=self.pid,
            )
        )

    async def _pump(
        self,
        stream: anyio.abc.ByteReceiveStream,
        stream_name: StreamName,
    ) -> None:
        """Split a child output stream into lines and publish them.

        Args:
            stream: The byte stream to read from.
            stream_name: Name of the stream ("stdout" or "stderr").
        """
        pending = ""
        try:
            async for chunk in TextReceiveStream(stream, errors="replace"):
                pending += chunk
                *lines, pending = pending.split("\n")
                for line in lines:
                    self._emit(stream_name, line.rstrip("\r"))
                if len(pending) > MAX_LINE_LENGTH:
                    self._emit(stream_name, pending)
                    pending = ""
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass

        if pending:
            self._emit(stream_name, pending.rstrip("\r"))

    async def run(self) -> int:
        """Pump output until the process exits.

        Returns:
            The process exit code.
        """
        async with anyio.create_task_group() as tg:
            if self._process.stdout is not None:
                tg.start_soon(self._pump, self._process.stdout, "stdout")
            if self._process.stderr is not None:
                tg.start_soon(self._pump, self._process.stderr, "stderr")

            exit_code = await self._process.wait()
            self._exited.set()

        return exit_code

    def _signal_group(self, signum: signal.Signals) -> None:
        try:
            os.killpg(self.pid, signum)
        except ProcessLookupError:
            # Group already gone; fall back to the leader in case it lingers.
            if self.returncode is None:
                self._process.send_signal(signum)

    def _group_alive(self) -> bool:
        """Return whether any process of the service's group still exists.

        The group outlives its leader when a start script backgrounds the
        JVM and exits.
        """
        try:
            os.killpg(self.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # A member that changed user still counts
            pass
        return True

    async def _wait_group(self) -> None:
        _ = await self._process.wait()
        while self._group_alive():
            await anyio.sleep(GROUP_POLL_INTERVAL)

    def terminate(self) -> None:
        """Send a graceful stop signal to the process group without waiting.

        Used for best-effort cleanup of a start attempt that never became
        ready, and of whatever an exited leader left behind.
        """
        try:
            self._signal_group(signal.SIGTERM)
        except ProcessLookupError:
            pass

    async def stop(self, timeout: float) -> bool:
        """Stop the process group gracefully, killing it after the timeout.

        Every process of the group is signalled, including those still
        running after the leader exited. Returns at once when nothing of
        the group is left.

        Args:
            timeout: Seconds to wait after SIGTERM before sending SIGKILL.

        Returns:
            True if the process or its group had to be killed.

        Raises:
            ServiceStopError: If the process cannot be signalled.
        """
        if self.returncode is not None and not self._group_alive():
            return False

        try:
            self._signal_group(signal.SIGTERM)

            with anyio.move_on_after(timeout):
                await self._wait_group()

            if self.returncode is not None and not self._group_alive():
                return False

            self._signal_group(signal.SIGKILL)
            _ = await self._process.wait()

        except ProcessLookupError:
            # Process already exited
            return False

        except OSError as e:
            msg = f"Failed to stop service '{self.name}': {e}"
            raise ServiceStopError(msg, service_name=self.name, cause=e) from e

        return True
