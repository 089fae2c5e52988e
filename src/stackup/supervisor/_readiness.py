"""Readiness probing for freshly started services.

This module provides the ReadinessProber class that polls a service's
declared readiness check until it succeeds or the start timeout elapses.
"""

import math
from typing import Final, final

import anyio
import anyio.lowlevel
import httpx
import structlog
from structlog.typing import FilteringBoundLogger  # noqa: TC002 - Used in runtime type annotations

from ._models import ReadinessCheck, ReadinessKind, ReadinessResult, ServiceSpec

DEFAULT_POLL_INTERVAL: Final = 0.5
DEFAULT_PROBE_TIMEOUT: Final = 0.4


@final
class ReadinessProber:
    """Polls TCP and HTTP readiness checks.

    Each attempt is independent and bounded by its own timeout, which is
    shorter than the poll interval, so a hung connection cannot stall the
    poll loop. An attempt succeeds only if the declared check passes and
    every other declared port of the service accepts a TCP connection.
    """

    __slots__ = ("_host", "_logger", "_poll_interval", "_probe_timeout")

    def __init__(
        self,
        *,
        host: str = "127.0.0.1",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the prober.

        Args:
            host: Host the supervised services listen on.
            poll_interval: Seconds between two attempts.
            probe_timeout: Seconds allowed for one attempt.
            logger: Logger for failed attempts.

        Raises:
            ValueError: If the timeout is not shorter than the interval.
        """
        if not 0 < probe_timeout < poll_interval:
            msg = (
                f"probe_timeout ({probe_timeout}) must be positive and shorter "
                f"than poll_interval ({poll_interval})"
            )
            raise ValueError(msg)

        self._host = host
        self._poll_interval = poll_interval
        self._probe_timeout = probe_timeout
        self._logger: FilteringBoundLogger = logger or structlog.get_logger("stackup")

    @property
    def poll_interval(self) -> float:
        """Return the seconds between two attempts."""
        return self._poll_interval

    async def _tcp_reachable(self, port: int) -> bool:
        try:
            stream = await anyio.connect_tcp(self._host, port)
        except OSError:
            return False
        await stream.aclose()
        return True

    async def _http_ok(self, check: ReadinessCheck) -> bool:
        url = f"http://{self._host}:{check.port}{check.path}"
        try:
            async with httpx.AsyncClient(timeout=self._probe_timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError:
            return False
        return response.is_success

    async def _attempt(self, spec: ServiceSpec) -> bool:
        check = spec.readiness
        if check.kind is ReadinessKind.HTTP:
            passed = await self._http_ok(check)
        else:
            passed = await self._tcp_reachable(check.port)
        if not passed:
            return False

        for port in spec.ports:
            if port != check.port and not await self._tcp_reachable(port):
                return False
        return True

    async def probe_once(self, spec: ServiceSpec) -> bool:
        """Run a single readiness attempt.

        Args:
            spec: Descriptor of the service to probe.

        Returns:
            True if the service is ready.
        """
        with anyio.move_on_after(self._probe_timeout):
            return await self._attempt(spec)
        return False

    async def await_ready(
        self,
        spec: ServiceSpec,
        *,
        exited: anyio.Event | None = None,
    ) -> ReadinessResult:
        """Poll until the service is ready, exits, or its start timeout elapses.

        Cancellation is checked before every attempt, so a supervisor
        shutdown interrupts the loop promptly.

        Args:
            spec: Descriptor of the service to probe.
            exited: Event set when the service process exits.

        Returns:
            READY, TIMED_OUT or EXITED.
        """
        deadline = anyio.current_time() + spec.start_timeout
        attempts = 0

        while True:
            await anyio.lowlevel.checkpoint()
            if exited is not None and exited.is_set():
                return ReadinessResult.EXITED

            attempts += 1
            if await self.probe_once(spec):
                self._logger.debug(
                    "service_ready", service=spec.name, attempts=attempts
                )
                return ReadinessResult.READY

            remaining = deadline - anyio.current_time()
            if remaining <= 0:
                self._logger.warning(
                    "readiness_timed_out",
                    service=spec.name,
                    attempts=attempts,
                    timeout=spec.start_timeout,
                )
                return ReadinessResult.TIMED_OUT

            with anyio.move_on_after(min(self._poll_interval, remaining)):
                if exited is not None:
                    await exited.wait()
                else:
                    await anyio.sleep(math.inf)
