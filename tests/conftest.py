"""Shared test fixtures for stackup tests."""

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest
from rich.console import Console

from stackup.supervisor import (
    LogLine,
    ReadinessCheck,
    ReadinessKind,
    ServiceEvent,
    ServiceSpec,
)

SpecFactory = Callable[..., ServiceSpec]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_spec() -> SpecFactory:
    """Return a factory building ServiceSpecs with TCP readiness."""

    def _make(  # noqa: PLR0913
        name: str,
        *,
        depends_on: tuple[str, ...] = (),
        port: int = 1,
        ports: tuple[int, ...] | None = None,
        critical: bool = False,
        command: str = "/bin/true",
        args: tuple[str, ...] = (),
        start_timeout: float = 5.0,
        stop_timeout: float = 5.0,
    ) -> ServiceSpec:
        return ServiceSpec(
            name=name,
            command=command,
            args=args,
            readiness=ReadinessCheck(kind=ReadinessKind.TCP, port=port),
            ports=ports if ports is not None else (port,),
            depends_on=depends_on,
            critical=critical,
            start_timeout=start_timeout,
            stop_timeout=stop_timeout,
        )

    return _make


@dataclass(slots=True)
class CollectingSink:
    """OutputSink keeping everything it receives in memory."""

    lines: list[LogLine] = field(default_factory=list)
    events: list[ServiceEvent] = field(default_factory=list)

    async def write_line(self, line: LogLine) -> None:
        self.lines.append(line)

    async def write_event(self, event: ServiceEvent) -> None:
        self.events.append(event)

    def texts(self, service_name: str) -> list[str]:
        return [line.text for line in self.lines if line.service_name == service_name]

    def statuses(self, service_name: str) -> list[str]:
        return [
            event.status.value
            for event in self.events
            if event.service_name == service_name
        ]


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )
