from dataclasses import dataclass, field

import anyio
from hypothesis import given, strategies as st

from stackup.supervisor import LogLine, LogMultiplexer, ServiceEvent

SERVICES = ("registry", "api-server", "tunnel")

# Each item names the service that writes the next line.
writers = st.lists(st.sampled_from(SERVICES), max_size=60)


@dataclass
class RecordingSink:
    lines: list[LogLine] = field(default_factory=list)

    async def write_line(self, line: LogLine) -> None:
        self.lines.append(line)

    async def write_event(self, event: ServiceEvent) -> None:
        raise AssertionError(event)


def make_lines(order: list[str]) -> list[LogLine]:
    counters = dict.fromkeys(SERVICES, 0)
    lines: list[LogLine] = []
    for name in order:
        counters[name] += 1
        lines.append(
            LogLine(
                service_name=name,
                stream="stdout",
                timestamp="2026-01-01T00:00:00Z",
                text=f"{name} {counters[name]}",
            )
        )
    return lines


def drain(lines: list[LogLine], capacity: int) -> tuple[list[LogLine], int]:
    sink = RecordingSink()
    multiplexer = LogMultiplexer(sink, max_buffered=capacity)

    async def _drain() -> None:
        for line in lines:
            multiplexer.publish(line)
        multiplexer.close()
        await multiplexer.run()

    anyio.run(_drain)
    return sink.lines, multiplexer.dropped


@given(order=writers)
def test_large_buffer_delivers_everything_in_order(order: list[str]) -> None:
    lines = make_lines(order)

    delivered, dropped = drain(lines, capacity=len(lines) + 1)

    assert delivered == lines
    assert dropped == 0


@given(order=writers, capacity=st.integers(min_value=1, max_value=20))
def test_full_buffer_keeps_the_newest_lines(order: list[str], capacity: int) -> None:
    lines = make_lines(order)

    delivered, dropped = drain(lines, capacity)

    kept = min(len(lines), capacity)
    assert delivered == lines[len(lines) - kept :]
    assert dropped == len(lines) - kept


@given(order=writers, capacity=st.integers(min_value=1, max_value=20))
def test_per_service_order_survives_drops(order: list[str], capacity: int) -> None:
    delivered, _ = drain(make_lines(order), capacity)

    for name in SERVICES:
        numbers = [
            int(line.text.split()[1]) for line in delivered if line.service_name == name
        ]
        assert numbers == sorted(numbers)
