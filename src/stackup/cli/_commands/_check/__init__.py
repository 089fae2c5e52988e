# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""stackup check command - validates the service table."""

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console
from rich.table import Table

from stackup.cli._commands._shared import (
    ExitCode,
    exit_with_error,
    load_config_or_exit,
)
from stackup.config import Config, ConfigSourceName, check_executables
from stackup.exceptions import ConfigError
from stackup.supervisor import DependencyGraph, ReadinessKind

__all__ = ["app", "check", "describe_sources", "render_waves"]

app = App(
    name="check",
    help="Validate the service table and print the launch waves.",
    help_on_error=True,
)


def render_waves(graph: DependencyGraph) -> Table:
    """Render the launch waves of a graph as a table.

    Args:
        graph: Validated dependency graph.

    Returns:
        A rich Table with one row per service, grouped by wave.
    """
    table = Table(title="Launch waves")
    table.add_column("Wave", justify="right")
    table.add_column("Service", style="bold")
    table.add_column("Ports")
    table.add_column("Readiness")
    table.add_column("Depends on")
    table.add_column("Critical", justify="center")

    for number, wave in enumerate(graph.launch_waves()):
        for name in wave:
            spec = graph.spec(name)
            check = spec.readiness
            readiness = f"{check.kind.value}:{check.port}"
            if check.kind is ReadinessKind.HTTP:
                readiness += check.path
            table.add_row(
                str(number),
                name,
                ", ".join(str(port) for port in spec.ports),
                readiness,
                ", ".join(spec.depends_on) or "-",
                "yes" if spec.critical else "",
            )
    return table


def describe_sources(config: Config) -> str:
    """Describe the layers a configuration was merged from, winning first.

    File layers that do not exist and empty env or CLI layers are left out.
    """
    parts: list[str] = []
    for source in config.sources:
        if source.name is ConfigSourceName.FILE:
            if source.exists:
                parts.append(f"file {source.path}")
        elif source.name is ConfigSourceName.DEFAULT or source.values:
            parts.append(source.name.value)
    return ", ".join(parts)


@app.default
def check(
    *,
    config: Annotated[
        Path | None, Parameter(name="--config", help="Path to config file")
    ] = None,
    skip_executables: Annotated[
        bool, Parameter(help="Do not check that service commands are executable.")
    ] = False,
) -> None:
    """Validate the configuration without starting anything.

    Checks for dependency cycles, unknown dependencies, readiness targets
    and duplicate ports, and that every command is executable. Exits 2 on
    the first problem found.
    """
    console = Console()
    loaded = load_config_or_exit(config)

    try:
        graph = loaded.build_graph()
        if not skip_executables:
            check_executables(graph.specs)
    except ConfigError as e:
        exit_with_error(str(e), ExitCode.VALIDATION_ERROR)

    console.print(render_waves(graph))
    console.print(f"Sources: {describe_sources(loaded)}")
    console.print(f"[green]OK[/green] {len(graph)} services")
