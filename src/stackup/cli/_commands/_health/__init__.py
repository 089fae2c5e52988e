# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""stackup health command - exit-code probe for container health checks."""

from pathlib import Path
from typing import Annotated

import httpx
from cyclopts import App, Parameter
from rich.console import Console

from stackup.cli._commands._shared import ExitCode, load_config_or_exit

__all__ = ["app", "health"]

app = App(
    name="health",
    help="Query the running supervisor's health endpoint.",
    help_on_error=True,
)


@app.default
def health(
    *,
    url: Annotated[
        str | None,
        Parameter(help="Health endpoint; defaults to the configured control API."),
    ] = None,
    config: Annotated[
        Path | None, Parameter(name="--config", help="Path to config file")
    ] = None,
    timeout: Annotated[float, Parameter(help="Request timeout in seconds.")] = 5.0,
    quiet: Annotated[bool, Parameter(help="Print nothing.")] = False,
) -> None:
    """Exit 0 if the system is healthy or degraded, 1 otherwise.

    Meant for the container HEALTHCHECK instruction.
    """
    console = Console(stderr=True, quiet=quiet)

    if url is None:
        settings = load_config_or_exit(config, console=console).supervisor
        host = settings.control_host
        if host == "0.0.0.0":  # noqa: S104
            host = "127.0.0.1"
        url = f"http://{host}:{settings.control_port}/health"

    try:
        response = httpx.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        console.print(f"[red]unreachable[/red] {url}: {e}", highlight=False)
        raise SystemExit(ExitCode.SERVICE_FAILED) from e

    try:
        overall = str(response.json().get("status", "unknown"))
    except ValueError:
        overall = "unknown"

    if response.status_code == httpx.codes.OK:
        console.print(f"[green]{overall}[/green]", highlight=False)
        raise SystemExit(ExitCode.SUCCESS)

    console.print(
        f"[red]{overall}[/red] (HTTP {response.status_code})", highlight=False
    )
    raise SystemExit(ExitCode.SERVICE_FAILED)
