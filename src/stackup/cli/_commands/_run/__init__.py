# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""stackup run command - launches and supervises every service."""

from pathlib import Path
from typing import Annotated, Any, Literal

import anyio
from cyclopts import App, Parameter

from stackup.cli._commands._shared import (
    ExitCode,
    exit_with_error,
    load_config_or_exit,
)
from stackup.config import LogFormat, check_executables
from stackup.exceptions import ConfigError
from stackup.supervisor import (
    ConcatenatedOutputSink,
    JsonLinesOutputSink,
    OutputSink,
    Supervisor,
)
from stackup.utils import create_supervisor_logger

from ._app import create_control_app
from ._runner import run_supervisor

__all__ = ["app", "create_control_app", "run", "run_supervisor"]

app = App(
    name="run",
    help="Launch every service in dependency order and supervise it until stopped.",
    help_on_error=True,
)


def _cli_overrides(
    *,
    control_host: str | None,
    control_port: int | None,
    log_format: str | None,
    log_level: str | None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    overrides: dict[str, dict[str, Any]] = {}  # pyright: ignore[reportExplicitAny]
    if control_host is not None:
        overrides.setdefault("supervisor", {})["control_host"] = control_host
    if control_port is not None:
        overrides.setdefault("supervisor", {})["control_port"] = control_port
    if log_format is not None:
        overrides.setdefault("logging", {})["format"] = log_format
    if log_level is not None:
        overrides.setdefault("logging", {})["level"] = log_level
    return dict(overrides)


@app.default
def run(
    *,
    config: Annotated[
        Path | None, Parameter(name="--config", help="Path to config file")
    ] = None,
    control_host: Annotated[
        str | None, Parameter(help="Address of the health/control API.")
    ] = None,
    control_port: Annotated[
        int | None, Parameter(help="Port of the health/control API.")
    ] = None,
    log_format: Annotated[
        Literal["json", "text"] | None, Parameter(help="Output format.")
    ] = None,
    log_level: Annotated[
        Literal["debug", "info", "warning", "error"] | None,
        Parameter(help="Supervisor log level."),
    ] = None,
) -> None:
    """Run the supervisor.

    Every command must resolve to an executable before anything starts.
    Services are launched wave by wave, each wave only once the previous
    one is ready or failed. SIGINT/SIGTERM stop every service in reverse
    order. Exits 0 after a clean shutdown, 1 if any service failed, and 2
    if the configuration is invalid.
    """
    loaded = load_config_or_exit(
        config,
        _cli_overrides(
            control_host=control_host,
            control_port=control_port,
            log_format=log_format,
            log_level=log_level,
        ),
    )

    logger = create_supervisor_logger(
        level=loaded.logging.level.value,
        log_format="json" if loaded.logging.format is LogFormat.JSON else "text",
        log_file=loaded.logging.file,
    )
    sink: OutputSink = (
        JsonLinesOutputSink()
        if loaded.logging.format is LogFormat.JSON
        else ConcatenatedOutputSink()
    )

    settings = loaded.supervisor
    try:
        supervisor = Supervisor(
            loaded.to_specs(),
            sink,
            probe_host=settings.probe_host,
            poll_interval=settings.poll_interval,
            probe_timeout=settings.probe_timeout,
            liveness_interval=settings.liveness_interval or None,
            log_buffer_size=settings.log_buffer_size,
            logger=logger,
        )
        check_executables(supervisor.graph.specs)
    except ConfigError as e:
        exit_with_error(str(e), ExitCode.VALIDATION_ERROR)

    logger.info(
        "supervisor_starting",
        services=list(supervisor.graph.names),
        control=f"{settings.control_host}:{settings.control_port}",
    )
    anyio.run(run_supervisor, supervisor, settings)

    failed = supervisor.failed_services()
    if failed:
        logger.error("supervisor_exited", failed=dict(failed))
        raise SystemExit(ExitCode.SERVICE_FAILED)
    logger.info("supervisor_exited")
