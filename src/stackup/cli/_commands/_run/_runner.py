"""Async runner for the run command.

This module provides the async entry point that coordinates running
the supervisor and control app together using anyio.
"""

from typing import TYPE_CHECKING

import anyio
import uvicorn

from ._app import create_control_app

if TYPE_CHECKING:
    from stackup.config import SupervisorSettings
    from stackup.supervisor import ShutdownResult, Supervisor


async def run_supervisor(
    supervisor: "Supervisor",  # noqa: UP037
    settings: "SupervisorSettings",  # noqa: UP037
) -> "ShutdownResult":  # noqa: UP037
    """Run the supervisor together with its control server.

    The control server starts first so that the container health check can
    reach it while services are still launching, and keeps answering during
    shutdown.

    Args:
        supervisor: The supervisor to run.
        settings: Supervisor settings carrying the control server address.

    Returns:
        The outcome of the shutdown.
    """
    uvicorn_config = uvicorn.Config(
        app=create_control_app(supervisor),
        host=settings.control_host,
        port=settings.control_port,
        log_level="warning",
        access_log=False,
    )
    control_server = uvicorn.Server(uvicorn_config)

    async with anyio.create_task_group() as tg:
        tg.start_soon(control_server.serve)

        # Give the control server a moment to bind
        await anyio.sleep(0.1)

        # Run the supervisor (blocks until shutdown)
        result = await supervisor.run()

        # Supervisor has shut down, stop the control server
        control_server.should_exit = True

    return result
