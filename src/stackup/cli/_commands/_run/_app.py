"""Control application factory for the run command.

This module provides a factory function for creating the in-process
FastAPI control application that exposes the health check and supervisor
status endpoints.
"""

from typing import TYPE_CHECKING

from fastapi import FastAPI

from stackup.supervisor import create_control_router, create_health_router

if TYPE_CHECKING:
    from stackup.supervisor import Supervisor


def create_control_app(supervisor: "Supervisor") -> FastAPI:  # noqa: UP037
    """Create the FastAPI control application.

    Args:
        supervisor: The Supervisor instance to expose.

    Returns:
        A FastAPI application with health and supervisor endpoints.
    """
    app = FastAPI(
        title="stackup control",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.include_router(create_health_router(supervisor))
    app.include_router(create_control_router(supervisor))

    return app
