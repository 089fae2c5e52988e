"""HTTP routes served next to the supervisor.

The health route backs the container HEALTHCHECK; the /supervisor routes
expose per-service state and a shutdown trigger equivalent to SIGTERM.
"""

# pyright: reportUnusedFunction=false

from typing import TYPE_CHECKING, Never

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel

from stackup.exceptions import ServiceNotFoundError

from ._models import ServiceSnapshot, ServiceStatus

if TYPE_CHECKING:
    from ._supervisor import Supervisor


class ServiceStatusResponse(BaseModel):
    """One row of the state table as served over HTTP."""

    name: str
    status: str
    pid: int | None
    started_at: str | None
    ready_at: str | None
    stopped_at: str | None
    exit_code: int | None
    cause: str | None


class SupervisorStatusResponse(BaseModel):
    """Every service plus ready and failed counts."""

    services: dict[str, ServiceStatusResponse]
    total_services: int
    ready_services: int
    failed_services: int


class HealthResponse(BaseModel):
    """Overall health with the status of each service."""

    status: str
    services: dict[str, str]
    dropped_log_lines: int


class MessageResponse(BaseModel):
    """Acknowledgement body."""

    message: str


def _build_service_status(snapshot: ServiceSnapshot) -> ServiceStatusResponse:
    return ServiceStatusResponse(
        name=snapshot.name,
        status=snapshot.status.value,
        pid=snapshot.pid,
        started_at=snapshot.started_at,
        ready_at=snapshot.ready_at,
        stopped_at=snapshot.stopped_at,
        exit_code=snapshot.exit_code,
        cause=snapshot.cause,
    )


def _raise_not_found(name: str, cause: ServiceNotFoundError) -> Never:
    """Turn an unknown service name into a 404."""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Service '{name}' not found",
    ) from cause


def create_control_router(supervisor: "Supervisor") -> APIRouter:  # noqa: UP037
    """Build the /supervisor routes.

    Args:
        supervisor: The supervisor whose state table is served.

    Returns:
        Router with status, per-service and shutdown routes.
    """
    router = APIRouter(prefix="/supervisor", tags=["supervisor"])

    def _snapshots() -> dict[str, ServiceStatusResponse]:
        return {
            name: _build_service_status(supervisor.get_service(name))
            for name in supervisor.graph.names
        }

    @router.get("/status", response_model=SupervisorStatusResponse)
    async def get_supervisor_status() -> SupervisorStatusResponse:
        """Return every service with ready and failed counts."""
        services = _snapshots()
        return SupervisorStatusResponse(
            services=services,
            total_services=len(services),
            ready_services=sum(
                1 for s in services.values() if s.status == ServiceStatus.READY
            ),
            failed_services=sum(
                1 for s in services.values() if s.status == ServiceStatus.FAILED
            ),
        )

    @router.get("/services", response_model=list[ServiceStatusResponse])
    async def list_services() -> list[ServiceStatusResponse]:
        """List all supervised services in declaration order."""
        return list(_snapshots().values())

    @router.get("/services/{name}", response_model=ServiceStatusResponse)
    async def get_service_status(name: str) -> ServiceStatusResponse:
        """Return one service, or 404 if the name is unknown."""
        try:
            snapshot = supervisor.get_service(name)
        except ServiceNotFoundError as e:
            _raise_not_found(name, e)

        return _build_service_status(snapshot)

    @router.post("/shutdown", response_model=MessageResponse)
    async def shutdown_supervisor() -> MessageResponse:
        """Start the reverse-order shutdown and return immediately."""
        await supervisor.shutdown()
        return MessageResponse(message="Shutdown initiated")

    return router


def create_health_router(supervisor: "Supervisor") -> APIRouter:  # noqa: UP037
    """Create a FastAPI router exposing the container health check.

    GET /health answers 200 while the system is healthy or degraded and
    503 once it is unhealthy.

    Args:
        supervisor: The Supervisor instance to report on.

    Returns:
        A FastAPI APIRouter with the health endpoint.
    """
    router = APIRouter(tags=["health"])

    @router.get("/health", response_model=HealthResponse)
    async def get_health(response: Response) -> HealthResponse:
        """Report aggregate health."""
        report = supervisor.health()
        if not report.acceptable:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

        return HealthResponse(
            status=report.overall.value,
            services={name: value.value for name, value in report.services.items()},
            dropped_log_lines=report.dropped_log_lines,
        )

    return router
