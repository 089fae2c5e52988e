"""Service descriptor models.

This module provides the Pydantic models for [[services]] entries and their
conversion into the immutable ServiceSpec used by the supervisor.
"""

import os
from pathlib import Path
from typing import Annotated, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stackup.supervisor import ReadinessCheck, ReadinessKind, ServiceSpec

Port = Annotated[int, Field(ge=1, le=65535)]


def _expand(value: str) -> str:
    return os.path.expanduser(os.path.expandvars(value))  # noqa: PTH111


class ReadinessConfig(BaseModel):
    """Readiness check of a service.

    Attributes:
        kind: "tcp" (connect succeeds) or "http" (GET returns 2xx).
        port: Port the check targets; must be one of the service's ports.
        path: HTTP path, ignored for TCP checks.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    kind: ReadinessKind = ReadinessKind.TCP
    port: Port
    path: str = Field(default="/", pattern=r"^/")


class ServiceConfig(BaseModel):
    """One [[services]] entry.

    Attributes:
        name: Unique identifier for the service.
        command: Executable to run, relative paths resolve against working_dir.
        args: Arguments passed to the executable.
        working_dir: Installed distribution directory ($VARS are expanded).
        env: Additional environment variables.
        ports: TCP ports the service binds.
        readiness: Readiness check; defaults to TCP on the first port.
        depends_on: Services that must be ready before this one launches.
        critical: Whether failure of this service makes the system unhealthy.
        start_timeout: Seconds allowed to become ready.
        stop_timeout: Seconds allowed for graceful shutdown.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, pattern=r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
    command: str = Field(min_length=1)
    args: tuple[str, ...] = ()
    working_dir: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    ports: tuple[Port, ...] = ()
    readiness: ReadinessConfig | None = None
    depends_on: tuple[str, ...] = ()
    critical: bool = False
    start_timeout: float = Field(default=120.0, gt=0)
    stop_timeout: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def _check_readiness_target(self) -> Self:
        if len(set(self.ports)) != len(self.ports):
            msg = f"duplicate port in {list(self.ports)}"
            raise ValueError(msg)
        if self.readiness is None:
            if not self.ports:
                msg = "unknown readiness target: no readiness check and no ports"
                raise ValueError(msg)
        elif self.readiness.port not in self.ports:
            msg = (
                f"unknown readiness target: port {self.readiness.port} "
                f"is not one of {list(self.ports)}"
            )
            raise ValueError(msg)
        return self

    @property
    def readiness_check(self) -> ReadinessCheck:
        """Return the declared readiness check, or TCP on the first port."""
        if self.readiness is None:
            return ReadinessCheck(kind=ReadinessKind.TCP, port=self.ports[0])
        return ReadinessCheck(
            kind=self.readiness.kind,
            port=self.readiness.port,
            path=self.readiness.path,
        )

    def to_spec(self) -> ServiceSpec:
        """Build the immutable descriptor, expanding environment variables.

        Returns:
            The ServiceSpec handed to the supervisor.
        """
        return ServiceSpec(
            name=self.name,
            command=_expand(self.command),
            args=tuple(_expand(arg) for arg in self.args),
            working_dir=Path(_expand(self.working_dir)) if self.working_dir else None,
            env=dict(self.env),
            ports=self.ports,
            readiness=self.readiness_check,
            depends_on=self.depends_on,
            critical=self.critical,
            start_timeout=self.start_timeout,
            stop_timeout=self.stop_timeout,
        )
