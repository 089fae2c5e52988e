"""Supervisor settings model.

This module provides the SupervisorSettings Pydantic model for the
[supervisor] section: control server address and probing cadence.
"""

from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SupervisorSettings(BaseModel):
    """Supervisor configuration section.

    Attributes:
        control_host: Address the control server binds.
        control_port: Port of the control server (health and status API).
        probe_host: Host readiness probes connect to.
        poll_interval: Seconds between two readiness attempts.
        probe_timeout: Seconds allowed for one readiness attempt.
        liveness_interval: Seconds between liveness rounds, 0 disables them.
        log_buffer_size: Lines held by the log multiplexer before dropping.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    control_host: str = "127.0.0.1"
    control_port: int = Field(default=9090, ge=1, le=65535)
    probe_host: str = "127.0.0.1"
    poll_interval: float = Field(default=0.5, gt=0)
    probe_timeout: float = Field(default=0.4, gt=0)
    liveness_interval: float = Field(default=5.0, ge=0)
    log_buffer_size: int = Field(default=10_000, ge=1)

    @model_validator(mode="after")
    def _check_probe_timeout(self) -> Self:
        if self.probe_timeout >= self.poll_interval:
            msg = "probe_timeout must be shorter than poll_interval"
            raise ValueError(msg)
        return self
