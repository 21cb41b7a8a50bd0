"""Configuration models using Pydantic."""

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field, model_validator

from ward.config.paths import get_data_dir
from ward.service.conf import SERVICE_NAME_RE
from ward.service.errors import WardError
from ward.service.types import ServiceConf

if TYPE_CHECKING:
    from ward.service.backends.base import ConnectionFactory
    from ward.service.controller import Service


class ConfigError(WardError):
    """Configuration error."""

    pass


class BackendConfig(BaseModel):
    """Configuration for the init system backend."""

    name: Literal["systemctl"] = "systemctl"
    systemctl: str = "systemctl"
    # Manage the calling user's services (systemctl --user)
    user: bool = False
    # "fail" refuses to queue over a conflicting job, "replace" supersedes it
    job_mode: Literal["fail", "replace"] = "fail"
    # Seconds to wait for start/stop jobs; None waits forever
    job_timeout: float | None = 300.0

    def connection_factory(self) -> "ConnectionFactory":
        """Get a factory for connections to the configured backend."""
        from ward.service.backends import get_connection_factory

        return get_connection_factory(
            self.name, systemctl=self.systemctl, user=self.user
        )


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    use_rich: bool = True


class ServiceConfig(BaseModel):
    """Declared configuration for one managed service."""

    exec_start: str
    description: str = ""
    env: dict[str, str] = Field(default_factory=dict)
    limit: dict[str, int] = Field(default_factory=dict)
    extra_script: str = ""
    output: str = ""
    transient: bool = False
    after_stopped: str = ""
    exec_stop_post: str = ""
    timeout: int = 0

    def to_conf(self) -> ServiceConf:
        return ServiceConf(
            exec_start=self.exec_start,
            desc=self.description,
            env=dict(self.env),
            limit=dict(self.limit),
            extra_script=self.extra_script,
            output=self.output,
            transient=self.transient,
            after_stopped=self.after_stopped,
            exec_stop_post=self.exec_stop_post,
            timeout=self.timeout,
        )


class WardConfig(BaseModel):
    """Root configuration model."""

    data_dir: Path = Field(default_factory=get_data_dir)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    services: dict[str, ServiceConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_service_names(self) -> "WardConfig":
        """Reject service names the backend can't address."""
        for name in self.services:
            if not SERVICE_NAME_RE.fullmatch(name):
                raise ValueError(f"Invalid service name {name!r} in [services]")
        return self

    def get_service(self, name: str) -> ServiceConfig:
        """Get a declared service by name.

        Raises:
            ConfigError: If the service is not declared.
        """
        if name not in self.services:
            available = ", ".join(sorted(self.services)) or "none"
            raise ConfigError(f"Unknown service '{name}'. Declared: {available}")
        return self.services[name]

    def list_services(self) -> list[str]:
        """List declared service names, sorted."""
        return sorted(self.services)

    def create_service(self, name: str) -> "Service":
        """Build a controller for a declared service."""
        from ward.service.controller import Service

        return Service(
            name,
            self.get_service(name).to_conf(),
            data_dir=self.data_dir,
            connect=self.backend.connection_factory(),
            timeout=self.backend.job_timeout,
            job_mode=self.backend.job_mode,
        )
