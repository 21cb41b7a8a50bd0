"""Service lifecycle management.

Installs, starts, stops and removes init system services, reconciling a
declared configuration against what the backend reports as live.

Example:
    from ward.service import Service, ServiceConf

    service = Service("foo", ServiceConf(exec_start="/usr/bin/foo", desc="Foo"))
    service.install()
    service.start()
    assert service.running()
"""

from ward.service.controller import Service
from ward.service.errors import (
    BackendError,
    ConfigValidationError,
    OperationCancelledError,
    OperationFailedError,
    OperationTimeoutError,
    ServiceError,
    ServiceFilesystemError,
    ServiceNotFoundError,
    UnitFileError,
    WardError,
)
from ward.service.listing import list_command, list_services
from ward.service.types import ServiceConf, ServiceState, UnitStatus

__all__ = [
    "BackendError",
    "ConfigValidationError",
    "OperationCancelledError",
    "OperationFailedError",
    "OperationTimeoutError",
    "Service",
    "ServiceConf",
    "ServiceError",
    "ServiceFilesystemError",
    "ServiceNotFoundError",
    "ServiceState",
    "UnitFileError",
    "UnitStatus",
    "WardError",
    "list_command",
    "list_services",
]
