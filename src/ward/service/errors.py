"""Exceptions raised by service management."""

from pathlib import Path


class WardError(Exception):
    """Base class for all Ward errors."""


class ConfigValidationError(WardError):
    """A service configuration cannot be installed."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"invalid configuration for service {name!r}: {reason}")


class UnitFileError(WardError):
    """Unit file content is malformed or uses unsupported directives."""


class BackendError(WardError):
    """The init system backend could not complete a request."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"backend {operation} failed: {detail}")


class ServiceError(WardError):
    """An operation on a named service failed."""

    def __init__(self, name: str, operation: str, message: str | None = None):
        self.name = name
        self.operation = operation
        super().__init__(message or f"failed to {operation} service {name}")


class ServiceNotFoundError(ServiceError):
    """The service is not installed."""

    def __init__(self, name: str, operation: str):
        super().__init__(name, operation, f"service {name} not found")


class OperationFailedError(ServiceError):
    """A start/stop job finished with a result other than "done"."""

    def __init__(self, name: str, operation: str, result: str):
        self.result = result
        super().__init__(
            name, operation, f"failed to {operation} service {name} (job {result})"
        )


class OperationTimeoutError(ServiceError):
    """A start/stop job did not finish within the allowed time."""

    def __init__(self, name: str, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            name,
            operation,
            f"timed out after {timeout:g}s waiting to {operation} service {name}",
        )


class OperationCancelledError(ServiceError):
    """Waiting on a start/stop job was cancelled by the caller."""

    def __init__(self, name: str, operation: str):
        super().__init__(
            name, operation, f"cancelled waiting to {operation} service {name}"
        )


class ServiceFilesystemError(ServiceError):
    """Reading or writing a service's files failed."""

    def __init__(self, name: str, operation: str, path: Path, error: OSError):
        self.path = path
        super().__init__(
            name,
            operation,
            f"failed to {operation} service {name}: {path}: {error.strerror or error}",
        )
