"""Abstract connection to an init system backend."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import Future
from types import TracebackType

from ward.service.types import UnitFileChange, UnitStatus

# Job results reported when a start/stop request finishes.
JOB_DONE = "done"
JOB_FAILED = "failed"


class Connection(ABC):
    """Capabilities the service controller needs from an init system.

    A connection is opened for a single controller operation and closed when
    that operation returns. Every method may raise BackendError.

    Use as a context manager to guarantee ``close()``:

        with connect() as conn:
            units = conn.list_units()
    """

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""
        ...

    @abstractmethod
    def list_units(self) -> list[UnitStatus]:
        """List all units known to the backend, loaded or not."""
        ...

    @abstractmethod
    def start_unit(self, name: str, mode: str) -> Future[str]:
        """Queue a start job for a unit.

        Args:
            name: Unit name (e.g. "foo.service").
            mode: Job mode ("fail", "replace", ...).

        Returns:
            Future resolving to the job result ("done" on success).
        """
        ...

    @abstractmethod
    def stop_unit(self, name: str, mode: str) -> Future[str]:
        """Queue a stop job for a unit. See start_unit."""
        ...

    @abstractmethod
    def enable_unit_files(
        self, files: list[str], runtime: bool, force: bool
    ) -> tuple[bool, list[UnitFileChange]]:
        """Enable unit files so the backend can find and start them.

        Args:
            files: Unit names or absolute unit file paths.
            runtime: Enable only until the next reboot.
            force: Replace conflicting symlinks.

        Returns:
            Tuple of (whether install hooks ran, changes applied).
        """
        ...

    @abstractmethod
    def disable_unit_files(
        self, files: list[str], runtime: bool
    ) -> list[UnitFileChange]:
        """Disable unit files, undoing enable_unit_files."""
        ...

    @abstractmethod
    def get_unit_properties(self, name: str) -> dict[str, str]:
        """Get the runtime properties of a unit (LoadState, ActiveState, ...)."""
        ...

    @abstractmethod
    def get_unit_type_properties(
        self, name: str, section: str
    ) -> dict[str, list[str]]:
        """Get the directives explicitly configured in one section of a unit.

        Args:
            name: Unit name.
            section: Section name ("Unit", "Service", ...).

        Returns:
            Directive name mapped to its values, in configuration order.
        """
        ...

    def __enter__(self) -> "Connection":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


ConnectionFactory = Callable[[], Connection]
