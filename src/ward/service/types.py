"""Value types shared by the service controller and its backends."""

from dataclasses import dataclass, field
from enum import Enum


class ServiceState(Enum):
    """Observable lifecycle state of a managed service."""

    NOT_INSTALLED = "not_installed"
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class ServiceConf:
    """Logical, backend-agnostic definition of a service.

    A multi-line ``exec_start`` (or any ``extra_script``) is an inline script
    body. Backends cannot reference those directly, so the controller
    normalizes them into a script file before serializing.
    """

    exec_start: str
    desc: str = ""
    env: dict[str, str] = field(default_factory=dict)
    limit: dict[str, int] = field(default_factory=dict)
    extra_script: str = ""
    output: str = ""
    transient: bool = False
    after_stopped: str = ""
    exec_stop_post: str = ""
    timeout: int = 0

    def validate(self) -> None:
        """Check the fields that do not depend on the backend.

        Raises:
            ValueError: Describing the first problem found.
        """
        if not self.exec_start.strip():
            raise ValueError("missing exec_start")
        if not _is_absolute_command(self.exec_start):
            raise ValueError(f"relative path in exec_start ({self.exec_start!r})")
        if self.exec_stop_post and not _is_absolute_command(self.exec_stop_post):
            raise ValueError(
                f"relative path in exec_stop_post ({self.exec_stop_post!r})"
            )
        if self.timeout < 0:
            raise ValueError(f"negative timeout ({self.timeout})")


def _is_absolute_command(command: str) -> bool:
    # Inline scripts are checked once they have been materialized.
    if "\n" in command:
        return True
    return command.split(maxsplit=1)[0].startswith("/")


@dataclass(frozen=True)
class UnitStatus:
    """Live state of one unit as reported by the backend."""

    name: str
    load_state: str
    active_state: str
    sub_state: str = ""
    description: str = ""
    kind: str | None = None


@dataclass(frozen=True)
class UnitFileChange:
    """One change applied by an enable/disable request."""

    type: str
    filename: str
    destination: str = ""
