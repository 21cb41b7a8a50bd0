"""Enumeration of installed services."""

from ward.service.backends.base import ConnectionFactory
from ward.service.types import UnitStatus
from ward.service.unitfile import UNIT_SUFFIX

SERVICE_KIND = "service"


def is_service_unit(unit: UnitStatus) -> bool:
    """Whether a unit is a service, by its reported kind or its name suffix."""
    if unit.kind is not None:
        return unit.kind == SERVICE_KIND
    return unit.name.endswith(UNIT_SUFFIX)


def list_services(connect: ConnectionFactory) -> set[str]:
    """Get the names of all services the backend knows about.

    Returns:
        Service names without the ".service" suffix.
    """
    with connect() as conn:
        units = conn.list_units()
    return {
        unit.name.removesuffix(UNIT_SUFFIX) for unit in units if is_service_unit(unit)
    }


def list_command(systemctl: str = "systemctl", user: bool = False) -> str:
    """Get a shell command that lists the services on a host.

    The API-less equivalent of list_services, for hosts reached through a
    remote command runner.
    """
    base = f"{systemctl} --user" if user else systemctl
    return (
        f"{base} --no-legend --no-pager --plain -t service -a"
        " | grep -o -P '^\\w[-\\w]*(?=\\.service)'"
    )
