"""Conversion between ServiceConf and systemd unit-file text.

Unit files are section-keyed ``Name=Value`` lines::

    [Unit]
    Description=Foo service

    [Service]
    ExecStart=/usr/bin/foo

The serializer only writes the directives it knows how to read back, so a
conf survives ``deserialize(serialize(...))`` modulo the fields listed in
``conf_equal``.
"""

import shlex
from dataclasses import dataclass

from ward.service.conf import LIMIT_DIRECTIVES, validate
from ward.service.errors import UnitFileError
from ward.service.types import ServiceConf

UNIT_SUFFIX = ".service"

DEFAULT_AFTER = (
    "syslog.target",
    "network.target",
    "systemd-user-sessions.service",
)
WANTED_BY = "multi-user.target"

_LIMIT_KEYS = {directive: key for key, directive in LIMIT_DIRECTIVES.items()}
_TRUE_VALUES = ("1", "yes", "true", "on")
_FALSE_VALUES = ("0", "no", "false", "off")


@dataclass(frozen=True)
class UnitOption:
    """A single ``Name=Value`` directive within a section."""

    section: str
    name: str
    value: str


def unit_name_for(name: str) -> str:
    """Get the unit name for a service name."""
    return name + UNIT_SUFFIX


# =============================================================================
# Text format
# =============================================================================


def serialize_options(options: list[UnitOption]) -> bytes:
    """Render options as unit-file text.

    A section header is written whenever the section changes, so options
    should already be grouped by section.
    """
    lines: list[str] = []
    section = None
    for option in options:
        if option.section != section:
            if section is not None:
                lines.append("")
            lines.append(f"[{option.section}]")
            section = option.section
        lines.append(f"{option.name}={option.value}")
    if not lines:
        return b""
    return ("\n".join(lines) + "\n").encode()


def parse(data: bytes | str) -> list[UnitOption]:
    """Parse unit-file text into options, in file order.

    Blank lines and ``#``/``;`` comments are skipped. A trailing backslash
    continues the value on the next line.

    Raises:
        UnitFileError: On a directive outside any section or without ``=``.
    """
    text = data.decode() if isinstance(data, bytes) else data
    options: list[UnitOption] = []
    section: str | None = None
    pending = ""

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if pending:
            line = pending + " " + line
            pending = ""
        elif not line or line[0] in "#;":
            continue

        if line.endswith("\\"):
            pending = line[:-1].rstrip()
            continue

        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip()
            if not section:
                raise UnitFileError(f"line {lineno}: empty section name")
            continue

        if section is None:
            raise UnitFileError(f"line {lineno}: directive outside of a section")
        name, sep, value = line.partition("=")
        if not sep or not name.strip():
            raise UnitFileError(f"line {lineno}: expected Name=Value, got {raw!r}")
        options.append(UnitOption(section, name.strip(), value.strip()))

    if pending:
        raise UnitFileError("unexpected end of file after line continuation")
    return options


# =============================================================================
# ServiceConf <-> options
# =============================================================================


def serialize(unit_name: str, conf: ServiceConf) -> bytes:
    """Serialize a normalized conf to unit-file bytes.

    Raises:
        ConfigValidationError: If the conf cannot be installed.
    """
    name = unit_name.removesuffix(UNIT_SUFFIX)
    validate(name, conf)

    options = _serialize_unit(conf)
    options.extend(_serialize_service(conf))
    options.extend(_serialize_install())
    return serialize_options(options)


def _serialize_unit(conf: ServiceConf) -> list[UnitOption]:
    options = []
    if conf.desc:
        options.append(UnitOption("Unit", "Description", conf.desc))
    for after in DEFAULT_AFTER:
        options.append(UnitOption("Unit", "After", after))
    if conf.after_stopped:
        options.append(UnitOption("Unit", "After", conf.after_stopped))
    return options


def _serialize_service(conf: ServiceConf) -> list[UnitOption]:
    options = []
    if conf.output:
        options.append(UnitOption("Service", "StandardOutput", conf.output))
        options.append(UnitOption("Service", "StandardError", conf.output))

    for key in sorted(conf.env):
        options.append(
            UnitOption("Service", "Environment", _quote_env(key, conf.env[key]))
        )

    for key in sorted(conf.limit):
        options.append(
            UnitOption("Service", LIMIT_DIRECTIVES[key], str(conf.limit[key]))
        )

    options.append(UnitOption("Service", "ExecStart", conf.exec_start))

    if conf.transient:
        options.append(UnitOption("Service", "RemainAfterExit", "yes"))
    else:
        options.append(UnitOption("Service", "Restart", "on-failure"))

    if conf.timeout:
        options.append(UnitOption("Service", "TimeoutSec", str(conf.timeout)))

    if conf.exec_stop_post:
        options.append(UnitOption("Service", "ExecStopPost", conf.exec_stop_post))

    return options


def _serialize_install() -> list[UnitOption]:
    return [UnitOption("Install", "WantedBy", WANTED_BY)]


def _quote_env(key: str, value: str) -> str:
    escaped = f"{key}={value}".replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def deserialize(data: bytes | str) -> ServiceConf:
    """Parse unit-file text back into a conf."""
    return deserialize_options(parse(data))


def deserialize_options(options: list[UnitOption]) -> ServiceConf:
    """Map unit options back into a conf.

    Directives the serializer emits without a conf counterpart (``After``,
    ``Restart``, ``Type``, ``WantedBy``) are accepted and dropped.

    Raises:
        UnitFileError: On unknown sections or directives, or bad values.
    """
    fields: dict = {"exec_start": "", "env": {}, "limit": {}}

    for option in options:
        if option.section == "Unit":
            _deserialize_unit_option(option, fields)
        elif option.section == "Service":
            _deserialize_service_option(option, fields)
        elif option.section == "Install":
            if option.name != "WantedBy":
                raise UnitFileError(f"Install directive {option.name!r} not supported")
        else:
            raise UnitFileError(f"section {option.section!r} not supported")

    return ServiceConf(**fields)


def _deserialize_unit_option(option: UnitOption, fields: dict) -> None:
    if option.name == "Description":
        fields["desc"] = option.value
    elif option.name != "After":
        raise UnitFileError(f"Unit directive {option.name!r} not supported")


def _deserialize_service_option(option: UnitOption, fields: dict) -> None:
    name, value = option.name, option.value

    if name == "ExecStart":
        fields["exec_start"] = value
    elif name in ("StandardOutput", "StandardError"):
        fields["output"] = value
    elif name == "Environment":
        fields["env"].update(_parse_env(value))
    elif name.startswith("Limit"):
        if name not in _LIMIT_KEYS:
            raise UnitFileError(f"Service directive {name!r} not supported")
        fields["limit"][_LIMIT_KEYS[name]] = _parse_int(option)
    elif name == "TimeoutSec":
        fields["timeout"] = _parse_int(option)
    elif name == "RemainAfterExit":
        fields["transient"] = _parse_bool(option)
    elif name == "ExecStopPost":
        fields["exec_stop_post"] = value
    elif name not in ("Type", "Restart"):
        raise UnitFileError(f"Service directive {name!r} not supported")


def _parse_env(value: str) -> dict[str, str]:
    try:
        assignments = shlex.split(value)
    except ValueError as e:
        raise UnitFileError(f"service environment value {value!r}: {e}") from e

    env = {}
    for assignment in assignments:
        key, sep, val = assignment.partition("=")
        if not sep or not key:
            raise UnitFileError(f"service environment value {value!r} not valid")
        env[key] = val
    return env


def _parse_int(option: UnitOption) -> int:
    try:
        return int(option.value)
    except ValueError as e:
        raise UnitFileError(
            f"{option.name} value {option.value!r} is not an integer"
        ) from e


def _parse_bool(option: UnitOption) -> bool:
    value = option.value.lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise UnitFileError(f"{option.name} value {option.value!r} is not a boolean")


def options_from_properties(
    section: str, properties: dict[str, list[str]]
) -> list[UnitOption]:
    """Flatten a backend's per-section property map into options."""
    return [
        UnitOption(section, name, value)
        for name, values in properties.items()
        for value in values
    ]


# =============================================================================
# Equality
# =============================================================================

# Fields compared by conf_equal. after_stopped is not listed because the
# backend reports it mixed in with the default After= entries, and
# extra_script is always empty once normalized.
COMPARED_FIELDS = (
    "exec_start",
    "desc",
    "env",
    "limit",
    "output",
    "transient",
    "exec_stop_post",
    "timeout",
)


def conf_equal(a: ServiceConf, b: ServiceConf) -> bool:
    """Compare two confs on the fields the backend preserves verbatim."""
    return all(getattr(a, f) == getattr(b, f) for f in COMPARED_FIELDS)
