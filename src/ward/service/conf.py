"""Normalization and validation of service configurations."""

import dataclasses
import re

from ward.service.errors import ConfigValidationError
from ward.service.types import ServiceConf

SCRIPT_HEADER = "#!/usr/bin/env bash\n\n"

# Lowercase rlimit names mapped to their systemd directives.
LIMIT_DIRECTIVES: dict[str, str] = {
    "as": "LimitAS",
    "core": "LimitCORE",
    "cpu": "LimitCPU",
    "data": "LimitDATA",
    "fsize": "LimitFSIZE",
    "memlock": "LimitMEMLOCK",
    "msgqueue": "LimitMSGQUEUE",
    "nice": "LimitNICE",
    "nofile": "LimitNOFILE",
    "nproc": "LimitNPROC",
    "rss": "LimitRSS",
    "rtprio": "LimitRTPRIO",
    "sigpending": "LimitSIGPENDING",
    "stack": "LimitSTACK",
}

OUTPUT_TARGETS = ("", "syslog", "journal")

# Same shape the enumeration command greps for.
SERVICE_NAME_RE = re.compile(r"^\w[-\w]*$")

ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Single-line fields written verbatim as directive values. The unit-file
# parser strips values, so surrounding whitespace would not read back.
DIRECTIVE_FIELDS = ("exec_start", "desc", "after_stopped", "exec_stop_post")


def normalize(conf: ServiceConf, script_path: str) -> tuple[ServiceConf, bytes | None]:
    """Convert a conf into the form the unit-file serializer can store.

    Any ``extra_script`` is folded into ``exec_start``. If the result spans
    several lines it is an inline script: ``exec_start`` is replaced by
    ``script_path`` and the script body is returned so the caller can write
    it there. Surrounding whitespace is stripped from single-line directive
    values.

    Returns:
        Tuple of (normalized conf, script bytes or None).
    """
    data = None

    if conf.extra_script:
        conf = dataclasses.replace(
            conf,
            exec_start=conf.extra_script + "\n" + conf.exec_start,
            extra_script="",
        )

    if "\n" in conf.exec_start:
        data = (SCRIPT_HEADER + conf.exec_start).encode()
        conf = dataclasses.replace(conf, exec_start=script_path)

    stripped = {
        field: getattr(conf, field).strip()
        for field in DIRECTIVE_FIELDS
        if not _is_multiline(getattr(conf, field))
    }
    return dataclasses.replace(conf, **stripped), data


def validate(name: str, conf: ServiceConf) -> None:
    """Check that a normalized conf can be installed under ``name``.

    Raises:
        ConfigValidationError: If the name or conf is not supported.
    """
    if not name:
        raise ConfigValidationError(name, "missing service name")
    if not SERVICE_NAME_RE.fullmatch(name):
        raise ConfigValidationError(name, "service name must match [\\w][-\\w]*")

    try:
        conf.validate()
    except ValueError as e:
        raise ConfigValidationError(name, str(e)) from e

    if conf.extra_script:
        raise ConfigValidationError(name, "unexpected extra_script")

    for field in DIRECTIVE_FIELDS:
        value = getattr(conf, field)
        if _is_multiline(value):
            raise ConfigValidationError(name, f"{field} must be a single line")
        if value != value.strip():
            raise ConfigValidationError(
                name, f"{field} has leading or trailing whitespace"
            )
        if value.endswith("\\"):
            raise ConfigValidationError(name, f"{field} ends with a backslash")

    if conf.output not in OUTPUT_TARGETS:
        raise ConfigValidationError(
            name,
            f"output {conf.output!r} not supported (options are syslog, journal)",
        )
    for key, value in conf.env.items():
        if not ENV_KEY_RE.fullmatch(key):
            raise ConfigValidationError(name, f"invalid environment name {key!r}")
        if _is_multiline(value):
            raise ConfigValidationError(
                name, f"environment value for {key} must be a single line"
            )
    for key in conf.limit:
        if key not in LIMIT_DIRECTIVES:
            raise ConfigValidationError(name, f"unknown limit {key!r}")


def _is_multiline(value: str) -> bool:
    # Any line boundary str.splitlines() honours, not only "\n".
    return bool(value) and value.splitlines() != [value]
