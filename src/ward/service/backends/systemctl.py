"""Systemd backend driven through the systemctl command."""

import logging
import subprocess
from concurrent.futures import Future, ThreadPoolExecutor

from ward.service.backends.base import JOB_DONE, JOB_FAILED, Connection
from ward.service.errors import BackendError
from ward.service.types import UnitFileChange, UnitStatus
from ward.service.unitfile import parse

logger = logging.getLogger(__name__)


class SystemctlConnection(Connection):
    """Connection to systemd that shells out to systemctl.

    Start and stop jobs run ``systemctl start|stop`` on a worker thread so
    callers get a future for the job result, matching the asynchronous job
    signal systemd reports over D-Bus.
    """

    def __init__(self, systemctl: str = "systemctl", user: bool = False):
        self._base_cmd = [systemctl, "--user"] if user else [systemctl]
        self._executor: ThreadPoolExecutor | None = None

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _run(self, operation: str, *args: str) -> subprocess.CompletedProcess[str]:
        """Run systemctl, raising BackendError if it cannot run or fails."""
        cmd = [*self._base_cmd, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise BackendError(operation, f"cannot run {cmd[0]}: {e}") from e

        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise BackendError(operation, detail)
        return result

    def list_units(self) -> list[UnitStatus]:
        result = self._run(
            "list-units",
            "list-units",
            "--all",
            "--plain",
            "--no-legend",
            "--no-pager",
            "--full",
        )
        return parse_list_units(result.stdout)

    def _submit_job(self, verb: str, name: str, mode: str) -> Future[str]:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="ward-systemctl"
            )
        return self._executor.submit(self._run_job, verb, name, mode)

    def _run_job(self, verb: str, name: str, mode: str) -> str:
        try:
            self._run(verb, verb, f"--job-mode={mode}", name)
        except BackendError as e:
            logger.debug("systemctl %s %s: %s", verb, name, e.detail)
            return JOB_FAILED
        return JOB_DONE

    def start_unit(self, name: str, mode: str) -> Future[str]:
        return self._submit_job("start", name, mode)

    def stop_unit(self, name: str, mode: str) -> Future[str]:
        return self._submit_job("stop", name, mode)

    def enable_unit_files(
        self, files: list[str], runtime: bool, force: bool
    ) -> tuple[bool, list[UnitFileChange]]:
        args = ["enable"]
        if runtime:
            args.append("--runtime")
        if force:
            args.append("--force")
        result = self._run("enable", *args, *files)
        changes = parse_unit_file_changes(result.stdout + result.stderr)
        return any(c.type == "symlink" for c in changes), changes

    def disable_unit_files(
        self, files: list[str], runtime: bool
    ) -> list[UnitFileChange]:
        args = ["disable"]
        if runtime:
            args.append("--runtime")
        result = self._run("disable", *args, *files)
        return parse_unit_file_changes(result.stdout + result.stderr)

    def get_unit_properties(self, name: str) -> dict[str, str]:
        result = self._run("show", "show", "--no-pager", name)
        return parse_properties(result.stdout)

    def get_unit_type_properties(
        self, name: str, section: str
    ) -> dict[str, list[str]]:
        # `systemctl show` mixes in defaults for everything; `cat` returns
        # only what the loaded unit file (and drop-ins) actually configure.
        result = self._run("cat", "cat", "--no-pager", name)
        properties: dict[str, list[str]] = {}
        for option in parse(result.stdout):
            if option.section == section:
                properties.setdefault(option.name, []).append(option.value)
        return properties


def parse_list_units(output: str) -> list[UnitStatus]:
    """Parse ``systemctl list-units --plain --no-legend`` output.

    Each line is ``UNIT LOAD ACTIVE SUB DESCRIPTION``.
    """
    units = []
    for line in output.splitlines():
        parts = line.split(maxsplit=4)
        if len(parts) < 4:
            continue
        # Older systemd prefixes failed units with a bullet even in --plain.
        if parts[0] in ("●", "*"):
            parts = line.split(maxsplit=5)[1:]
            if len(parts) < 4:
                continue
        # Unit names always carry a type suffix; footers and hints do not.
        if "." not in parts[0]:
            continue
        units.append(
            UnitStatus(
                name=parts[0],
                load_state=parts[1],
                active_state=parts[2],
                sub_state=parts[3],
                description=parts[4] if len(parts) > 4 else "",
            )
        )
    return units


def parse_properties(output: str) -> dict[str, str]:
    """Parse ``systemctl show`` Key=Value output."""
    props = {}
    for line in output.splitlines():
        if "=" in line:
            key, value = line.split("=", 1)
            props[key] = value
    return props


def parse_unit_file_changes(output: str) -> list[UnitFileChange]:
    """Parse the symlink messages printed by ``systemctl enable|disable``."""
    changes = []
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("Created symlink "):
            rest = line.removeprefix("Created symlink ").rstrip(".")
            # systemd < 231 prints "Created symlink from X to Y."
            rest = rest.removeprefix("from ")
            for arrow in (" → ", " -> ", " to "):
                if arrow in rest:
                    filename, destination = rest.split(arrow, 1)
                    changes.append(
                        UnitFileChange(
                            "symlink", _unquote(filename), _unquote(destination)
                        )
                    )
                    break
        elif line.startswith("Removed "):
            filename = line.removeprefix("Removed ").rstrip(".")
            changes.append(UnitFileChange("unlink", _unquote(filename)))
    return changes


def _unquote(value: str) -> str:
    return value.strip().strip('"').strip("'")
