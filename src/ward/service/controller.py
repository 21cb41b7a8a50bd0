"""Service controller.

A Service couples a service name with its desired configuration and makes an
init system match it. It keeps no state about the live service: every query
asks the backend (and the filesystem) afresh, so repeating an operation is
always safe.

Example:
    from ward.service import Service, ServiceConf

    service = Service("foo", ServiceConf(exec_start="/usr/bin/foo"))
    service.install()
    service.start()
"""

import logging
import shlex
import threading
import time
from concurrent.futures import CancelledError, Future
from pathlib import Path

from ward.config.paths import get_init_dir
from ward.service.backends import get_connection_factory
from ward.service.backends.base import JOB_DONE, ConnectionFactory
from ward.service.conf import normalize, validate
from ward.service.errors import (
    OperationCancelledError,
    OperationFailedError,
    OperationTimeoutError,
    ServiceError,
    ServiceFilesystemError,
    ServiceNotFoundError,
    UnitFileError,
    WardError,
)
from ward.service.fs import FileSystem
from ward.service.listing import list_services
from ward.service.types import ServiceConf, ServiceState
from ward.service.unitfile import (
    conf_equal,
    deserialize_options,
    options_from_properties,
    serialize,
    unit_name_for,
)

logger = logging.getLogger(__name__)

SCRIPT_NAME = "exec-start.sh"
DEFAULT_JOB_MODE = "fail"

# How often a cancellation token is checked while waiting on a job.
CANCEL_POLL_INTERVAL = 0.1


class Service:
    """A named service and the configuration it should run with.

    Args:
        name: Service name; the unit is "<name>.service".
        conf: Desired configuration. Normalized and validated immediately.
        data_dir: Base directory for service files. Files for this service
            live in <data_dir>/init/<name>/.
        connect: Factory opening backend connections. Defaults to systemctl.
        fs: Filesystem primitives. Defaults to the local filesystem.
        timeout: Default seconds to wait for start/stop jobs. None waits
            indefinitely.
        job_mode: Job mode passed with start/stop requests.

    Raises:
        ConfigValidationError: If conf cannot be installed under name.
    """

    def __init__(
        self,
        name: str,
        conf: ServiceConf,
        *,
        data_dir: Path | None = None,
        connect: ConnectionFactory | None = None,
        fs: FileSystem | None = None,
        timeout: float | None = None,
        job_mode: str = DEFAULT_JOB_MODE,
    ):
        self._name = name
        self.unit_name = unit_name_for(name)
        self.conf_name = self.unit_name
        self.dirname = get_init_dir(data_dir) / name
        self.script_path = self.dirname / SCRIPT_NAME
        self.timeout = timeout
        self.job_mode = job_mode
        self._connect = connect or get_connection_factory()
        self._fs = fs or FileSystem()
        self.conf, self.script = self._prepare(conf)

    def __repr__(self) -> str:
        return f"Service({self._name!r}, unit={self.unit_name!r})"

    @property
    def name(self) -> str:
        return self._name

    def _prepare(self, conf: ServiceConf) -> tuple[ServiceConf, bytes | None]:
        normal_conf, data = normalize(conf, str(self.script_path))
        validate(self._name, normal_conf)
        return normal_conf, data

    def update_config(self, conf: ServiceConf) -> None:
        """Replace the desired configuration.

        Live state is untouched until the next install().

        Raises:
            ConfigValidationError: If conf is invalid. The current desired
                configuration is kept; callers that treat updates as advisory
                may ignore this.
        """
        self.conf, self.script = self._prepare(conf)
        logger.debug("Updated desired configuration for %s", self._name)

    # =========================================================================
    # Queries
    # =========================================================================

    def installed(self) -> bool:
        """Check whether the backend knows about this service."""
        return self._name in list_services(self._connect)

    def running(self) -> bool:
        """Check whether the unit is loaded and active."""
        with self._connect() as conn:
            units = conn.list_units()

        for unit in units:
            if unit.name == self.unit_name:
                return unit.load_state == "loaded" and unit.active_state == "active"
        return False

    def exists(self) -> bool:
        """Check whether the installed service already matches the desired conf."""
        return self.installed() and self._check()

    def state(self) -> ServiceState:
        """Compute the current lifecycle state."""
        if self.running():
            return ServiceState.RUNNING
        if self.installed():
            return ServiceState.STOPPED
        return ServiceState.NOT_INSTALLED

    def read_conf(self) -> ServiceConf:
        """Read the live unit's configuration back from the backend.

        Raises:
            UnitFileError: If the live unit uses directives we don't manage.
        """
        with self._connect() as conn:
            options = options_from_properties(
                "Unit", conn.get_unit_type_properties(self.unit_name, "Unit")
            )
            options += options_from_properties(
                "Service", conn.get_unit_type_properties(self.unit_name, "Service")
            )
        return deserialize_options(options)

    def _check(self) -> bool:
        try:
            live_conf = self.read_conf()
        except UnitFileError as e:
            logger.debug("Live unit %s not comparable: %s", self.unit_name, e)
            return False

        if not conf_equal(self.conf, live_conf):
            return False

        if self.script is not None:
            try:
                on_disk = self._fs.read_file(self.script_path)
            except OSError as e:
                raise ServiceFilesystemError(
                    self._name, "check", self.script_path, e
                ) from e
            return on_disk == self.script
        return True

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def install(self) -> None:
        """Install and enable the service without starting it.

        A no-op if an identical service is already installed. A changed one
        is stopped and removed first; if installing then fails the service is
        left uninstalled.
        """
        if self.installed():
            if self._check():
                logger.debug("Service %s already installed", self._name)
                return
            logger.info("Replacing changed service %s", self._name)
            try:
                self.stop_and_remove()
            except WardError as e:
                raise ServiceError(
                    self._name,
                    "install",
                    f"could not remove old service {self._name}: {e}",
                ) from e

        filename = self._write_conf()

        with self._connect() as conn:
            conn.enable_unit_files([str(filename)], runtime=False, force=True)
        logger.info("Installed service %s (%s)", self._name, filename)

    def _write_conf(self) -> Path:
        data = serialize(self.unit_name, self.conf)
        filename = self.dirname / self.conf_name

        path = self.dirname
        try:
            self._fs.mkdir_all(path)
            if self.script is not None:
                path = self.script_path
                self._fs.create_file(path, self.script, 0o755)
            path = filename
            self._fs.create_file(path, data, 0o644)
        except OSError as e:
            raise ServiceFilesystemError(self._name, "install", path, e) from e

        return filename

    def start(
        self,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Start the service and wait for the job to finish.

        Args:
            timeout: Seconds to wait; defaults to the controller's timeout.
            cancel: Event that aborts the wait when set.

        Raises:
            ServiceNotFoundError: If the service is not installed.
            OperationFailedError: If the start job did not finish "done".
            OperationTimeoutError: If the job outlasted the timeout.
            OperationCancelledError: If cancel was set while waiting.
        """
        if not self.installed():
            raise ServiceNotFoundError(self._name, "start")
        if self.running():
            logger.debug("Service %s already running", self._name)
            return

        self._run_job("start", timeout, cancel)
        logger.info("Started service %s", self._name)

    def stop(
        self,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Stop the service and wait for the job to finish. See start()."""
        if not self.running():
            logger.debug("Service %s not running", self._name)
            return

        self._run_job("stop", timeout, cancel)
        logger.info("Stopped service %s", self._name)

    def stop_and_remove(self) -> None:
        """Stop the service, then remove it."""
        self.stop()
        self.remove()

    def remove(self) -> None:
        """Disable the unit and delete the service's files.

        The unit is disabled before its files are deleted so the backend
        never references a unit whose files are gone.
        """
        if not self.installed():
            logger.debug("Service %s not installed", self._name)
            return

        with self._connect() as conn:
            conn.disable_unit_files([self.unit_name], runtime=False)

        try:
            self._fs.remove_all(self.dirname)
        except OSError as e:
            raise ServiceFilesystemError(self._name, "remove", self.dirname, e) from e
        logger.info("Removed service %s", self._name)

    def _run_job(
        self,
        operation: str,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> None:
        if timeout is None:
            timeout = self.timeout

        with self._connect() as conn:
            if operation == "start":
                future = conn.start_unit(self.unit_name, self.job_mode)
            else:
                future = conn.stop_unit(self.unit_name, self.job_mode)
            result = self._wait(future, operation, timeout, cancel)

        if result != JOB_DONE:
            logger.warning(
                "Failed to %s service %s: job %s", operation, self._name, result
            )
            raise OperationFailedError(self._name, operation, result)

    def _wait(
        self,
        future: Future[str],
        operation: str,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> str:
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            if cancel is not None and cancel.is_set():
                future.cancel()
                raise OperationCancelledError(self._name, operation)

            remaining = None
            if deadline is not None:
                remaining = max(0.0, deadline - time.monotonic())
            wait_for = remaining
            if cancel is not None:
                wait_for = (
                    CANCEL_POLL_INTERVAL
                    if remaining is None
                    else min(CANCEL_POLL_INTERVAL, remaining)
                )

            try:
                return future.result(timeout=wait_for)
            except CancelledError:
                return "canceled"
            except TimeoutError:
                if deadline is not None and time.monotonic() >= deadline:
                    future.cancel()
                    logger.warning(
                        "Timed out waiting to %s service %s", operation, self._name
                    )
                    raise OperationTimeoutError(
                        self._name, operation, timeout or 0.0
                    ) from None

    # =========================================================================
    # Remote commands
    # =========================================================================

    def install_commands(self, systemctl: str = "systemctl") -> list[str]:
        """Get shell commands that install and start the service remotely.

        For hosts where no backend connection is available; the commands
        are run by a remote command runner.
        """
        data = serialize(self.unit_name, self.conf).decode()
        commands = []

        if self.script is not None:
            script_path = shlex.quote(str(self.script_path))
            commands.append(f"mkdir -p {shlex.quote(str(self.dirname))}")
            commands.append(_heredoc(self.script.decode(), script_path))
            commands.append(f"chmod 0755 {script_path}")

        tmp_path = f"/tmp/{self.conf_name}"
        commands.append(_heredoc(data, tmp_path))
        commands.append(f"{systemctl} link {tmp_path}")
        commands.extend(self.start_commands(systemctl))
        return commands

    def start_commands(self, systemctl: str = "systemctl") -> list[str]:
        """Get shell commands that start the installed service remotely."""
        return [f"{systemctl} start {self.unit_name}"]


def _heredoc(body: str, path: str) -> str:
    if not body.endswith("\n"):
        body += "\n"
    # The delimiter must not appear as a line of the body.
    lines = set(body.splitlines())
    delimiter = "EOF"
    suffix = 0
    while delimiter in lines:
        suffix += 1
        delimiter = f"EOF{suffix}"
    return f"cat > {path} << '{delimiter}'\n{body}{delimiter}\n"
