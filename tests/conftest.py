"""Shared test fixtures and factories."""

from concurrent.futures import Future
from pathlib import Path

import pytest

from ward.service.backends.base import JOB_DONE, Connection
from ward.service.controller import Service
from ward.service.errors import BackendError
from ward.service.types import ServiceConf, UnitFileChange, UnitStatus
from ward.service.unitfile import parse

# =============================================================================
# Fake Backend
# =============================================================================


class FakeBackend:
    """In-memory init system shared by every connection it opens.

    Enabling a unit file reads it from disk and registers a loaded,
    inactive unit; start/stop jobs resolve with the next queued result
    (default "done"). Queue None to leave a job pending forever.
    """

    def __init__(self):
        self.units: dict[str, UnitStatus] = {}
        self.unit_files: dict[str, bytes] = {}
        self.calls: list[tuple] = []
        self.job_results: list[str | None] = []
        self.failing: set[str] = set()
        self.opened = 0
        self.closed = 0

    def connect(self) -> "FakeConnection":
        if "connect" in self.failing:
            raise BackendError("connect", "no bus")
        self.opened += 1
        return FakeConnection(self)

    def add_unit(
        self,
        name: str,
        load_state: str = "loaded",
        active_state: str = "inactive",
        kind: str | None = None,
        unit_file: bytes | None = None,
    ) -> None:
        self.units[name] = UnitStatus(
            name=name,
            load_state=load_state,
            active_state=active_state,
            kind=kind,
        )
        if unit_file is not None:
            self.unit_files[name] = unit_file

    def calls_named(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]


class FakeConnection(Connection):
    def __init__(self, backend: FakeBackend):
        self.backend = backend
        self.is_closed = False

    def _record(self, method: str, *args) -> None:
        assert not self.is_closed, f"{method} called on a closed connection"
        self.backend.calls.append((method, *args))
        if method in self.backend.failing:
            raise BackendError(method, "injected failure")

    def close(self) -> None:
        self.is_closed = True
        self.backend.closed += 1

    def list_units(self) -> list[UnitStatus]:
        self._record("list_units")
        return list(self.backend.units.values())

    def _job(self, name: str, active_state: str) -> Future[str]:
        future: Future[str] = Future()
        result = self.backend.job_results.pop(0) if self.backend.job_results else JOB_DONE
        if result is None:
            return future
        if result == JOB_DONE and name in self.backend.units:
            unit = self.backend.units[name]
            self.backend.units[name] = UnitStatus(
                name=unit.name,
                load_state=unit.load_state,
                active_state=active_state,
                kind=unit.kind,
            )
        future.set_result(result)
        return future

    def start_unit(self, name: str, mode: str) -> Future[str]:
        self._record("start_unit", name, mode)
        return self._job(name, "active")

    def stop_unit(self, name: str, mode: str) -> Future[str]:
        self._record("stop_unit", name, mode)
        return self._job(name, "inactive")

    def enable_unit_files(
        self, files: list[str], runtime: bool, force: bool
    ) -> tuple[bool, list[UnitFileChange]]:
        self._record("enable_unit_files", list(files), runtime, force)
        changes = []
        for filename in files:
            path = Path(filename)
            self.backend.unit_files[path.name] = path.read_bytes()
            self.backend.add_unit(path.name)
            changes.append(UnitFileChange("symlink", filename))
        return True, changes

    def disable_unit_files(
        self, files: list[str], runtime: bool
    ) -> list[UnitFileChange]:
        self._record("disable_unit_files", list(files), runtime)
        for name in files:
            self.backend.units.pop(name, None)
            self.backend.unit_files.pop(name, None)
        return [UnitFileChange("unlink", name) for name in files]

    def get_unit_properties(self, name: str) -> dict[str, str]:
        self._record("get_unit_properties", name)
        unit = self.backend.units[name]
        return {"LoadState": unit.load_state, "ActiveState": unit.active_state}

    def get_unit_type_properties(
        self, name: str, section: str
    ) -> dict[str, list[str]]:
        self._record("get_unit_type_properties", name, section)
        if name not in self.backend.unit_files:
            raise BackendError("cat", f"No files found for {name}.")
        properties: dict[str, list[str]] = {}
        for option in parse(self.backend.unit_files[name]):
            if option.section == section:
                properties.setdefault(option.name, []).append(option.value)
        return properties


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend() -> FakeBackend:
    """Fresh in-memory backend."""
    return FakeBackend()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory for service files."""
    return tmp_path / "data"


@pytest.fixture
def foo_conf() -> ServiceConf:
    return ServiceConf(exec_start="/usr/bin/foo", desc="Foo service")


@pytest.fixture
def make_service(backend: FakeBackend, data_dir: Path):
    """Factory for controllers wired to the fake backend."""

    def factory(name: str = "foo", conf: ServiceConf | None = None, **kwargs) -> Service:
        if conf is None:
            conf = ServiceConf(exec_start="/usr/bin/foo", desc="Foo service")
        kwargs.setdefault("data_dir", data_dir)
        kwargs.setdefault("connect", backend.connect)
        return Service(name, conf, **kwargs)

    return factory


@pytest.fixture(autouse=True)
def ward_env(monkeypatch, tmp_path: Path):
    """Keep tests away from the real ~/.ward and WARD_* settings."""
    from ward.config.paths import ENV_VAR, get_ward_home

    for var in ("WARD_DATA_DIR", "WARD_SYSTEMCTL", "WARD_USER_MODE", "WARD_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv(ENV_VAR, str(tmp_path / "ward-home"))
    get_ward_home.cache_clear()
    yield
    get_ward_home.cache_clear()


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config_toml_content(data_dir: Path) -> str:
    """Sample config file declaring the foo service."""
    return f"""
data_dir = "{data_dir}"

[backend]
job_timeout = 5

[logging]
level = "WARNING"
use_rich = false

[services.foo]
exec_start = "/usr/bin/foo"
description = "Foo service"
env = {{ FOO_MODE = "prod" }}
limit = {{ nofile = 4096 }}
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
