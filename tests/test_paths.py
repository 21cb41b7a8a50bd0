"""Tests for path management."""

from pathlib import Path

from ward.config.paths import (
    DATA_DIR_ENV_VAR,
    ENV_VAR,
    SYSTEM_DATA_DIR,
    get_config_path,
    get_data_dir,
    get_init_dir,
    get_ward_home,
)


class TestGetWardHome:
    """Tests for get_ward_home()."""

    def test_default_is_home_dot_ward(self, monkeypatch):
        """Test default path is ~/.ward."""
        # Clear env var and cache
        monkeypatch.delenv(ENV_VAR, raising=False)
        get_ward_home.cache_clear()

        home = get_ward_home()
        assert home == Path.home() / ".ward"

    def test_respects_env_var(self, monkeypatch, tmp_path):
        """Test WARD_HOME env var is respected."""
        custom_path = tmp_path / "custom-ward"
        monkeypatch.setenv(ENV_VAR, str(custom_path))
        get_ward_home.cache_clear()

        home = get_ward_home()
        assert home == custom_path

    def test_expands_tilde_in_env_var(self, monkeypatch):
        """Test tilde is expanded in WARD_HOME."""
        monkeypatch.setenv(ENV_VAR, "~/my-ward")
        get_ward_home.cache_clear()

        home = get_ward_home()
        assert home == Path.home() / "my-ward"


class TestDataDir:
    """Tests for get_data_dir() and get_init_dir()."""

    def test_under_home_for_users(self, monkeypatch, tmp_path):
        """Test non-root users keep data under WARD_HOME."""
        monkeypatch.setenv(ENV_VAR, str(tmp_path))
        monkeypatch.setattr("ward.config.paths._is_root", lambda: False)
        get_ward_home.cache_clear()

        assert get_data_dir() == tmp_path / "data"

    def test_system_dir_for_root(self, monkeypatch):
        """Test root uses the system data directory."""
        monkeypatch.setattr("ward.config.paths._is_root", lambda: True)

        assert get_data_dir() == SYSTEM_DATA_DIR

    def test_env_var_wins(self, monkeypatch, tmp_path):
        """Test WARD_DATA_DIR overrides the default."""
        monkeypatch.setenv(DATA_DIR_ENV_VAR, str(tmp_path / "services"))
        monkeypatch.setattr("ward.config.paths._is_root", lambda: True)

        assert get_data_dir() == tmp_path / "services"

    def test_init_dir(self, tmp_path):
        """Test init dir under an explicit data dir."""
        assert get_init_dir(tmp_path) == tmp_path / "init"

    def test_init_dir_default(self, monkeypatch, tmp_path):
        """Test init dir under the default data dir."""
        monkeypatch.setenv(DATA_DIR_ENV_VAR, str(tmp_path))

        assert get_init_dir() == tmp_path / "init"


class TestDerivedPaths:
    """Tests for derived path functions."""

    def test_config_path(self, monkeypatch, tmp_path):
        """Test config path is under WARD_HOME."""
        monkeypatch.setenv(ENV_VAR, str(tmp_path))
        get_ward_home.cache_clear()

        assert get_config_path() == tmp_path / "config.toml"

