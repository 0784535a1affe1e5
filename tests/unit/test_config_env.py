"""Unit tests for environment configuration."""

import pytest

from actionflow.config.env import (
    DEFAULT_LOG_LEVEL,
    ENV_FILE_SERVICE_URL,
    ENV_LOG_FORMAT,
    ENV_LOG_LEVEL,
    ENV_WORKSPACE_ID,
    LogFormat,
    load_env_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (ENV_FILE_SERVICE_URL, ENV_WORKSPACE_ID, ENV_LOG_LEVEL, ENV_LOG_FORMAT):
        monkeypatch.delenv(name, raising=False)


class TestLoadEnvConfig:
    """Tests for load_env_config function."""

    def test_defaults(self) -> None:
        """Unset variables select local storage and JSON info logging."""
        config = load_env_config()
        assert config.file_service_url is None
        assert config.workspace_id is None
        assert config.log_level == DEFAULT_LOG_LEVEL
        assert config.log_format is LogFormat.JSON
        assert config.uses_remote_storage is False

    def test_file_service_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The URL is trimmed of whitespace and trailing slashes."""
        monkeypatch.setenv(ENV_FILE_SERVICE_URL, " http://localhost:5000/api/ ")
        config = load_env_config()
        assert config.file_service_url == "http://localhost:5000/api"
        assert config.uses_remote_storage is True

    def test_blank_url_is_local(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A blank URL means local storage."""
        monkeypatch.setenv(ENV_FILE_SERVICE_URL, "   ")
        assert load_env_config().file_service_url is None

    def test_workspace_and_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Workspace id and level are read; the level is lowercased."""
        monkeypatch.setenv(ENV_WORKSPACE_ID, "ws-42")
        monkeypatch.setenv(ENV_LOG_LEVEL, "DEBUG")
        config = load_env_config()
        assert config.workspace_id == "ws-42"
        assert config.log_level == "debug"

    def test_log_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Text format is selectable; unknown values fall back to JSON."""
        monkeypatch.setenv(ENV_LOG_FORMAT, "TEXT")
        assert load_env_config().log_format is LogFormat.TEXT
        monkeypatch.setenv(ENV_LOG_FORMAT, "xml")
        assert load_env_config().log_format is LogFormat.JSON
