"""Environment variable loading for deployment configuration."""

import os
from dataclasses import dataclass
from enum import Enum


class LogFormat(Enum):
    """Supported log output formats."""

    JSON = "json"
    TEXT = "text"


@dataclass
class EnvConfig:
    """Environment-based configuration."""

    file_service_url: str | None
    workspace_id: str | None
    log_level: str
    log_format: LogFormat

    @property
    def uses_remote_storage(self) -> bool:
        """True when files are stored through the HTTP file service."""
        return self.file_service_url is not None


# Environment variable names
ENV_FILE_SERVICE_URL = "ACTIONFLOW_FILE_SERVICE_URL"
ENV_WORKSPACE_ID = "ACTIONFLOW_WORKSPACE_ID"
ENV_LOG_LEVEL = "ACTIONFLOW_LOG_LEVEL"
ENV_LOG_FORMAT = "ACTIONFLOW_LOG_FORMAT"

# Default values
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_FORMAT = LogFormat.JSON


def _load_file_service_url() -> str | None:
    """Load the remote file service base URL, without a trailing slash.

    Returns:
        Base URL, or None to use the local workspace.
    """
    url = os.environ.get(ENV_FILE_SERVICE_URL, "").strip()
    return url.rstrip("/") or None


def _load_log_format() -> LogFormat:
    """Load log format, falling back to JSON for unknown values."""
    raw = os.environ.get(ENV_LOG_FORMAT, "").strip().lower()
    try:
        return LogFormat(raw)
    except ValueError:
        return DEFAULT_LOG_FORMAT


def load_env_config() -> EnvConfig:
    """Load all environment-based configuration.

    Returns:
        EnvConfig with storage, workspace and logging settings.
    """
    workspace_id = os.environ.get(ENV_WORKSPACE_ID, "").strip() or None
    log_level = os.environ.get(ENV_LOG_LEVEL, "").strip().lower() or DEFAULT_LOG_LEVEL

    return EnvConfig(
        file_service_url=_load_file_service_url(),
        workspace_id=workspace_id,
        log_level=log_level,
        log_format=_load_log_format(),
    )
