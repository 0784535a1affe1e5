"""Configuration parsing and validation."""

from actionflow.config.env import (
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    ENV_FILE_SERVICE_URL,
    ENV_LOG_FORMAT,
    ENV_LOG_LEVEL,
    ENV_WORKSPACE_ID,
    EnvConfig,
    LogFormat,
    load_env_config,
)
from actionflow.config.schema import (
    CONFIG_FILE_NAME,
    ActionflowConfig,
    ConfigError,
    ConfigParseError,
    ConfigValidationError,
    ErrorsConfig,
    EventsConfig,
    OrchestratorConfig,
    ValidationConfig,
    find_config,
    load_config,
    parse_config,
)

__all__ = [
    # Schema types
    "ActionflowConfig",
    "OrchestratorConfig",
    "ValidationConfig",
    "EventsConfig",
    "ErrorsConfig",
    # Schema functions
    "parse_config",
    "load_config",
    "find_config",
    "CONFIG_FILE_NAME",
    # Schema errors
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # Environment types
    "EnvConfig",
    "LogFormat",
    # Environment functions
    "load_env_config",
    # Environment constants
    "ENV_FILE_SERVICE_URL",
    "ENV_WORKSPACE_ID",
    "ENV_LOG_LEVEL",
    "ENV_LOG_FORMAT",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_FORMAT",
]
