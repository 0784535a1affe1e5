"""File operation strategies and the orchestrator that drives them."""

from actionflow.strategies.base import MS_PER_COMPLEXITY_UNIT, FileOperationStrategy
from actionflow.strategies.create import CreateFileStrategy
from actionflow.strategies.delete import DeleteFileStrategy
from actionflow.strategies.edit import EditFileStrategy
from actionflow.strategies.orchestrator import (
    NO_FILE_GROUP,
    FileOperationOrchestrator,
    NoStrategyError,
    default_strategies,
)
from actionflow.strategies.retry import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_MS,
    NON_RETRYABLE_PATTERNS,
    RetryConfig,
    calculate_delay,
    is_non_retryable_error,
    retry_async,
)
from actionflow.strategies.unsupported import UnsupportedOperationStrategy

__all__ = [
    # Strategies
    "FileOperationStrategy",
    "CreateFileStrategy",
    "EditFileStrategy",
    "DeleteFileStrategy",
    "UnsupportedOperationStrategy",
    "MS_PER_COMPLEXITY_UNIT",
    # Orchestrator
    "FileOperationOrchestrator",
    "NoStrategyError",
    "default_strategies",
    "NO_FILE_GROUP",
    # Retry
    "RetryConfig",
    "calculate_delay",
    "is_non_retryable_error",
    "retry_async",
    "NON_RETRYABLE_PATTERNS",
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_RETRY_DELAY_MS",
    "DEFAULT_BACKOFF_MULTIPLIER",
]
