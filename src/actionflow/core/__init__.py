"""Core infrastructure for ActionFlow.

Provides:
- Structured logging
- Metrics collection
- Error taxonomy and centralized error handling
- Path, content and action validation
"""

from actionflow.core.error_handling import (
    ErrorHandlingService,
    ErrorRecoveryStrategy,
    ErrorReport,
    ErrorReporter,
    FileOperationRecoveryStrategy,
    NetworkRecoveryStrategy,
)
from actionflow.core.errors import (
    AIProcessingError,
    BaseError,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    FileOperationError,
    InternalSystemError,
    NetworkError,
    OperationTimeoutError,
    SecurityError,
    ValidationError,
)
from actionflow.core.logging import (
    LogEntry,
    LogLevel,
    StructuredLogger,
    configure_logging,
    create_logger,
    get_logger,
    reset_loggers,
)
from actionflow.core.metrics import (
    LatencyStats,
    MetricsCollector,
    OperationCounts,
    Timer,
    timed_call,
)
from actionflow.core.validation import (
    ContentValidationOptions,
    FilePathValidationOptions,
    SecurityLevel,
    SecurityValidationResult,
    ValidationResult,
    ValidationService,
    detect_language,
    normalize_path,
)

__all__ = [
    # Logging
    "LogLevel",
    "LogEntry",
    "StructuredLogger",
    "create_logger",
    "get_logger",
    "reset_loggers",
    "configure_logging",
    # Metrics
    "LatencyStats",
    "OperationCounts",
    "MetricsCollector",
    "Timer",
    "timed_call",
    # Errors
    "ErrorCode",
    "ErrorSeverity",
    "ErrorContext",
    "BaseError",
    "ValidationError",
    "SecurityError",
    "FileOperationError",
    "NetworkError",
    "AIProcessingError",
    "InternalSystemError",
    "OperationTimeoutError",
    # Error handling
    "ErrorHandlingService",
    "ErrorReport",
    "ErrorReporter",
    "ErrorRecoveryStrategy",
    "FileOperationRecoveryStrategy",
    "NetworkRecoveryStrategy",
    # Validation
    "SecurityLevel",
    "ValidationResult",
    "SecurityValidationResult",
    "FilePathValidationOptions",
    "ContentValidationOptions",
    "ValidationService",
    "detect_language",
    "normalize_path",
]
