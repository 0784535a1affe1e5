"""Centralized error processing, history and recovery.

Provides:
- Normalization of raw failures into the error taxonomy
- Severity-aware logging
- Bounded rolling history with aggregate statistics
- Reporting of critical errors to an external reporter
- Pluggable recovery strategies for retryable errors
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from actionflow.core.errors import (
    AIProcessingError,
    BaseError,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    FileOperationError,
    InternalSystemError,
    NetworkError,
    SecurityError,
    ValidationError,
)

if TYPE_CHECKING:
    from actionflow.core.logging import StructuredLogger


DEFAULT_HISTORY_SIZE = 100

# HTTP status -> file operation error code
STATUS_CODE_MAP: dict[int, ErrorCode] = {
    404: ErrorCode.FILE_NOT_FOUND,
    409: ErrorCode.FILE_ALREADY_EXISTS,
    403: ErrorCode.UNAUTHORIZED_ACCESS,
    413: ErrorCode.VALIDATION_FAILED,
}


class ErrorRecoveryStrategy(Protocol):
    """Attempts to recover from a retryable error."""

    def can_recover(self, error: BaseError) -> bool: ...

    async def recover(self, error: BaseError) -> None: ...


class ErrorReporter(Protocol):
    """External sink for critical errors."""

    async def report(self, error: BaseError) -> None: ...


@dataclass
class ErrorReport:
    """An entry in the error history."""

    error: BaseError
    context: ErrorContext
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    reported: bool = False


def _response_message(response: httpx.Response | None) -> str | None:
    """Extract a server-provided message from a JSON error body."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


def _with_operation(context: ErrorContext, operation: str) -> ErrorContext:
    return ErrorContext(
        operation=operation,
        file_path=context.file_path,
        workspace_id=context.workspace_id,
        user_id=context.user_id,
        additional_data=dict(context.additional_data),
    )


class ErrorHandlingService:
    """Normalizes, logs, records and recovers from failures."""

    def __init__(
        self,
        logger: StructuredLogger | None = None,
        reporter: ErrorReporter | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        """Initialize the error handling service.

        Args:
            logger: Structured logger instance
            reporter: Optional sink for critical errors
            history_size: Maximum number of retained error reports
        """
        self._logger = logger
        self._reporter = reporter
        self._history: deque[ErrorReport] = deque(maxlen=history_size)
        self._recovery_strategies: list[ErrorRecoveryStrategy] = []

    async def handle_error(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
    ) -> BaseError:
        """Main error handling entry point.

        Args:
            error: The raw or already-typed failure
            context: Where it happened

        Returns:
            The standardized error. The caller decides whether to raise it.
        """
        context = context or ErrorContext()
        standardized = self.standardize_error(error, context)

        self._log_error(standardized)
        report = ErrorReport(error=standardized, context=context)
        self._history.append(report)

        if standardized.severity is ErrorSeverity.CRITICAL:
            await self._report_error(report)

        if standardized.retryable:
            await self._attempt_recovery(standardized)

        return standardized

    def standardize_error(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
    ) -> BaseError:
        """Convert any failure into a taxonomy error.

        Args:
            error: The failure to classify
            context: Where it happened

        Returns:
            A BaseError subclass instance
        """
        context = context or ErrorContext()

        if isinstance(error, BaseError):
            return error

        if isinstance(error, httpx.HTTPError):
            return self.handle_network_error(error, context)

        if isinstance(error, TimeoutError):
            return NetworkError(
                str(error) or "Request timeout", context, error, ErrorCode.TIMEOUT_ERROR
            )

        if isinstance(error, ConnectionError):
            return NetworkError(str(error), context, error, ErrorCode.CONNECTION_ERROR)

        if isinstance(error, PermissionError):
            return SecurityError(str(error), context, error, ErrorCode.UNAUTHORIZED_ACCESS)

        if isinstance(error, OSError):
            return self.handle_file_operation_error(error, context)

        if isinstance(error, Exception):
            return InternalSystemError(str(error) or type(error).__name__, context, error)

        context.additional_data["original_error"] = repr(error)
        return InternalSystemError(f"Unknown error: {error!r}", context)

    def handle_file_operation_error(
        self,
        error: BaseException,
        context: ErrorContext,
    ) -> FileOperationError:
        """Normalize a failure raised while touching storage.

        Args:
            error: The failure
            context: Operation, path and workspace of the attempt

        Returns:
            FileOperationError with a code derived from the failure
        """
        if isinstance(error, FileOperationError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            message = _response_message(error.response) or str(error)
            code = STATUS_CODE_MAP.get(status, ErrorCode.FILE_WRITE_ERROR)
            return FileOperationError(message, context, error, code)

        if isinstance(error, FileNotFoundError):
            return FileOperationError(str(error), context, error, ErrorCode.FILE_NOT_FOUND)

        if isinstance(error, FileExistsError):
            return FileOperationError(
                str(error), context, error, ErrorCode.FILE_ALREADY_EXISTS
            )

        if isinstance(error, PermissionError):
            return FileOperationError(
                str(error), context, error, ErrorCode.UNAUTHORIZED_ACCESS
            )

        if isinstance(error, BaseError):
            wrapped = FileOperationError(
                error.message, context, error, ErrorCode.FILE_WRITE_ERROR
            )
            # A non-retryable cause stays non-retryable once wrapped
            wrapped.retryable = error.retryable
            return wrapped

        if isinstance(error, Exception):
            return FileOperationError(
                str(error) or type(error).__name__, context, error, ErrorCode.FILE_WRITE_ERROR
            )

        return FileOperationError(
            "Unknown file operation error", context, code=ErrorCode.FILE_WRITE_ERROR
        )

    def handle_network_error(
        self,
        error: BaseException,
        context: ErrorContext,
    ) -> NetworkError:
        """Normalize a transport failure.

        Args:
            error: The failure
            context: Where it happened

        Returns:
            NetworkError
        """
        if isinstance(error, NetworkError):
            return error

        if isinstance(error, httpx.TimeoutException):
            timeout_context = _with_operation(context, context.operation or "request")
            timeout_context.additional_data["timeout"] = True
            return NetworkError(
                "Request timeout", timeout_context, error, ErrorCode.TIMEOUT_ERROR
            )

        if isinstance(error, httpx.ConnectError):
            return NetworkError(
                "Network connection failed", context, error, ErrorCode.CONNECTION_ERROR
            )

        if isinstance(error, httpx.HTTPStatusError):
            message = _response_message(error.response) or str(error)
            return NetworkError(message, context, error, ErrorCode.API_ERROR)

        if isinstance(error, Exception):
            return NetworkError(str(error), context, error)

        return NetworkError("Unknown network error", context)

    def handle_ai_processing_error(
        self,
        error: BaseException,
        context: ErrorContext,
        operation: str,
    ) -> AIProcessingError:
        """Wrap a failure that happened while processing AI output.

        Args:
            error: The failure
            context: Where it happened
            operation: Name of the AI processing step

        Returns:
            AIProcessingError
        """
        enhanced = _with_operation(context, operation)

        if isinstance(error, ValidationError):
            return AIProcessingError(
                f"AI validation failed: {error.message}",
                enhanced,
                error,
                ErrorCode.AI_PARSING_ERROR,
            )

        if isinstance(error, SecurityError):
            return AIProcessingError(
                f"AI security violation: {error.message}", enhanced, error
            )

        if isinstance(error, Exception):
            return AIProcessingError(f"AI processing failed: {error}", enhanced, error)

        return AIProcessingError("Unknown AI processing error", enhanced)

    def add_recovery_strategy(self, strategy: ErrorRecoveryStrategy) -> None:
        """Append a recovery strategy; strategies are tried in order."""
        self._recovery_strategies.append(strategy)

    def get_error_history(self) -> list[ErrorReport]:
        """Get a copy of the error history, oldest first."""
        return list(self._history)

    def clear_error_history(self) -> None:
        """Clear the error history."""
        self._history.clear()

    def get_error_statistics(self) -> dict[str, Any]:
        """Aggregate statistics over the error history."""
        total = len(self._history)
        by_severity: dict[str, int] = {}
        by_category: dict[str, int] = {}
        retryable_count = 0
        for report in self._history:
            severity = report.error.severity.value
            by_severity[severity] = by_severity.get(severity, 0) + 1
            category = report.error.category
            by_category[category] = by_category.get(category, 0) + 1
            if report.error.retryable:
                retryable_count += 1

        return {
            "total": total,
            "by_severity": by_severity,
            "by_category": by_category,
            "retryable_count": retryable_count,
            "retryable_percentage": (retryable_count / total) * 100 if total else 0.0,
        }

    def _log_error(self, error: BaseError) -> None:
        if self._logger is None:
            return

        details = error.log_details()
        if error.severity is ErrorSeverity.CRITICAL:
            self._logger.error(f"CRITICAL: {error.message}", error=details)
        elif error.severity is ErrorSeverity.HIGH:
            self._logger.error(f"HIGH: {error.message}", error=details)
        elif error.severity is ErrorSeverity.MEDIUM:
            self._logger.warning(f"MEDIUM: {error.message}", error=details)
        else:
            self._logger.info(f"LOW: {error.message}", error=details)

    async def _report_error(self, report: ErrorReport) -> None:
        if self._reporter is None:
            return

        try:
            await self._reporter.report(report.error)
            report.reported = True
        except Exception as e:
            if self._logger:
                self._logger.error(
                    "Failed to report error",
                    original_error=report.error.log_details(),
                    reporting_error={"name": type(e).__name__, "message": str(e)},
                )

    async def _attempt_recovery(self, error: BaseError) -> bool:
        for strategy in self._recovery_strategies:
            if not strategy.can_recover(error):
                continue
            try:
                await strategy.recover(error)
            except Exception as e:
                if self._logger:
                    self._logger.warning(
                        f"Recovery strategy failed for error: {error.code.value}",
                        strategy=type(strategy).__name__,
                        recovery_error={"name": type(e).__name__, "message": str(e)},
                    )
                continue
            if self._logger:
                self._logger.info(
                    f"Successfully recovered from error: {error.code.value}",
                    strategy=type(strategy).__name__,
                )
            return True
        return False


class FileOperationRecoveryStrategy:
    """Records recovery attempts for generic write failures.

    Matches FILE_WRITE_ERROR only; the retry itself belongs to the
    orchestrator, so recovery here is an audit entry.
    """

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger = logger
        self.attempts: list[BaseError] = []

    def can_recover(self, error: BaseError) -> bool:
        return (
            isinstance(error, FileOperationError)
            and error.code is ErrorCode.FILE_WRITE_ERROR
        )

    async def recover(self, error: BaseError) -> None:
        self.attempts.append(error)
        if self._logger:
            self._logger.info(
                "Attempting to recover from file operation error",
                error_message=error.message,
                file_path=error.context.file_path,
            )


class NetworkRecoveryStrategy:
    """Waits for a remote collaborator to become reachable again.

    Polls an injected health probe with exponential backoff. Raises when
    the probe never reports healthy.
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[bool]],
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        """Initialize the strategy.

        Args:
            probe: Coroutine function returning True when the service is healthy
            max_retries: Number of probe attempts
            retry_delay: Base delay in seconds, doubled after each attempt
        """
        self._probe = probe
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def can_recover(self, error: BaseError) -> bool:
        return isinstance(error, NetworkError) and error.retryable

    async def recover(self, error: BaseError) -> None:
        for attempt in range(self.max_retries):
            await asyncio.sleep(self.retry_delay * (2**attempt))
            try:
                if await self._probe():
                    return
            except (httpx.HTTPError, OSError):
                continue
        raise NetworkError(
            f"Recovery failed after {self.max_retries} attempts: {error.message}",
            error.context,
            error,
        )
