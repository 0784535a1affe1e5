"""Per-session construction of every collaborator.

One ServiceBundle is built at session start and passed by reference;
nothing here is cached at module level.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from actionflow.actions.models import OperationContext
from actionflow.config.env import EnvConfig, LogFormat, load_env_config
from actionflow.config.schema import ActionflowConfig
from actionflow.core.error_handling import (
    ErrorHandlingService,
    ErrorReporter,
    FileOperationRecoveryStrategy,
    NetworkRecoveryStrategy,
)
from actionflow.core.logging import LogLevel, StructuredLogger
from actionflow.core.metrics import MetricsCollector
from actionflow.core.validation import ValidationService
from actionflow.events.bus import EnhancedEventBusService, EventBusService
from actionflow.events.middleware import LoggingMiddleware, ValidationMiddleware
from actionflow.services.editor import InMemoryEditorService
from actionflow.services.http_files import HttpFileService
from actionflow.services.local_files import LocalFileService
from actionflow.services.protocols import FileService
from actionflow.strategies.orchestrator import FileOperationOrchestrator


@dataclass
class ServiceBundle:
    """Everything one operation session needs."""

    config: ActionflowConfig
    logger: StructuredLogger
    metrics: MetricsCollector
    error_handler: ErrorHandlingService
    event_bus: EventBusService
    validation_service: ValidationService
    file_service: FileService
    editor_service: InMemoryEditorService
    orchestrator: FileOperationOrchestrator
    closeables: list[HttpFileService] = field(default_factory=list)

    def create_context(self, workspace_id: str, user_id: str | None = None) -> OperationContext:
        """Build the OperationContext shared by every call in this session."""
        return OperationContext(
            workspace_id=workspace_id,
            user_id=user_id,
            file_service=self.file_service,
            editor_service=self.editor_service,
            validation_service=self.validation_service,
            event_bus=self.event_bus,
            error_handler=self.error_handler,
        )

    def health(self) -> dict[str, object]:
        """Snapshot of event, orchestrator, editor and error statistics."""
        return {
            "events": self.event_bus.get_event_statistics(),
            "orchestrator": self.orchestrator.get_operation_statistics(),
            "editor": self.editor_service.get_editor_statistics(),
            "errors": self.error_handler.get_error_statistics(),
        }

    async def aclose(self) -> None:
        """Release network clients."""
        for closeable in self.closeables:
            await closeable.aclose()


def create_services(
    config: ActionflowConfig | None = None,
    env: EnvConfig | None = None,
    workspace_root: Path | None = None,
    output: TextIO | None = None,
    reporter: ErrorReporter | None = None,
) -> ServiceBundle:
    """Build a fresh service bundle.

    Uses the HTTP file service when env.file_service_url is set, otherwise
    a LocalFileService rooted at workspace_root (default: current directory).

    Args:
        config: Parsed configuration (defaults when omitted)
        env: Environment configuration (loaded when omitted)
        workspace_root: Root directory for local storage
        output: Log output stream (stderr when omitted)
        reporter: Optional sink for critical errors

    Returns:
        ServiceBundle
    """
    config = config or ActionflowConfig()
    env = env or load_env_config()

    try:
        level = LogLevel.from_name(env.log_level)
    except ValueError:
        level = LogLevel.INFO
    logger = StructuredLogger(
        component="actionflow",
        level=level,
        output=output or sys.stderr,
        json_format=env.log_format is LogFormat.JSON,
    )

    metrics = MetricsCollector()
    error_handler = ErrorHandlingService(
        logger=logger.child("errors"),
        reporter=reporter,
        history_size=config.errors.history_size,
    )

    if config.events.middleware:
        event_bus: EventBusService = EnhancedEventBusService(
            logger=logger.child("events"), history_size=config.events.history_size
        )
        event_bus.add_middleware(ValidationMiddleware(logger.child("events")))
        event_bus.add_middleware(LoggingMiddleware(logger.child("events")))
    else:
        event_bus = EventBusService(
            logger=logger.child("events"), history_size=config.events.history_size
        )

    validation = config.validation
    validation_service = ValidationService(
        max_path_length=validation.max_path_length,
        max_content_size=validation.max_content_size,
        allowed_extensions=validation.allowed_extensions,
        allow_absolute_paths=validation.allow_absolute_paths,
        allow_executable_content=validation.allow_executable_content,
        blocked_patterns=validation.blocked_patterns,
        logger=logger.child("validation"),
    )

    closeables: list[HttpFileService] = []
    file_service: FileService
    if env.file_service_url:
        http_service = HttpFileService(
            env.file_service_url,
            error_handler,
            logger=logger.child("files"),
            timeout=config.orchestrator.operation_timeout / 1000,
        )
        closeables.append(http_service)
        error_handler.add_recovery_strategy(NetworkRecoveryStrategy(http_service.ping))
        file_service = http_service
    else:
        file_service = LocalFileService(
            workspace_root or Path.cwd(),
            error_handler=error_handler,
            logger=logger.child("files"),
        )
    error_handler.add_recovery_strategy(FileOperationRecoveryStrategy(logger.child("errors")))

    orchestrator = FileOperationOrchestrator(
        config=config.orchestrator,
        logger=logger.child("orchestrator"),
        metrics=metrics,
    )

    return ServiceBundle(
        config=config,
        logger=logger,
        metrics=metrics,
        error_handler=error_handler,
        event_bus=event_bus,
        validation_service=validation_service,
        file_service=file_service,
        editor_service=InMemoryEditorService(logger=logger.child("editor")),
        orchestrator=orchestrator,
        closeables=closeables,
    )
