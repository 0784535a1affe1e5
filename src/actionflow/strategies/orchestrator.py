"""Coordinates strategies with timeout, retry, batching and events.

Execution modes:
- execute_action: one action, validate then execute with retry
- execute_artifact: an ordered plan, stops at the first failure
- execute_concurrent: independent actions, serialized per file path,
  bounded fan-out across paths, every action attempted
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from actionflow.actions.models import (
    AIAction,
    AIArtifact,
    BatchOperationResult,
    OperationContext,
    OperationProgress,
    OperationResult,
    ProgressCallback,
)
from actionflow.config.schema import OrchestratorConfig
from actionflow.core.errors import ErrorContext, OperationTimeoutError
from actionflow.core.metrics import Timer
from actionflow.core.validation import normalize_path
from actionflow.events.models import EventFactory
from actionflow.strategies.base import MS_PER_COMPLEXITY_UNIT, FileOperationStrategy
from actionflow.strategies.create import CreateFileStrategy
from actionflow.strategies.delete import DeleteFileStrategy
from actionflow.strategies.edit import EditFileStrategy
from actionflow.strategies.retry import RetryConfig, retry_async
from actionflow.strategies.unsupported import UnsupportedOperationStrategy

if TYPE_CHECKING:
    from actionflow.core.logging import StructuredLogger
    from actionflow.core.metrics import MetricsCollector

NO_FILE_GROUP = "no-file"


def default_strategies() -> list[FileOperationStrategy]:
    """Create, edit and delete, plus the catch-all."""
    return [
        CreateFileStrategy(),
        EditFileStrategy(),
        DeleteFileStrategy(),
        UnsupportedOperationStrategy(),
    ]


class NoStrategyError(LookupError):
    """No registered strategy accepts the action."""

    pass


class FileOperationOrchestrator:
    """Selects a strategy per action and runs it with retry and timeout."""

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        logger: StructuredLogger | None = None,
        metrics: MetricsCollector | None = None,
        strategies: Iterable[FileOperationStrategy] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Concurrency, timeout and retry settings
            logger: Structured logger instance
            metrics: Optional metrics sink
            strategies: Strategies to register (defaults to the built-in set)
        """
        self.config = config or OrchestratorConfig()
        self._logger = logger
        self._metrics = metrics
        self._strategies: list[FileOperationStrategy] = []
        self._retry = RetryConfig(
            max_attempts=self.config.retry_attempts,
            retry_delay_ms=self.config.retry_delay,
        )

        for strategy in strategies if strategies is not None else default_strategies():
            self.register_strategy(strategy)

    # Strategy registry

    def register_strategy(self, strategy: FileOperationStrategy) -> None:
        """Add a strategy; dispatch order stays sorted by priority."""
        self._strategies.append(strategy)
        # sort() is stable, so equal priorities keep registration order
        self._strategies.sort(key=lambda s: s.priority)

    def unregister_strategy(self, action_type: str) -> None:
        """Remove every strategy with the given action type."""
        self._strategies = [s for s in self._strategies if s.action_type != action_type]

    def get_strategies(self) -> list[FileOperationStrategy]:
        return list(self._strategies)

    def find_strategy(self, action: AIAction) -> FileOperationStrategy:
        """First strategy, by ascending priority, that handles the action.

        Raises:
            NoStrategyError: If none does (only when the catch-all is removed).
        """
        for strategy in self._strategies:
            if strategy.can_handle(action):
                return strategy
        raise NoStrategyError(f"No strategy found for action type: {action.type}")

    # Single action

    async def execute_action(
        self,
        action: AIAction,
        context: OperationContext,
        on_progress: ProgressCallback | None = None,
    ) -> OperationResult:
        """Validate and execute one action.

        Emits ai.action.processed exactly once, on success or failure.

        Args:
            action: The action to run
            context: Session collaborators
            on_progress: Optional progress callback

        Returns:
            OperationResult of the strategy

        Raises:
            Exception: The validation or final execution error, unchanged.
        """
        timer = Timer()

        try:
            with timer:
                strategy = self.find_strategy(action)
                await strategy.validate(action, context)
                result = await self._execute_with_retry(action, strategy, context, on_progress)
        except Exception as e:
            self._record(action, timer.duration_ms, False, str(e))
            context.event_bus.emit(
                EventFactory.ai_action_processed(action.type, False, action.file_path, str(e))
            )
            await context.error_handler.handle_error(
                e,
                ErrorContext(
                    operation=action.type,
                    file_path=action.file_path,
                    workspace_id=context.workspace_id,
                    user_id=context.user_id,
                ),
            )
            raise

        self._record(action, timer.duration_ms, True)
        context.event_bus.emit(
            EventFactory.ai_action_processed(action.type, True, action.file_path)
        )
        return result

    async def _execute_with_retry(
        self,
        action: AIAction,
        strategy: FileOperationStrategy,
        context: OperationContext,
        on_progress: ProgressCallback | None,
    ) -> OperationResult:
        async def attempt_once(attempt: int) -> OperationResult:
            if self._logger:
                self._logger.log_action_start(action.type, action.file_path, attempt)
            return await self._execute_with_timeout(action, strategy, context, on_progress)

        def on_retry(attempt: int, delay_ms: float, error: Exception) -> None:
            if self._metrics is not None:
                self._metrics.record_retry(action.type)
            if self._logger:
                self._logger.log_retry(action.type, attempt, int(delay_ms), str(error))

        return await retry_async(attempt_once, self._retry, on_retry)

    async def _execute_with_timeout(
        self,
        action: AIAction,
        strategy: FileOperationStrategy,
        context: OperationContext,
        on_progress: ProgressCallback | None,
    ) -> OperationResult:
        """Run the strategy, cancelling it when the time budget runs out."""
        timeout_ms = self.config.operation_timeout
        try:
            return await asyncio.wait_for(
                strategy.execute(action, context, on_progress),
                timeout=timeout_ms / 1000,
            )
        except TimeoutError as e:
            if self._metrics is not None:
                self._metrics.record_timeout(action.type)
            raise OperationTimeoutError(
                timeout_ms,
                ErrorContext(
                    operation=action.type,
                    file_path=action.file_path,
                    workspace_id=context.workspace_id,
                ),
            ) from e

    # Batches

    async def execute_artifact(
        self,
        artifact: AIArtifact,
        context: OperationContext,
        on_progress: ProgressCallback | None = None,
    ) -> BatchOperationResult:
        """Execute a plan strictly in order, stopping at the first failure.

        Progress reported to on_progress is the overall plan progress,
        weighted by each action's estimated complexity.

        Args:
            artifact: The ordered plan
            context: Session collaborators
            on_progress: Optional progress callback

        Returns:
            BatchOperationResult covering only the attempted actions
        """
        actions = artifact.actions
        weights = [self.find_strategy(a).estimate_complexity(a) for a in actions]
        total_weight = sum(weights) or 1.0
        completed_weight = 0.0

        results: list[OperationResult] = []
        errors: list[str] = []
        successful = 0
        timer = Timer()

        with timer:
            for index, action in enumerate(actions):
                weight = weights[index]

                def report(
                    update: OperationProgress,
                    done: float = completed_weight,
                    w: float = weight,
                ) -> None:
                    if on_progress is None:
                        return
                    fraction = (update.progress or 0) / 100
                    on_progress(
                        OperationProgress(
                            action=update.action,
                            status=update.status,
                            file_path=update.file_path,
                            progress=round((done + w * fraction) / total_weight * 100),
                            error=update.error,
                        )
                    )

                try:
                    result = await self.execute_action(action, context, report)
                except Exception as e:
                    errors.append(f"Action {index + 1} ({action.type}): {e}")
                    results.append(OperationResult.failed(action, str(e)))
                    break

                results.append(result)
                successful += 1
                completed_weight += weight

        self._record_batch("artifact", len(actions), successful, timer.duration_ms)
        return BatchOperationResult(
            success=not errors,
            results=results,
            total_operations=len(actions),
            successful_operations=successful,
            failed_operations=len(actions) - successful,
            errors=errors,
        )

    async def execute_concurrent(
        self,
        actions: Sequence[AIAction],
        context: OperationContext,
        on_progress: ProgressCallback | None = None,
    ) -> BatchOperationResult:
        """Execute independent actions with bounded concurrency.

        Actions sharing a file path run one after another in input order;
        groups for distinct paths run side by side, at most
        max_concurrent_operations at a time. Failures do not stop the batch.

        Args:
            actions: Actions to run
            context: Session collaborators
            on_progress: Optional per-action progress callback

        Returns:
            BatchOperationResult with results in input order
        """
        outcomes: dict[int, OperationResult] = {}
        failures: dict[int, str] = {}

        async def run_group(group: list[tuple[int, AIAction]]) -> None:
            for index, action in group:
                try:
                    outcomes[index] = await self.execute_action(action, context, on_progress)
                except Exception as e:
                    outcomes[index] = OperationResult.failed(action, str(e))
                    failures[index] = f"Action {action.type}: {e}"

        groups = list(self._group_by_file_path(actions).values())
        chunk_size = max(1, self.config.max_concurrent_operations)
        timer = Timer()

        with timer:
            for start in range(0, len(groups), chunk_size):
                chunk = groups[start : start + chunk_size]
                await asyncio.gather(*(run_group(group) for group in chunk))

        results = [outcomes[i] for i in range(len(actions))]
        errors = [failures[i] for i in sorted(failures)]
        successful = len(actions) - len(failures)

        self._record_batch("concurrent", len(actions), successful, timer.duration_ms)
        return BatchOperationResult(
            success=not errors,
            results=results,
            total_operations=len(actions),
            successful_operations=successful,
            failed_operations=len(failures),
            errors=errors,
        )

    @staticmethod
    def _group_by_file_path(
        actions: Sequence[AIAction],
    ) -> dict[str, list[tuple[int, AIAction]]]:
        groups: dict[str, list[tuple[int, AIAction]]] = {}
        for index, action in enumerate(actions):
            key = normalize_path(action.file_path) if action.file_path else NO_FILE_GROUP
            groups.setdefault(key, []).append((index, action))
        return groups

    # Estimates and statistics

    def estimate_execution_time(self, actions: Iterable[AIAction]) -> float:
        """Advisory total duration in milliseconds."""
        return sum(
            self.find_strategy(action).estimate_complexity(action) * MS_PER_COMPLEXITY_UNIT
            for action in actions
        )

    def get_operation_statistics(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "registered_strategies": len(self._strategies),
            "strategy_types": [s.action_type for s in self._strategies],
            "config": asdict(self.config),
        }
        if self._metrics is not None:
            stats["metrics"] = self._metrics.get_summary()
        return stats

    def _record(
        self,
        action: AIAction,
        duration_ms: float,
        success: bool,
        error: str | None = None,
    ) -> None:
        if self._metrics is not None:
            self._metrics.record_operation(action.type, duration_ms, success)
        if self._logger:
            self._logger.log_action_result(
                action.type, action.file_path, success, int(duration_ms), error
            )

    def _record_batch(self, mode: str, total: int, successful: int, duration_ms: float) -> None:
        if self._metrics is not None:
            self._metrics.record_batch(mode)
        if self._logger:
            self._logger.log_batch_summary(
                mode, total, successful, total - successful, int(duration_ms)
            )
