"""CLI entry point for ActionFlow.

Provides commands for:
- Applying an action plan to a workspace (actionflow apply)
- Checking a single path against the security rules (actionflow validate-path)
- Validating a plan without executing it (actionflow check)
"""

import asyncio
import sys
import uuid
from pathlib import Path

import click
from rich.console import Console

from actionflow import __version__
from actionflow.actions import (
    AIArtifact,
    ArtifactLoadError,
    BatchOperationResult,
    load_artifact,
)
from actionflow.config import (
    ActionflowConfig,
    ConfigError,
    find_config,
    load_config,
    load_env_config,
)
from actionflow.core.validation import FilePathValidationOptions, ValidationService
from actionflow.display import ProgressDisplay
from actionflow.session import ServiceBundle, create_services
from actionflow.strategies import FileOperationOrchestrator

# Global console for Rich output
console = Console()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def load_settings(config_path: Path | None, start_dir: Path) -> ActionflowConfig:
    """Load an explicit config file, or the nearest actionflow.yaml.

    Raises:
        ConfigError: If the file cannot be read or is invalid.
    """
    path = config_path or find_config(start_dir)
    if path is None:
        return ActionflowConfig()
    return load_config(path)


def validation_service_for(config: ActionflowConfig) -> ValidationService:
    settings = config.validation
    return ValidationService(
        max_path_length=settings.max_path_length,
        max_content_size=settings.max_content_size,
        allowed_extensions=settings.allowed_extensions,
        allow_absolute_paths=settings.allow_absolute_paths,
        allow_executable_content=settings.allow_executable_content,
        blocked_patterns=settings.blocked_patterns,
    )


def _read_plan(plan: Path) -> AIArtifact:
    try:
        return load_artifact(plan)
    except ArtifactLoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(EXIT_FAILED)


async def _apply(
    bundle: ServiceBundle,
    artifact: AIArtifact,
    workspace_id: str,
    concurrent: bool,
    display: ProgressDisplay,
) -> BatchOperationResult:
    context = bundle.create_context(workspace_id)
    try:
        with display:
            if concurrent:
                result = await bundle.orchestrator.execute_concurrent(
                    artifact.actions, context, display.on_progress
                )
            else:
                result = await bundle.orchestrator.execute_artifact(
                    artifact, context, display.on_progress
                )
        await bundle.event_bus.wait_for_handlers()
        return result
    finally:
        await bundle.aclose()


@click.group()
@click.version_option(version=__version__, prog_name="actionflow")
def main() -> None:
    """ActionFlow - validate and apply AI-proposed file actions safely."""
    pass


@main.command()
@click.argument("plan", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--workspace",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace directory (default: current directory)",
)
@click.option("--concurrent", is_flag=True, help="Run independent actions concurrently")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to actionflow.yaml",
)
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output")
def apply(
    plan: Path,
    workspace: Path | None,
    concurrent: bool,
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Apply an action plan to a workspace.

    PLAN is a YAML or JSON file with an "actions" list.

    Examples:
        actionflow apply plan.yaml
        actionflow apply --workspace ./site --concurrent plan.json
    """
    workspace = workspace or Path.cwd()

    try:
        config = load_settings(config_path, workspace)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    artifact = _read_plan(plan)
    if not artifact.actions:
        console.print("[yellow]Plan contains no actions[/yellow]")
        sys.exit(EXIT_OK)

    env = load_env_config()
    if verbose:
        env.log_level = "debug"
    bundle = create_services(config, env, workspace_root=workspace)
    workspace_id = env.workspace_id or str(uuid.uuid4())

    display = ProgressDisplay(console=console, verbose=verbose)
    if env.uses_remote_storage:
        console.print(f"[dim]Using file service at {env.file_service_url}[/dim]")
    else:
        console.print(f"[dim]Workspace: {workspace}[/dim]")

    try:
        result = asyncio.run(_apply(bundle, artifact, workspace_id, concurrent, display))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        sys.exit(130)

    display.show_batch_result(result)
    sys.exit(EXIT_OK if result.success else EXIT_FAILED)


@main.command("validate-path")
@click.argument("path")
@click.option("--allow-absolute", is_flag=True, help="Accept absolute paths")
def validate_path(path: str, allow_absolute: bool) -> None:
    """Check PATH against the file path security rules."""
    try:
        config = load_settings(None, Path.cwd())
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    options = FilePathValidationOptions(allow_absolute_paths=True if allow_absolute else None)
    result = validation_service_for(config).validate_file_path(path, options)

    ProgressDisplay(console=console).show_path_result(path, result)
    sys.exit(EXIT_OK if result.valid else EXIT_FAILED)


@main.command()
@click.argument("plan", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to actionflow.yaml",
)
def check(plan: Path, config_path: Path | None) -> None:
    """Validate every action in PLAN without executing anything."""
    try:
        config = load_settings(config_path, Path.cwd())
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    artifact = _read_plan(plan)
    service = validation_service_for(config)
    checks = [(action, service.validate_ai_action(action)) for action in artifact.actions]
    estimate = FileOperationOrchestrator(config.orchestrator).estimate_execution_time(
        artifact.actions
    )

    ProgressDisplay(console=console).show_check_result(checks, estimate)
    sys.exit(EXIT_OK if all(result.valid for _, result in checks) else EXIT_FAILED)


if __name__ == "__main__":
    main()
