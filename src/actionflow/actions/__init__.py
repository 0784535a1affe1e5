"""Action and result value types, plus plan file loading."""

from actionflow.actions.loader import ArtifactLoadError, load_artifact, parse_artifact
from actionflow.actions.models import (
    ActionType,
    AIAction,
    AIArtifact,
    BatchOperationResult,
    FileOperationResult,
    OperationContext,
    OperationProgress,
    OperationResult,
    ProgressCallback,
    ProgressStatus,
)

__all__ = [
    # Inputs
    "ActionType",
    "AIAction",
    "AIArtifact",
    # Results
    "FileOperationResult",
    "OperationResult",
    "BatchOperationResult",
    # Progress
    "OperationProgress",
    "ProgressStatus",
    "ProgressCallback",
    # Session
    "OperationContext",
    # Loading
    "load_artifact",
    "parse_artifact",
    "ArtifactLoadError",
]
