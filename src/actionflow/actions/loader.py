"""Loading of action plans from YAML or JSON files.

A plan file is a mapping with an ``actions`` list:

    title: Scaffold landing page
    actions:
      - type: create
        file_path: index.html
        content: "<h1>Hello</h1>"
      - type: delete
        filePath: old.html
"""

import json
from pathlib import Path
from typing import Any

import yaml

from actionflow.actions.models import AIArtifact


class ArtifactLoadError(Exception):
    """Error reading or interpreting a plan file."""

    pass


def _parse_document(content: str, suffix: str) -> Any:
    """Parse a plan document; JSON by extension, YAML otherwise.

    Raises:
        ArtifactLoadError: If the document does not parse.
    """
    if suffix == ".json":
        try:
            return json.loads(content)
        except ValueError as e:
            raise ArtifactLoadError(f"Failed to parse JSON: {e}") from e
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ArtifactLoadError(f"Failed to parse YAML: {e}") from e


def parse_artifact(content: str, suffix: str = ".yaml") -> AIArtifact:
    """Parse plan text into an artifact.

    Args:
        content: Raw document text.
        suffix: File extension deciding the format.

    Returns:
        AIArtifact with actions in document order.

    Raises:
        ArtifactLoadError: If the document is malformed.
    """
    data = _parse_document(content, suffix.lower())
    if isinstance(data, list):
        data = {"actions": data}
    if not isinstance(data, dict):
        raise ArtifactLoadError("Plan must be a mapping with an 'actions' list")

    actions = data.get("actions")
    if not isinstance(actions, list):
        raise ArtifactLoadError("Plan requires an 'actions' list")

    for i, action in enumerate(actions):
        if not isinstance(action, dict):
            raise ArtifactLoadError(f"actions[{i}] must be a mapping")
        if "type" not in action:
            raise ArtifactLoadError(f"actions[{i}] requires 'type' field")

    return AIArtifact.from_dict(data)


def load_artifact(path: Path) -> AIArtifact:
    """Load a plan file into an artifact.

    Args:
        path: Path to a .yaml, .yml or .json file.

    Returns:
        AIArtifact

    Raises:
        ArtifactLoadError: If reading or parsing fails.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ArtifactLoadError(f"Failed to read plan file: {e}") from e

    artifact = parse_artifact(content, path.suffix)
    if not artifact.id:
        return AIArtifact(
            actions=artifact.actions,
            id=path.stem,
            title=artifact.title or path.stem,
            description=artifact.description,
        )
    return artifact
