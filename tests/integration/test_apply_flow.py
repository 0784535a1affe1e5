"""Integration test: applying AI action plans end to end.

Covers the full pipeline from plan to storage:
- Ordered plans create, edit and delete files and mirror them in the editor
- A failing action stops the plan; later actions are never attempted
- Concurrent batches keep same-file actions in order
- Unsafe actions are rejected before anything is written
- Remote storage through the HTTP file API
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from actionflow.actions import AIAction, AIArtifact, OperationProgress, parse_artifact
from actionflow.actions.models import OperationContext
from actionflow.config.env import EnvConfig
from actionflow.core.errors import SecurityError
from actionflow.events import AI_ACTION_PROCESSED, FILE_CREATED, FILE_DELETED, FILE_UPDATED
from actionflow.session import ServiceBundle

SITE_PLAN = """\
title: Refresh landing page
actions:
  - type: create
    file_path: about.html
    content: "<h1>About us</h1>"
  - type: edit
    file_path: index.html
    content: "<h1>New title</h1>"
  - type: create
    file_path: data/site.json
    content: '{"name": "site", "pages": 2}'
  - type: delete
    file_path: legacy.html
"""


def _events(context: OperationContext) -> list[tuple[str, dict[str, Any]]]:
    return [(e.type, e.data) for e in context.event_bus.get_event_history()]


class TestOrderedPlan:
    """A plan applied in order against a local workspace."""

    @pytest.mark.asyncio
    async def test_plan_applies_every_action(
        self, services: ServiceBundle, context: OperationContext, workspace: Path
    ) -> None:
        """Files, editor tabs and events all reflect the plan."""
        updates: list[OperationProgress] = []

        result = await services.orchestrator.execute_artifact(
            parse_artifact(SITE_PLAN), context, updates.append
        )

        assert result.success is True
        assert result.successful_operations == 4

        # Storage
        assert (workspace / "about.html").read_text() == "<h1>About us</h1>"
        assert (workspace / "index.html").read_text() == "<h1>New title</h1>"
        assert (workspace / "data" / "site.json").read_text() == json.dumps(
            {"name": "site", "pages": 2}, indent=2
        )
        assert not (workspace / "legacy.html").exists()

        # Editor
        editor = services.editor_service
        assert [t.path for t in editor.get_open_files()] == [
            "about.html",
            "index.html",
            "data/site.json",
        ]
        assert editor.get_active_file().path == "data/site.json"

        # Events
        file_events = [t for t, _ in _events(context) if t != AI_ACTION_PROCESSED]
        assert file_events == [FILE_CREATED, FILE_UPDATED, FILE_CREATED, FILE_DELETED]
        updated = next(d for t, d in _events(context) if t == FILE_UPDATED)
        assert updated["previous_content"] == "<h1>Old title</h1>\n"

        # Progress
        progress = [u.progress for u in updates if u.progress is not None]
        assert progress == sorted(progress)
        assert progress[-1] == 100

    @pytest.mark.asyncio
    async def test_failure_stops_plan(
        self, services: ServiceBundle, context: OperationContext, workspace: Path
    ) -> None:
        """Actions after a failure are not attempted."""
        artifact = AIArtifact(
            actions=(
                AIAction(type="create", file_path="about.html", content="<p>a</p>"),
                AIAction(type="create", file_path="index.html", content="<p>dup</p>"),
                AIAction(type="delete", file_path="legacy.html"),
            )
        )

        result = await services.orchestrator.execute_artifact(artifact, context)

        assert result.success is False
        assert result.successful_operations == 1
        assert result.failed_operations == 2
        assert result.errors == ["Action 2 (create): File already exists: index.html"]
        assert (workspace / "index.html").read_text() == "<h1>Old title</h1>\n"
        assert (workspace / "legacy.html").exists()

        processed = [d for t, d in _events(context) if t == AI_ACTION_PROCESSED]
        assert [d["success"] for d in processed] == [True, False]
        assert len(services.error_handler.get_error_history()) == 1


class TestConcurrentBatch:
    """Independent actions applied concurrently."""

    @pytest.mark.asyncio
    async def test_same_file_actions_run_in_order(
        self, services: ServiceBundle, context: OperationContext, workspace: Path
    ) -> None:
        """A create followed by an edit of the same new file both succeed."""
        actions = [
            AIAction(type="create", file_path="blog.html", content="<h1>Draft</h1>"),
            AIAction(type="edit", file_path="css/site.css", content="body { margin: 1em; }"),
            AIAction(type="edit", file_path="blog.html", content="<h1>Published</h1>"),
            AIAction(type="delete", file_path="legacy.html"),
        ]

        result = await services.orchestrator.execute_concurrent(actions, context)

        assert result.success is True, result.errors
        assert [r.file_path for r in result.results] == [a.file_path for a in actions]
        assert (workspace / "blog.html").read_text() == "<h1>Published</h1>"
        assert (workspace / "css" / "site.css").read_text() == "body { margin: 1em; }"
        assert not (workspace / "legacy.html").exists()

    @pytest.mark.asyncio
    async def test_failures_are_isolated(
        self, services: ServiceBundle, context: OperationContext, workspace: Path
    ) -> None:
        """One failing action does not prevent the others."""
        actions = [
            AIAction(type="delete", file_path="missing.html"),
            AIAction(type="create", file_path="contact.html", content="<p>mail</p>"),
        ]

        result = await services.orchestrator.execute_concurrent(actions, context)

        assert result.success is False
        assert result.successful_operations == 1
        assert (workspace / "contact.html").exists()


class TestUnsafeActions:
    """Security rules applied before any write."""

    @pytest.mark.asyncio
    async def test_traversal_rejected(
        self, services: ServiceBundle, context: OperationContext, workspace: Path
    ) -> None:
        """Paths escaping the workspace never reach storage."""
        with pytest.raises(SecurityError) as exc_info:
            await services.orchestrator.execute_action(
                AIAction(type="create", file_path="../escape.html", content="x"), context
            )

        assert exc_info.value.code.value == "PATH_TRAVERSAL"
        assert not (workspace.parent / "escape.html").exists()
        assert services.metrics.get_summary()["operations"]["failed"] == 1

    @pytest.mark.asyncio
    async def test_dangerous_content_rejected(
        self, services: ServiceBundle, context: OperationContext, workspace: Path
    ) -> None:
        """Executable payloads are refused."""
        with pytest.raises(SecurityError):
            await services.orchestrator.execute_action(
                AIAction(type="create", file_path="tool.js", content="MZ\x90\x00binary"),
                context,
            )
        assert not (workspace / "tool.js").exists()

    @pytest.mark.asyncio
    async def test_shell_actions_unsupported(
        self, services: ServiceBundle, context: OperationContext
    ) -> None:
        """Shell actions are reported as failures inside a plan."""
        artifact = AIArtifact(actions=(AIAction(type="shell", command="npm install"),))

        result = await services.orchestrator.execute_artifact(artifact, context)

        assert result.success is False
        assert "Unsupported operation type: shell" in result.errors[0]


class TestRemoteStorage:
    """The same pipeline storing files through the HTTP API."""

    @pytest.mark.asyncio
    async def test_plan_through_http_api(
        self, remote_services: ServiceBundle, storage_api: Any, env: EnvConfig
    ) -> None:
        """Creates, edits and deletes reach the storage API."""
        workspace_id = env.workspace_id or ""
        storage_api.files[(workspace_id, "legacy.html")] = "<p>old</p>"
        context = remote_services.create_context(workspace_id)
        artifact = AIArtifact(
            actions=(
                AIAction(type="create", file_path="about.html", content="<h1>v1</h1>"),
                AIAction(type="edit", file_path="about.html", content="<h1>v2</h1>"),
                AIAction(type="delete", file_path="legacy.html"),
            )
        )

        try:
            result = await remote_services.orchestrator.execute_artifact(artifact, context)
        finally:
            await remote_services.aclose()

        assert result.success is True, result.errors
        assert storage_api.files == {(workspace_id, "about.html"): "<h1>v2</h1>"}
        assert "POST /files/create" in storage_api.requests
        assert "PUT /files/update" in storage_api.requests
        assert "DELETE /files/delete" in storage_api.requests

    @pytest.mark.asyncio
    async def test_existing_remote_file_blocks_create(
        self, remote_services: ServiceBundle, storage_api: Any, env: EnvConfig
    ) -> None:
        """The existence check consults the remote API."""
        workspace_id = env.workspace_id or ""
        storage_api.files[(workspace_id, "about.html")] = "<p>taken</p>"
        context = remote_services.create_context(workspace_id)

        try:
            result = await remote_services.orchestrator.execute_artifact(
                AIArtifact(
                    actions=(AIAction(type="create", file_path="about.html", content="x"),)
                ),
                context,
            )
        finally:
            await remote_services.aclose()

        assert result.success is False
        assert result.errors == ["Action 1 (create): File already exists: about.html"]
        assert "POST /files/create" not in storage_api.requests
