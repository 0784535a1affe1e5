"""Shared fixtures for integration tests."""

from __future__ import annotations

import dataclasses
import json
from io import StringIO
from pathlib import Path

import httpx
import pytest

from actionflow.actions.models import OperationContext
from actionflow.config.env import EnvConfig, LogFormat
from actionflow.config.schema import ActionflowConfig, EventsConfig
from actionflow.services import HttpFileService
from actionflow.session import ServiceBundle, create_services

WORKSPACE_ID = "7d9f1a2b-3c4d-4e5f-8a9b-0c1d2e3f4a5b"
STORAGE_URL = "http://storage.test/api"


# =============================================================================
# Workspace Fixtures
# =============================================================================


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A small static site to apply plans to."""
    root = tmp_path / "site"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_text("<h1>Old title</h1>\n")
    (root / "css" / "site.css").write_text("body { margin: 0; }\n")
    (root / "legacy.html").write_text("<p>remove me</p>\n")
    return root


@pytest.fixture
def log_output() -> StringIO:
    return StringIO()


@pytest.fixture
def env() -> EnvConfig:
    return EnvConfig(
        file_service_url=None,
        workspace_id=WORKSPACE_ID,
        log_level="debug",
        log_format=LogFormat.JSON,
    )


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def services(workspace: Path, env: EnvConfig, log_output: StringIO) -> ServiceBundle:
    """Session services backed by the local workspace, with event middleware."""
    config = ActionflowConfig(events=EventsConfig(middleware=True))
    return create_services(config, env, workspace_root=workspace, output=log_output)


@pytest.fixture
def context(services: ServiceBundle) -> OperationContext:
    return services.create_context(WORKSPACE_ID)


# =============================================================================
# Remote Storage Fixtures
# =============================================================================


class FakeStorageApi:
    """In-memory stand-in for the HTTP storage API, served via MockTransport."""

    def __init__(self) -> None:
        self.files: dict[tuple[str, str], str] = {}
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.requests.append(f"{request.method} {path}")

        if path == "/health":
            return httpx.Response(200, json={"status": "ok"})

        if request.method == "GET":
            params = request.url.params
            workspace_id = params.get("workspaceId", "")
            key = (workspace_id, params.get("filePath", ""))
            if path == "/files/exists":
                return httpx.Response(200, json={"exists": key in self.files})
            if path == "/files/list":
                names = sorted(p for ws, p in self.files if ws == workspace_id)
                return httpx.Response(200, json={"files": names})
            if path == "/files/content":
                if key not in self.files:
                    return httpx.Response(404, json={"message": "File not found"})
                return httpx.Response(200, json={"content": self.files[key]})
            return httpx.Response(404)

        body = json.loads(request.content)
        key = (body["workspaceId"], body["filePath"])
        if path == "/files/create":
            if key in self.files:
                return httpx.Response(409, json={"message": "File already exists"})
            self.files[key] = body["content"]
            return httpx.Response(201, json={"success": True})
        if path == "/files/update":
            if key not in self.files:
                return httpx.Response(404, json={"message": "File not found"})
            self.files[key] = body["content"]
            return httpx.Response(200, json={"success": True})
        if path == "/files/delete":
            if self.files.pop(key, None) is None:
                return httpx.Response(404, json={"message": "File not found"})
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404)


@pytest.fixture
def storage_api() -> FakeStorageApi:
    return FakeStorageApi()


@pytest.fixture
def remote_services(
    services: ServiceBundle, storage_api: FakeStorageApi
) -> ServiceBundle:
    """Session services storing files through the HTTP storage API."""
    http_service = HttpFileService(
        STORAGE_URL,
        services.error_handler,
        logger=services.logger.child("files"),
        transport=httpx.MockTransport(storage_api),
    )
    return dataclasses.replace(services, file_service=http_service, closeables=[http_service])
