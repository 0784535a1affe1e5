"""Shared fixtures for unit tests."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest

from actionflow.actions.models import OperationContext
from actionflow.config.env import EnvConfig, LogFormat
from actionflow.config.schema import ActionflowConfig
from actionflow.session import ServiceBundle, create_services

WORKSPACE_ID = "0b5c4c1e-8c1a-4f6e-9a57-3f8d2b1c7e90"


@pytest.fixture
def env() -> EnvConfig:
    """Local storage, quiet logging."""
    return EnvConfig(
        file_service_url=None,
        workspace_id=WORKSPACE_ID,
        log_level="debug",
        log_format=LogFormat.JSON,
    )


@pytest.fixture
def log_stream() -> StringIO:
    return StringIO()


@pytest.fixture
def bundle(tmp_path: Path, env: EnvConfig, log_stream: StringIO) -> ServiceBundle:
    """A session bundle backed by a temporary workspace."""
    return create_services(ActionflowConfig(), env, workspace_root=tmp_path, output=log_stream)


@pytest.fixture
def context(bundle: ServiceBundle) -> OperationContext:
    return bundle.create_context(WORKSPACE_ID)
