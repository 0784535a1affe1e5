"""Unit tests for HttpFileService."""

from __future__ import annotations

import json
from collections.abc import Callable
from io import StringIO

import httpx
import pytest

from actionflow.core.error_handling import ErrorHandlingService
from actionflow.core.errors import ErrorCode, FileOperationError
from actionflow.core.logging import StructuredLogger
from actionflow.services import (
    FileCreateRequest,
    FileDeleteRequest,
    FileUpdateRequest,
    HttpFileService,
)

BASE_URL = "http://storage.test/api"
WS = "ws-1"


def _service(
    handler: Callable[[httpx.Request], httpx.Response],
    output: StringIO | None = None,
) -> HttpFileService:
    logger = StructuredLogger("http", output=output or StringIO())
    return HttpFileService(
        BASE_URL,
        ErrorHandlingService(logger=logger),
        logger=logger,
        transport=httpx.MockTransport(handler),
    )


class TestWrites:
    """Tests for create, update and delete requests."""

    @pytest.mark.asyncio
    async def test_create_sends_camel_case_body(self) -> None:
        """POST /files/create carries workspaceId, filePath and content."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"success": True})

        async with _service(handler) as service:
            result = await service.create_file(FileCreateRequest(WS, "a.txt", "hi"))

        assert result.success is True
        assert result.action == "create"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/files/create"
        assert json.loads(seen[0].content) == {
            "workspaceId": WS,
            "filePath": "a.txt",
            "content": "hi",
        }

    @pytest.mark.asyncio
    async def test_update_and_delete_methods(self) -> None:
        """Updates use PUT and deletes use DELETE."""
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={})

        async with _service(handler) as service:
            await service.update_file(FileUpdateRequest(WS, "a.txt", "new"))
            await service.delete_file(FileDeleteRequest(WS, "a.txt"))

        assert seen == [("PUT", "/api/files/update"), ("DELETE", "/api/files/delete")]

    @pytest.mark.asyncio
    async def test_server_message_surfaces(self) -> None:
        """A JSON error body's message becomes the result error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"message": "File already exists"})

        output = StringIO()
        async with _service(handler, output) as service:
            result = await service.create_file(FileCreateRequest(WS, "a.txt", "hi"))

        assert result.success is False
        assert result.error == "File already exists"
        assert "File create failed: a.txt" in output.getvalue()

    @pytest.mark.asyncio
    async def test_status_without_body(self) -> None:
        """Errors without a JSON body still fail cleanly."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="oops")

        async with _service(handler) as service:
            result = await service.update_file(FileUpdateRequest(WS, "a.txt", "x"))

        assert result.success is False
        assert "500" in (result.error or "")

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Connection failures become unsuccessful results."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _service(handler) as service:
            result = await service.delete_file(FileDeleteRequest(WS, "a.txt"))

        assert result.success is False
        assert result.error == "connection refused"


class TestReads:
    """Tests for existence, listing, content and health."""

    @pytest.mark.asyncio
    async def test_file_exists(self) -> None:
        """Existence comes from the exists flag; query params are sent."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"exists": True})

        async with _service(handler) as service:
            assert await service.file_exists(WS, "src/a.js") is True

        assert seen[0].url.params["workspaceId"] == WS
        assert seen[0].url.params["filePath"] == "src/a.js"

    @pytest.mark.asyncio
    async def test_file_exists_on_error(self) -> None:
        """Failures are logged and reported as missing."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        output = StringIO()
        async with _service(handler, output) as service:
            assert await service.file_exists(WS, "a.txt") is False
        assert "Error checking file existence: a.txt" in output.getvalue()

    @pytest.mark.asyncio
    async def test_list_files(self) -> None:
        """Listing returns the files array, or empty on failure."""
        responses = iter(
            [httpx.Response(200, json={"files": ["a.txt", "b.js"]}), httpx.Response(500)]
        )

        async with _service(lambda request: next(responses)) as service:
            assert await service.list_files(WS) == ["a.txt", "b.js"]
            assert await service.list_files(WS) == []

    @pytest.mark.asyncio
    async def test_get_file_content(self) -> None:
        """Content comes from the content field."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": "hello"})

        async with _service(handler) as service:
            assert await service.get_file_content(WS, "a.txt") == "hello"

    @pytest.mark.asyncio
    async def test_get_missing_content_raises(self) -> None:
        """A 404 read raises FILE_NOT_FOUND."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "File not found"})

        async with _service(handler) as service:
            with pytest.raises(FileOperationError) as exc_info:
                await service.get_file_content(WS, "a.txt")

        assert exc_info.value.code is ErrorCode.FILE_NOT_FOUND
        assert exc_info.value.message == "File not found"

    @pytest.mark.asyncio
    async def test_ping(self) -> None:
        """ping() reports the health endpoint status."""

        def healthy(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/health"
            return httpx.Response(200)

        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        async with _service(healthy) as service:
            assert await service.ping() is True
        async with _service(unreachable) as service:
            assert await service.ping() is False
