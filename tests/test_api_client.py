"""Tests for the meta-fuse HTTP API client."""

import json

import httpx
import pytest

from meta_fuse.api_client import BackendError, MetaFuseClient
from meta_fuse.models import FileAttributes


def _client(handler) -> MetaFuseClient:
    return MetaFuseClient("http://test:3000/", transport=httpx.MockTransport(handler))


def _json_handler(routes: dict, requests: list = None):
    """Answer POST bodies per endpoint; record (path, body) pairs."""
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        if requests is not None:
            requests.append((request.url.path, body))
        status, payload = routes[request.url.path]
        return httpx.Response(status, json=payload)
    return handler


STAT = {
    "size": 5, "mode": 0o100644, "mtime": 1.5, "atime": 2.5, "ctime": 3.5,
    "nlink": 1, "uid": 0, "gid": 0,
}


class TestDataOperations:

    @pytest.mark.anyio
    async def test_readdir_posts_path(self):
        seen = []
        api = _client(_json_handler(
            {"/api/fuse/readdir": (200, {"entries": ["a.txt", "sub"]})}, seen,
        ))
        assert await api.readdir("/") == ["a.txt", "sub"]
        assert seen == [("/api/fuse/readdir", {"path": "/"})]
        await api.close()

    @pytest.mark.anyio
    async def test_getattr_parses_attributes(self):
        api = _client(_json_handler({"/api/fuse/getattr": (200, STAT)}))
        attrs = await api.getattr("/a.txt")
        assert attrs == FileAttributes(size=5, mode=0o100644, mtime=1.5, atime=2.5,
                                       ctime=3.5, nlink=1, uid=0, gid=0)
        assert attrs.is_dir is False

    @pytest.mark.anyio
    async def test_exists(self):
        api = _client(_json_handler({"/api/fuse/exists": (200, {"exists": True})}))
        assert await api.exists("/a.txt") is True

    @pytest.mark.anyio
    async def test_read_maps_camel_case_fields(self):
        payload = {"sourcePath": "/data/a.mkv", "size": 10,
                   "content": "SGVsbG8=", "contentEncoding": "base64"}
        api = _client(_json_handler({"/api/fuse/read": (200, payload)}))
        result = await api.read("/a.mkv")
        assert result.source_path == "/data/a.mkv"
        assert result.content == "SGVsbG8="
        assert result.content_encoding == "base64"
        assert result.size == 10
        assert result.webdav_url is None

    @pytest.mark.anyio
    async def test_read_drops_non_string_fields(self):
        payload = {"size": 3, "content": 123, "contentEncoding": ["base64"],
                   "sourcePath": 10}
        api = _client(_json_handler({"/api/fuse/read": (200, payload)}))
        result = await api.read("/a.mkv")
        assert result.content is None
        assert result.content_encoding is None
        assert result.source_path is None
        assert result.size == 3


class TestFailures:
    """Every failure mode surfaces as BackendError."""

    @pytest.mark.anyio
    async def test_non_success_status(self):
        api = _client(_json_handler({"/api/fuse/getattr": (404, {"error": "Path not found"})}))
        with pytest.raises(BackendError, match="404"):
            await api.getattr("/missing")

    @pytest.mark.anyio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        api = _client(handler)
        with pytest.raises(BackendError, match="ConnectError"):
            await api.readdir("/")

    @pytest.mark.anyio
    async def test_invalid_json(self):
        api = _client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(BackendError):
            await api.read("/a")

    @pytest.mark.anyio
    async def test_missing_stat_field(self):
        api = _client(_json_handler({"/api/fuse/getattr": (200, {"size": 1})}))
        with pytest.raises(BackendError, match="malformed"):
            await api.getattr("/a")

    @pytest.mark.anyio
    async def test_malformed_entries(self):
        api = _client(_json_handler({"/api/fuse/readdir": (200, {"entries": "nope"})}))
        with pytest.raises(BackendError):
            await api.readdir("/")

    @pytest.mark.anyio
    async def test_non_object_body(self):
        api = _client(lambda request: httpx.Response(200, json=["a"]))
        with pytest.raises(BackendError):
            await api.exists("/a")


class TestHealthCheck:

    @pytest.mark.anyio
    async def test_healthy(self):
        api = _client(lambda request: httpx.Response(200, json={"status": "ok"}))
        assert await api.health_check() is True

    @pytest.mark.anyio
    async def test_unhealthy_status(self):
        api = _client(lambda request: httpx.Response(503))
        assert await api.health_check() is False

    @pytest.mark.anyio
    async def test_unreachable_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)
        api = _client(handler)
        with pytest.raises(BackendError):
            await api.health_check()

    @pytest.mark.anyio
    async def test_close_is_idempotent(self):
        api = _client(lambda request: httpx.Response(200))
        await api.health_check()
        await api.close()
        await api.close()
