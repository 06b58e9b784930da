"""HTTP API client for the meta-fuse backend."""

import logging
from typing import Optional

import httpx

from .models import FileAttributes, ReadResult

log = logging.getLogger(__name__)


class BackendError(Exception):
    """A backend call failed: transport error, non-2xx status or bad body."""


class MetaFuseClient:
    """Async HTTP client for the /api/fuse endpoints.

    Every data operation POSTs {"path": ...} and returns a typed result or
    raises BackendError. No retries; callers decide what a failure means.
    """

    def __init__(self, api_url: str, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _post(self, endpoint: str, path: str) -> dict:
        """POST a path request and return the decoded JSON object."""
        client = await self._get_client()
        try:
            response = await client.post(endpoint, json={"path": path})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise BackendError(f"API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise BackendError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise BackendError(f"invalid JSON from {endpoint}: {e}") from e
        if not isinstance(data, dict):
            raise BackendError(f"unexpected response from {endpoint}: {type(data).__name__}")
        return data

    async def readdir(self, path: str) -> list[str]:
        """List child names of a directory, in backend order."""
        data = await self._post("/api/fuse/readdir", path)
        entries = data.get("entries")
        if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
            raise BackendError(f"malformed readdir response for {path}")
        return entries

    async def getattr(self, path: str) -> FileAttributes:
        """Stat a path."""
        data = await self._post("/api/fuse/getattr", path)
        try:
            return FileAttributes.from_json(data)
        except (KeyError, TypeError, ValueError) as e:
            raise BackendError(f"malformed getattr response for {path}: {e}") from e

    async def exists(self, path: str) -> bool:
        """Check whether a path exists."""
        data = await self._post("/api/fuse/exists", path)
        return bool(data.get("exists", False))

    async def read(self, path: str) -> ReadResult:
        """Fetch the read payload (inline content and/or local source path)."""
        data = await self._post("/api/fuse/read", path)
        try:
            return ReadResult.from_json(data)
        except (TypeError, ValueError) as e:
            raise BackendError(f"malformed read response for {path}: {e}") from e

    async def health_check(self) -> bool:
        """Probe /api/fuse/health. False on a non-2xx answer."""
        client = await self._get_client()
        try:
            response = await client.get("/api/fuse/health")
        except httpx.HTTPError as e:
            raise BackendError(f"{type(e).__name__}: {e}") from e
        return response.is_success

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
