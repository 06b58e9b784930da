"""
ReadMixin — File open and read operations.

Content is never cached: every read re-fetches the backend's read payload
and slices the requested range out of it. ERROR.txt is rendered locally.
"""

import base64
import binascii
import errno
import logging
import os
from typing import Optional

import pyfuse3
import trio

from ..api_client import BackendError
from ..models import ReadResult

log = logging.getLogger(__name__)

_WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_CREAT | os.O_TRUNC


class ReadMixin:
    """File open and read operations."""

    async def open(self, inode: int, flags: int, ctx: pyfuse3.RequestContext) -> pyfuse3.FileInfo:
        """Open a file read-only. The inode doubles as the file handle."""
        if flags & _WRITE_FLAGS:
            raise pyfuse3.FUSEError(errno.EROFS)

        entry = self._resolve_entry(inode)
        if entry is None:
            raise pyfuse3.FUSEError(errno.ENOENT)

        fi = pyfuse3.FileInfo(fh=inode)
        # Sizes come from a cached stat that may lag the backend; bypass the
        # page cache so reads aren't truncated at a stale st_size.
        fi.direct_io = True
        return fi

    async def release(self, fh: int) -> None:
        """Release a file handle. No-op, there is no per-open state."""
        pass

    async def read(self, fh: int, off: int, size: int) -> bytes:
        """Read size bytes at off."""
        if fh == self.DIAGNOSTIC_INODE:
            content = self._health.diagnostic_bytes()
            if off >= len(content):
                return b""
            return content[off:off + size]

        path = self._path_of(fh)
        log.debug(f"read: ino={fh} path={path} offset={off} size={size}")

        try:
            result = await self._api.read(path)
        except BackendError as e:
            self._health.record_error(f"read API call failed for {path}: {e}")
            log.error(f"read API call failed for {path}: {e}")
            raise pyfuse3.FUSEError(errno.ENOENT) from None
        self._health.record_success()

        try:
            return await self._read_range(result, off, size)
        except (OSError, TypeError, ValueError) as e:
            log.error(f"Failed to read file content for {path}: {e}")
            raise pyfuse3.FUSEError(errno.EIO) from None

    async def _read_range(self, result: ReadResult, off: int, size: int) -> bytes:
        """Extract [off, off + size) from a read payload.

        Inline content wins over a source path. Raises ValueError when the
        payload carries neither, OSError when the source file can't be read.
        The source file is read in a worker thread so a slow disk or network
        share only stalls this request.
        """
        if isinstance(result.content, str):
            content = _decode_content(result.content, result.content_encoding)
            if off >= len(content):
                return b""
            return content[off:off + size]

        if isinstance(result.source_path, str) and result.source_path:
            return await trio.to_thread.run_sync(
                _read_source, result.source_path, off, size
            )

        raise ValueError("No content or source path available")


def _read_source(source_path: str, off: int, size: int) -> bytes:
    with open(source_path, "rb") as f:
        if off > 0:
            f.seek(off)
        # Short reads near EOF are fine
        return f.read(size)


def _decode_content(content: str, encoding: Optional[str]) -> bytes:
    """Decode inline content. Backends send base64; utf-8 text is accepted too."""
    if encoding in (None, "", "base64"):
        try:
            return base64.b64decode(content, validate=True)
        except binascii.Error as e:
            raise ValueError(f"invalid base64 content: {e}") from None
    if isinstance(encoding, str) and encoding.lower() in ("utf-8", "utf8"):
        return content.encode("utf-8")
    raise ValueError(f"unsupported content encoding {encoding!r}")
