"""
InodeMixin — Inode resolution and attribute lookup.

Handles getattr and the helpers every handler uses to turn an inode into
an entry and a path into a stat record.
"""

import errno
import logging
from typing import Optional

import pyfuse3

from ..api_client import BackendError
from ..models import BackendEntry, Entry, FileAttributes, SyntheticEntry

log = logging.getLogger(__name__)


class InodeMixin:
    """Inode resolution and attribute lookup."""

    async def getattr(self, inode: int, ctx: pyfuse3.RequestContext) -> pyfuse3.EntryAttributes:
        """Get file/directory attributes.

        Backend failures surface as ENOENT, never EIO.
        """
        entry = self._resolve_entry(inode)
        if entry is None:
            log.error(f"Inode {inode} not found")
            raise pyfuse3.FUSEError(errno.ENOENT)
        if isinstance(entry, SyntheticEntry):
            return self._diagnostic_attr()

        log.debug(f"getattr: ino={inode} path={entry.path}")
        attrs = await self._stat(entry.path, "getattr")
        return self._make_attr(inode, attrs)

    def _resolve_entry(self, inode: int) -> Optional[Entry]:
        """Map an inode to the entry it names right now.

        ERROR.txt only resolves while the backend is unhealthy.
        """
        if inode == self.DIAGNOSTIC_INODE:
            if self._health.is_unhealthy():
                return SyntheticEntry("diagnostic")
            return None
        path = self._inodes.path_of(inode)
        if path is None:
            return None
        return BackendEntry(path)

    def _path_of(self, inode: int) -> str:
        """Path for a backend inode, or ENOENT."""
        path = self._inodes.path_of(inode)
        if path is None:
            log.error(f"Inode {inode} not found")
            raise pyfuse3.FUSEError(errno.ENOENT)
        return path

    async def _stat(self, path: str, op: str) -> FileAttributes:
        """Cached stat, falling back to the backend.

        Records the backend outcome in the health monitor; any failure is
        reported to the caller as ENOENT.
        """
        cached = self._attr_cache.get(path)
        if cached is not None:
            return cached

        try:
            attrs = await self._api.getattr(path)
        except BackendError as e:
            self._health.record_error(f"{op} failed for {path}: {e}")
            if op == "lookup":
                log.debug(f"lookup failed for {path}: {e}")
            else:
                log.error(f"{op} failed for {path}: {e}")
            raise pyfuse3.FUSEError(errno.ENOENT) from None

        self._health.record_success()
        self._attr_cache.put(path, attrs)
        return attrs

    async def _peek_stat(self, path: str) -> Optional[FileAttributes]:
        """Best-effort stat for readdir entries.

        Prefers the attribute cache; otherwise stats the path once. A failed
        stat returns None (the entry is listed as a regular file) and is not
        counted against backend health.
        """
        cached = self._attr_cache.get(path)
        if cached is not None:
            return cached
        try:
            attrs = await self._api.getattr(path)
        except BackendError as e:
            log.debug(f"readdir: could not stat {path}, assuming file: {e}")
            return None
        self._health.record_success()
        self._attr_cache.put(path, attrs)
        return attrs
