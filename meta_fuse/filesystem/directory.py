"""
DirectoryMixin — Lookup and directory listing.

Handles lookup, opendir/releasedir and readdir. Listings come from the
directory cache or the backend; ERROR.txt is spliced into the root listing
while the backend is unhealthy.
"""

import errno
import logging

import pyfuse3

from ..api_client import BackendError
from ..health import DIAGNOSTIC_FILENAME
from ..inode_registry import join_path

log = logging.getLogger(__name__)


class DirectoryMixin:
    """Lookup and directory listing."""

    async def lookup(self, parent_inode: int, name: bytes, ctx: pyfuse3.RequestContext) -> pyfuse3.EntryAttributes:
        """Look up a directory entry by name."""
        try:
            name_str = name.decode("utf-8")
        except UnicodeDecodeError:
            log.error("Invalid UTF-8 in filename")
            raise pyfuse3.FUSEError(errno.ENOENT) from None

        if (parent_inode == self.ROOT_INODE and name_str == DIAGNOSTIC_FILENAME
                and self._health.is_unhealthy()):
            return self._diagnostic_attr()

        parent_path = self._inodes.path_of(parent_inode)
        if parent_path is None:
            log.error(f"Parent inode {parent_inode} not found")
            raise pyfuse3.FUSEError(errno.ENOENT)

        child_path = join_path(parent_path, name_str)
        log.debug(f"lookup: parent={parent_inode} name={name_str} -> {child_path}")

        attrs = await self._stat(child_path, "lookup")
        return self._make_attr(self._inodes.resolve(child_path), attrs)

    async def opendir(self, inode: int, ctx: pyfuse3.RequestContext) -> int:
        """Open a directory, return file handle."""
        self._path_of(inode)
        return inode  # Use inode as file handle

    async def releasedir(self, fh: int) -> None:
        """Release (close) a directory handle. No-op, inodes are the handles."""
        pass

    async def readdir(self, fh: int, start_id: int, token: pyfuse3.ReaddirToken) -> None:
        """Read directory contents starting at start_id.

        Entry order: ".", "..", ERROR.txt (root, unhealthy only), then the
        backend's children in backend order. next_id of entry i is i + 1, so
        an interrupted listing resumes where the kernel's buffer filled up.
        """
        path = self._path_of(fh)
        log.debug(f"readdir: ino={fh} path={path} offset={start_id}")

        names = await self._list_dir(path)

        dir_attrs = self._attr_cache.get(path)
        if dir_attrs is not None:
            self_attr = self._make_attr(fh, dir_attrs)
        else:
            self_attr = self._make_kind_attr(fh, is_dir=True)

        entries: list[tuple[str, pyfuse3.EntryAttributes]] = [
            (".", self_attr),
            ("..", self_attr),
        ]

        if fh == self.ROOT_INODE and self._health.is_unhealthy():
            entries.append((DIAGNOSTIC_FILENAME, self._diagnostic_attr()))

        for name in names:
            child_path = join_path(path, name)
            child_inode = self._inodes.resolve(child_path)
            attrs = await self._peek_stat(child_path)
            if attrs is not None:
                entries.append((name, self._make_attr(child_inode, attrs)))
            else:
                entries.append((name, self._make_kind_attr(child_inode, is_dir=False)))

        for idx, (name, attr) in enumerate(entries):
            if idx < start_id:
                continue
            if not pyfuse3.readdir_reply(token, name.encode("utf-8"), attr, idx + 1):
                break

    async def _list_dir(self, path: str) -> list[str]:
        """Child names of path from the listing cache or the backend."""
        cached = self._dir_cache.get(path)
        if cached is not None:
            return cached

        try:
            names = await self._api.readdir(path)
        except BackendError as e:
            self._health.record_error(f"readdir failed for {path}: {e}")
            log.error(f"readdir failed for {path}: {e}")
            raise pyfuse3.FUSEError(errno.ENOENT) from None

        self._health.record_success()
        self._dir_cache.put(path, names)
        return names
