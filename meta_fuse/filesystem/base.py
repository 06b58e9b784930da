"""
BaseMixin — Shared state and core FUSE plumbing.

Owns the backend client, inode registry, both TTL caches and the health
monitor; builds EntryAttributes; answers statfs/access; tears down on
destroy.
"""

import logging
import stat
from typing import Optional

import pyfuse3

from ..api_client import MetaFuseClient
from ..config import FuseConfig
from ..health import ApiHealth
from ..inode_registry import DIAGNOSTIC_INODE, ROOT_INODE, InodeRegistry
from ..models import FileAttributes
from ..ttl_cache import TTLCache

log = logging.getLogger(__name__)


class BaseMixin(pyfuse3.Operations):
    """Shared state and core FUSE plumbing."""

    ROOT_INODE = ROOT_INODE
    DIAGNOSTIC_INODE = DIAGNOSTIC_INODE

    def __init__(self, config: Optional[FuseConfig] = None,
                 api: Optional[MetaFuseClient] = None):
        super().__init__()
        self.config = config or FuseConfig()

        # Backend client (synchronous request/response from each handler's view)
        self._api = api or MetaFuseClient(self.config.api_url, timeout=self.config.http_timeout)

        # Path ↔ inode, append-only
        self._inodes = InodeRegistry()

        # Independent caches keyed by path
        self._attr_cache: TTLCache[FileAttributes] = TTLCache(self.config.cache.attr_ttl, name="getattr")
        self._dir_cache: TTLCache[list[str]] = TTLCache(self.config.cache.dir_ttl, name="readdir")

        self._health = ApiHealth(
            threshold=self.config.health.error_threshold,
            api_url=self.config.api_url,
        )

    # ── Attribute construction ────────────────────────────────────────

    def _new_attr(self, inode: int) -> pyfuse3.EntryAttributes:
        attr = pyfuse3.EntryAttributes()
        attr.st_ino = inode
        attr.st_uid = self.config.uid
        attr.st_gid = self.config.gid
        attr.st_blksize = 512
        attr.entry_timeout = self.config.cache.entry_timeout
        attr.attr_timeout = self.config.cache.entry_timeout
        return attr

    def _make_attr(self, inode: int, attrs: FileAttributes) -> pyfuse3.EntryAttributes:
        """Convert a backend stat record into kernel attributes.

        Owner and permission bits come from config, not from the backend.
        """
        attr = self._new_attr(inode)
        if attrs.is_dir:
            attr.st_mode = stat.S_IFDIR | self.config.dir_perm
        else:
            attr.st_mode = stat.S_IFREG | self.config.file_perm
        attr.st_nlink = attrs.nlink
        attr.st_size = attrs.size
        attr.st_blocks = (attrs.size + 511) // 512
        attr.st_atime_ns = int(attrs.atime * 1e9)
        attr.st_mtime_ns = int(attrs.mtime * 1e9)
        attr.st_ctime_ns = int(attrs.ctime * 1e9)
        return attr

    def _make_kind_attr(self, inode: int, is_dir: bool) -> pyfuse3.EntryAttributes:
        """Attributes for an entry whose stat is unknown. Only the type is set."""
        attr = self._new_attr(inode)
        if is_dir:
            attr.st_mode = stat.S_IFDIR | self.config.dir_perm
            attr.st_nlink = 2
        else:
            attr.st_mode = stat.S_IFREG | self.config.file_perm
            attr.st_nlink = 1
        return attr

    def _diagnostic_attr(self) -> pyfuse3.EntryAttributes:
        """Attributes of ERROR.txt: read-only, epoch timestamps."""
        size = len(self._health.diagnostic_bytes())
        attr = self._new_attr(self.DIAGNOSTIC_INODE)
        attr.st_mode = stat.S_IFREG | 0o444
        attr.st_nlink = 1
        attr.st_size = size
        attr.st_blocks = (size + 511) // 512
        attr.st_atime_ns = 0
        attr.st_mtime_ns = 0
        attr.st_ctime_ns = 0
        return attr

    # ── Plumbing ──────────────────────────────────────────────────────

    async def statfs(self, ctx: pyfuse3.RequestContext) -> pyfuse3.StatvfsData:
        """Return filesystem stats. Read-only: nothing free."""
        s = pyfuse3.StatvfsData()
        s.f_bsize = 512
        s.f_frsize = 512
        s.f_blocks = 0
        s.f_bfree = 0
        s.f_bavail = 0
        s.f_files = len(self._inodes)
        s.f_ffree = 0
        s.f_favail = 0
        s.f_namemax = 255
        return s

    async def access(self, inode: int, mode: int, ctx: pyfuse3.RequestContext) -> bool:
        """Permission check. Always allow; the static mode bits are the policy."""
        return True

    async def flush(self, fh: int) -> None:
        pass

    async def destroy(self) -> None:
        """Clean up resources on unmount."""
        log.info("Destroying filesystem, cleaning up resources")
        await self._api.close()
        self._attr_cache.clear()
        self._dir_cache.clear()
