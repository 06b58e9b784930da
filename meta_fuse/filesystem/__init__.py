"""
Meta-Fuse FUSE Filesystem — mixin composition.

Read-only view of the meta-fuse backend:
- /                 - Backend root (inode 1)
- /{path}           - Backend directories and files, inodes allocated on first sight
- /ERROR.txt        - Diagnostic file (inode 2), only while the API is failing

Caching:
- getattr results   - 30s TTL, keyed by path
- readdir listings  - 30s TTL, keyed by path
- file content      - never cached, every read re-fetches
"""

from .base import BaseMixin
from .directory import DirectoryMixin
from .inode import InodeMixin
from .read import ReadMixin


class MetaFuseFS(
    ReadMixin,         # open, read, release
    DirectoryMixin,    # lookup, opendir, readdir, releasedir
    InodeMixin,        # getattr, inode → entry/path resolution, cached stat
    BaseMixin,         # __init__, attributes, statfs, access, destroy (MUST be last)
):
    """Meta-Fuse FUSE Filesystem.

    Composed from domain-specific mixins. BaseMixin must be last in MRO
    so its __init__ runs first and sets up all shared state.
    """
    pass


__all__ = ["MetaFuseFS"]
