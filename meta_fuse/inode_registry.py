"""
Path ↔ inode registry.

The backend only speaks paths; the kernel only speaks inodes. Inodes are
handed out on first sight of a path and never recycled; the backend
catalog is not tracked for removals, so a vanished path simply keeps its
number until the process exits.
"""

import logging
import threading
from typing import Optional

import pyfuse3

log = logging.getLogger(__name__)

ROOT_INODE = pyfuse3.ROOT_INODE  # 1
DIAGNOSTIC_INODE = 2  # ERROR.txt, never allocated to a backend path
FIRST_DYNAMIC_INODE = DIAGNOSTIC_INODE + 1


def join_path(parent: str, name: str) -> str:
    """Join a parent path and a child name."""
    if parent == "/":
        return f"/{name}"
    return f"{parent}/{name}"


class InodeRegistry:
    """Append-only bidirectional map between paths and inodes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._path_to_inode: dict[str, int] = {"/": ROOT_INODE}
        self._inode_to_path: dict[int, str] = {ROOT_INODE: "/"}
        self._next_inode = FIRST_DYNAMIC_INODE

    def resolve(self, path: str) -> int:
        """Return the inode for path, allocating one on first sight."""
        with self._lock:
            inode = self._path_to_inode.get(path)
            if inode is not None:
                return inode
            inode = self._next_inode
            self._next_inode += 1
            self._path_to_inode[path] = inode
            self._inode_to_path[inode] = path
        log.debug(f"Allocated inode {inode} for {path}")
        return inode

    def path_of(self, inode: int) -> Optional[str]:
        """Return the path bound to inode, or None if never allocated."""
        with self._lock:
            return self._inode_to_path.get(inode)

    def __len__(self) -> int:
        with self._lock:
            return len(self._path_to_inode)
