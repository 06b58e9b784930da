"""
Safety fences for meta-fuse.

Mountpoint validation and detection of FUSE mounts already sitting on the
target directory.
"""

import logging
import os
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

FSNAME = "meta-fuse"

# System paths that must never be used as mountpoints
BLOCKED_PATHS = frozenset({
    "/", "/home", "/etc", "/usr", "/var", "/tmp", "/boot",
    "/bin", "/sbin", "/lib", "/lib64", "/dev", "/proc", "/sys",
    "/root", "/opt", "/srv", "/run",
})


def find_all_fuse_mounts(mounts_file: Path = Path("/proc/mounts")) -> list[dict]:
    """Find FUSE mounts on the system.

    Returns list of {"source": str, "mountpoint": str, "fstype": str,
                     "is_ours": bool}.
    """
    mounts = []
    try:
        for line in mounts_file.read_text().splitlines():
            parts = line.split()
            if len(parts) >= 3 and "fuse" in parts[2].lower() and parts[2] != "fusectl":
                mounts.append({
                    "source": parts[0],
                    "mountpoint": parts[1],
                    "fstype": parts[2],
                    "is_ours": parts[0] == FSNAME,
                })
    except OSError:
        pass
    return mounts


def validate_mountpoint(path: str) -> Optional[str]:
    """Validate a mountpoint path. Returns error message or None if OK."""
    resolved = os.path.realpath(path)

    if resolved in BLOCKED_PATHS:
        return (
            f"Refusing to mount at {resolved} — this is a system directory.\n"
            f"Use a dedicated empty directory instead, e.g. /mnt/virtual"
        )

    for m in find_all_fuse_mounts():
        if os.path.realpath(m["mountpoint"]) == resolved:
            if m["is_ours"]:
                return (
                    f"{resolved} already has a meta-fuse mount active.\n"
                    f"Unmount first: fusermount -u {resolved}"
                )
            return (
                f"{resolved} is already a FUSE mount ({m['source']}, type {m['fstype']}).\n"
                f"Choose a different path, or unmount the existing mount first."
            )

    if os.path.exists(resolved) and not os.path.isdir(resolved):
        return f"{resolved} exists and is not a directory."

    return None


def ensure_mountpoint(path: str) -> Optional[str]:
    """Create mountpoint directory if needed. Returns error message or None."""
    if os.path.isdir(path):
        return None

    try:
        os.makedirs(path, exist_ok=True)
        log.info(f"Created mountpoint {path}")
        return None
    except PermissionError:
        return (
            f"Cannot create {path} — permission denied.\n"
            f"\n"
            f"Try:\n"
            f"  sudo mkdir -p {path}\n"
            f"  sudo chown $USER {path}"
        )
    except OSError as e:
        return f"Cannot create {path}: {e}"
