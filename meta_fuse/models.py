"""Data models for the FUSE filesystem."""

import stat
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class FileAttributes:
    """Stat record as reported by the backend.

    Times are fractional seconds since the epoch. uid/gid are kept for
    completeness but never reach the kernel; the backend's identity space
    is not the local host's.
    """
    size: int
    mode: int
    mtime: float
    atime: float
    ctime: float
    nlink: int
    uid: int = 0
    gid: int = 0

    @property
    def is_dir(self) -> bool:
        return is_dir_mode(self.mode)

    @classmethod
    def from_json(cls, data: dict) -> "FileAttributes":
        return cls(
            size=int(data["size"]),
            mode=int(data["mode"]),
            mtime=float(data["mtime"]),
            atime=float(data["atime"]),
            ctime=float(data["ctime"]),
            nlink=int(data["nlink"]),
            uid=int(data.get("uid", 0)),
            gid=int(data.get("gid", 0)),
        )


@dataclass(frozen=True)
class ReadResult:
    """Payload of a backend read.

    Exactly how the bytes are delivered is up to the backend:
    - content: inline, encoded per content_encoding (base64 in practice)
    - source_path: a file readable on this host
    - webdav_url: remote location (informational, not used for reads)
    """
    size: int = 0
    content: Optional[str] = None
    content_encoding: Optional[str] = None
    source_path: Optional[str] = None
    webdav_url: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict) -> "ReadResult":
        return cls(
            size=int(data.get("size") or 0),
            content=_str_or_none(data.get("content")),
            content_encoding=_str_or_none(data.get("contentEncoding")),
            source_path=_str_or_none(data.get("sourcePath")),
            webdav_url=_str_or_none(data.get("webdavUrl")),
        )


def _str_or_none(value) -> Optional[str]:
    # Non-string fields are treated as absent
    return value if isinstance(value, str) else None


# Entries resolved from an inode, evaluated per request and never stored.

@dataclass(frozen=True)
class BackendEntry:
    """A path served by the backend."""
    path: str


@dataclass(frozen=True)
class SyntheticEntry:
    """A virtual file generated locally (only "diagnostic" exists today)."""
    kind: str


Entry = Union[BackendEntry, SyntheticEntry]


def is_dir_mode(mode: int) -> bool:
    """Check the directory bit of a mode word."""
    return bool(mode & stat.S_IFDIR)
