"""
Configuration management for meta-fuse.

Settings are resolved per field (highest → lowest):
  1. CLI flags / positional arguments
  2. Environment (FUSE_API_URL, PUID, PGID, FUSE_FILE_PERM, FUSE_DIR_PERM,
     FUSE_ALLOW_OTHER)
  3. ~/.config/meta-fuse/fuse.json (or --config)
  4. Built-in defaults

Permission bits are octal strings everywhere outside this module ("755").
"""

import fcntl
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_UID = 1000
DEFAULT_GID = 1000
DEFAULT_PERM = 0o755

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


# --- Data classes ---

@dataclass
class CacheConfig:
    """Attribute/listing cache lifetimes and kernel-side timeouts (seconds)."""
    attr_ttl: float = 30.0
    dir_ttl: float = 30.0
    entry_timeout: float = 1.0

@dataclass
class HealthConfig:
    """Consecutive backend failures before ERROR.txt is shown."""
    error_threshold: int = 3

@dataclass
class FuseConfig:
    """Full meta-fuse configuration."""
    api_url: str = DEFAULT_API_URL
    uid: int = DEFAULT_UID
    gid: int = DEFAULT_GID
    file_perm: int = DEFAULT_PERM
    dir_perm: int = DEFAULT_PERM
    allow_other: bool = True
    http_timeout: float = 30.0
    # How long to wait for the backend health probe before mounting anyway
    startup_wait: float = 60.0
    cache: CacheConfig = field(default_factory=CacheConfig)
    health: HealthConfig = field(default_factory=HealthConfig)


# --- Path helpers ---

def get_config_dir() -> Path:
    """Get meta-fuse config directory (~/.config/meta-fuse/)."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(xdg_config) / "meta-fuse"

def get_fuse_config_path() -> Path:
    """Get path to the optional fuse.json."""
    return get_config_dir() / "fuse.json"


# --- Value parsing ---

def parse_perm(value, source: str) -> int:
    """Parse permission bits given as an octal string ("755") or an int."""
    if isinstance(value, int):
        perm = value
    else:
        try:
            perm = int(str(value).strip(), 8)
        except ValueError:
            raise ValueError(f"{source}: invalid octal permission {value!r}") from None
    if not 0 <= perm <= 0o7777:
        raise ValueError(f"{source}: permission {oct(perm)} out of range")
    return perm

def parse_id(value, source: str) -> int:
    """Parse a numeric uid/gid."""
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{source}: invalid numeric id {value!r}") from None
    if ident < 0:
        raise ValueError(f"{source}: id must not be negative")
    return ident

def parse_bool(value, source: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"{source}: invalid boolean {value!r}")


# --- fuse.json ---

def read_fuse_config(path: Optional[Path] = None) -> Optional[dict]:
    """Read fuse.json. Returns None if not found or unreadable."""
    path = path or get_fuse_config_path()
    if not path.exists():
        return None
    try:
        with open(path, "r") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                return json.load(f)
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)
    except (json.JSONDecodeError, OSError) as e:
        log.warning(f"Could not read fuse config at {path}: {e}")
        return None


def _apply_file(config: FuseConfig, data: dict, source: str) -> None:
    """Overlay fuse.json values onto config."""
    if "api_url" in data:
        config.api_url = str(data["api_url"])
    if "uid" in data:
        config.uid = parse_id(data["uid"], f"{source}: uid")
    if "gid" in data:
        config.gid = parse_id(data["gid"], f"{source}: gid")
    if "file_perm" in data:
        config.file_perm = parse_perm(data["file_perm"], f"{source}: file_perm")
    if "dir_perm" in data:
        config.dir_perm = parse_perm(data["dir_perm"], f"{source}: dir_perm")
    if "allow_other" in data:
        config.allow_other = parse_bool(data["allow_other"], f"{source}: allow_other")
    if "http_timeout" in data:
        config.http_timeout = float(data["http_timeout"])
    if "startup_wait" in data:
        config.startup_wait = float(data["startup_wait"])

    cache = data.get("cache", {})
    config.cache = CacheConfig(
        attr_ttl=float(cache.get("attr_ttl", config.cache.attr_ttl)),
        dir_ttl=float(cache.get("dir_ttl", config.cache.dir_ttl)),
        entry_timeout=float(cache.get("entry_timeout", config.cache.entry_timeout)),
    )
    health = data.get("health", {})
    config.health = HealthConfig(
        error_threshold=int(health.get("error_threshold", config.health.error_threshold)),
    )


def _apply_env(config: FuseConfig, environ) -> None:
    """Overlay environment variables onto config."""
    if environ.get("FUSE_API_URL"):
        config.api_url = environ["FUSE_API_URL"]
    if environ.get("PUID"):
        config.uid = parse_id(environ["PUID"], "PUID")
    if environ.get("PGID"):
        config.gid = parse_id(environ["PGID"], "PGID")
    if environ.get("FUSE_FILE_PERM"):
        config.file_perm = parse_perm(environ["FUSE_FILE_PERM"], "FUSE_FILE_PERM")
    if environ.get("FUSE_DIR_PERM"):
        config.dir_perm = parse_perm(environ["FUSE_DIR_PERM"], "FUSE_DIR_PERM")
    if environ.get("FUSE_ALLOW_OTHER"):
        config.allow_other = parse_bool(environ["FUSE_ALLOW_OTHER"], "FUSE_ALLOW_OTHER")


# --- High-level config loading ---

def load_config(
    cli_api_url: Optional[str] = None,
    cli_uid: Optional[str] = None,
    cli_gid: Optional[str] = None,
    cli_allow_other: Optional[bool] = None,
    cli_startup_wait: Optional[float] = None,
    config_path: Optional[Path] = None,
    environ=None,
) -> FuseConfig:
    """Load FUSE config with per-field resolution.

    Priority:
      1. CLI arguments
      2. Environment
      3. fuse.json
      4. Defaults

    Raises ValueError for malformed numeric or boolean values.
    """
    environ = os.environ if environ is None else environ
    config = FuseConfig()

    file_path = config_path or get_fuse_config_path()
    file_data = read_fuse_config(file_path)
    if file_data:
        _apply_file(config, file_data, str(file_path))

    _apply_env(config, environ)

    if cli_api_url:
        config.api_url = cli_api_url
    if cli_uid is not None:
        config.uid = parse_id(cli_uid, "uid argument")
    if cli_gid is not None:
        config.gid = parse_id(cli_gid, "gid argument")
    if cli_allow_other is not None:
        config.allow_other = cli_allow_other
    if cli_startup_wait is not None:
        config.startup_wait = cli_startup_wait

    config.api_url = config.api_url.rstrip("/")
    return config
