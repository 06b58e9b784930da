#!/usr/bin/env python3
"""
Meta-Fuse FUSE Driver

Mounts the meta-fuse virtual filesystem (served over HTTP) read-only.

Usage:
    meta-fuse /mnt/virtual [API_URL] [UID] [GID]

Environment:
    FUSE_API_URL      API URL (default: http://localhost:3000)
    PUID / PGID       File ownership (default: 1000)
    FUSE_FILE_PERM    File permissions in octal (default: 755)
    FUSE_DIR_PERM     Directory permissions in octal (default: 755)
    FUSE_ALLOW_OTHER  Mount with allow_other (default: true)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import pyfuse3
import trio

from .api_client import BackendError, MetaFuseClient
from .config import FuseConfig, load_config
from .filesystem import MetaFuseFS
from .safety import FSNAME, ensure_mountpoint, validate_mountpoint

log = logging.getLogger(__name__)

HEALTH_POLL_INTERVAL = 2.0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="meta-fuse",
        description="Mount the meta-fuse virtual filesystem (read-only)",
    )
    parser.add_argument(
        "mountpoint",
        help="Directory to mount the filesystem",
    )
    parser.add_argument(
        "api_url",
        nargs="?",
        help="meta-fuse API URL (default: $FUSE_API_URL or http://localhost:3000)",
    )
    parser.add_argument(
        "uid",
        nargs="?",
        help="User ID for file ownership (default: $PUID or 1000)",
    )
    parser.add_argument(
        "gid",
        nargs="?",
        help="Group ID for file ownership (default: $PGID or 1000)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to fuse.json (default: ~/.config/meta-fuse/fuse.json)",
    )
    parser.add_argument(
        "--wait",
        type=float,
        dest="startup_wait",
        help="Seconds to wait for the API before mounting anyway (default: 60)",
    )
    parser.add_argument(
        "--no-allow-other",
        action="store_false",
        dest="allow_other",
        default=None,
        help="Don't mount with allow_other",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


async def wait_for_api(api: MetaFuseClient, timeout: float,
                       interval: float = HEALTH_POLL_INTERVAL) -> bool:
    """Poll the health endpoint until it answers 2xx or timeout expires."""
    deadline = trio.current_time() + timeout
    while True:
        try:
            if await api.health_check():
                return True
            log.info("Waiting for meta-fuse API (health check failed)")
        except BackendError as e:
            log.info(f"Waiting for meta-fuse API ({e})")
        if trio.current_time() + interval > deadline:
            return False
        await trio.sleep(interval)


async def _probe_api(config: FuseConfig) -> bool:
    api = MetaFuseClient(config.api_url, timeout=min(config.http_timeout, 5.0))
    try:
        return await wait_for_api(api, config.startup_wait)
    finally:
        await api.close()


def build_fuse_options(config: FuseConfig, debug: bool = False) -> set[str]:
    options = set(pyfuse3.default_options)
    options.add("ro")
    options.add(f"fsname={FSNAME}")
    if config.allow_other:
        options.add("allow_other")
    if debug:
        options.add("debug")
    return options


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(
            cli_api_url=args.api_url,
            cli_uid=args.uid,
            cli_gid=args.gid,
            cli_allow_other=args.allow_other,
            cli_startup_wait=args.startup_wait,
            config_path=args.config,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    error = validate_mountpoint(args.mountpoint) or ensure_mountpoint(args.mountpoint)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)

    log.info(f"Connecting to API at: {config.api_url}")
    log.info(f"File ownership: uid={config.uid}, gid={config.gid}")
    log.info(f"File permissions: {config.file_perm:o} (files), {config.dir_perm:o} (directories)")

    if trio.run(_probe_api, config):
        log.info("Successfully connected to meta-fuse API")
    else:
        log.warning(f"API not ready after {config.startup_wait:g}s, mounting anyway")

    fs = MetaFuseFS(config)
    fuse_options = build_fuse_options(config, debug=args.debug)

    log.info(f"Mounting filesystem at: {args.mountpoint}")
    try:
        pyfuse3.init(fs, args.mountpoint, fuse_options)
    except RuntimeError as e:
        log.error(f"Mount failed: {e}")
        print(
            f"Error: Failed to mount filesystem: {e}\n"
            "\nPossible causes:\n"
            "1. Mount point does not exist or is not accessible\n"
            "2. FUSE module is not loaded (try: modprobe fuse)\n"
            "3. /etc/fuse.conf missing 'user_allow_other' option",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        trio.run(pyfuse3.main)
    except KeyboardInterrupt:
        log.info("Interrupted, unmounting...")
    finally:
        pyfuse3.close(unmount=True)
        log.info("Unmounted")


if __name__ == "__main__":
    main()
