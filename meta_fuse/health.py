"""
Backend health tracking.

Two states: HEALTHY and DEGRADED. The Nth consecutive backend failure
(N = error threshold) enters DEGRADED, the next success leaves it. While
DEGRADED the filesystem shows ERROR.txt at the mount root, rendered from
diagnostic_text().
"""

import logging
import threading
import time
from typing import Callable, Optional

log = logging.getLogger(__name__)

DIAGNOSTIC_FILENAME = "ERROR.txt"

_DIAGNOSTIC_TEMPLATE = """\
Meta-Fuse FUSE Driver - API Connection Error
=============================================

The FUSE driver is mounted, but the meta-fuse API is not responding.

Error Details:
- Consecutive failures: {count}
- Last error: {message}
- Timestamp: {timestamp}

Possible causes:
1. meta-fuse-core service is not running
2. API ({api_url}) is not accessible
3. Network connectivity issues

To resolve:
1. Check if meta-fuse is running: docker ps | grep meta-fuse
2. Check API health: curl {api_url}/api/fuse/health
3. Restart the container: docker restart meta-fuse

This {filename} file will disappear once the API is responding again.
"""


class ApiHealth:
    """Consecutive-failure counter for backend calls."""

    def __init__(self, threshold: int = 3, api_url: str = "http://localhost:3000",
                 clock: Callable[[], float] = time.time):
        self.threshold = threshold
        self.api_url = api_url
        self._clock = clock
        self._lock = threading.Lock()
        self._consecutive_errors = 0
        self._last_error_message = ""
        self._last_error_time: Optional[float] = None

    @property
    def consecutive_errors(self) -> int:
        with self._lock:
            return self._consecutive_errors

    def record_success(self) -> None:
        with self._lock:
            recovered = self._consecutive_errors >= self.threshold
            self._consecutive_errors = 0
        if recovered:
            log.info(f"API is responding again, {DIAGNOSTIC_FILENAME} removed")

    def record_error(self, message: str) -> None:
        with self._lock:
            self._consecutive_errors += 1
            self._last_error_message = message
            self._last_error_time = self._clock()
            count = self._consecutive_errors
        if count == self.threshold:
            log.error(f"API has failed {count} consecutive times. "
                      f"{DIAGNOSTIC_FILENAME} will be displayed.")

    def is_unhealthy(self) -> bool:
        with self._lock:
            return self._consecutive_errors >= self.threshold

    def diagnostic_text(self) -> str:
        """Render the ERROR.txt body. Same state, same text."""
        with self._lock:
            count = self._consecutive_errors
            message = self._last_error_message
            when = self._last_error_time
        return _DIAGNOSTIC_TEMPLATE.format(
            count=count,
            message=message,
            timestamp=int(when) if when is not None else 0,
            api_url=self.api_url,
            filename=DIAGNOSTIC_FILENAME,
        )

    def diagnostic_bytes(self) -> bytes:
        return self.diagnostic_text().encode("utf-8")
