"""Minimum-spacing rate limiter shared by every outbound request."""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Callable, Optional

from services.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL_MS = 1000


class RateLimiter:
    """Grants at most one request per ``min_interval_ms``.

    The elapsed-time check, the wait and the update of the last grant all
    happen under one lock, so concurrent callers queue behind each other and
    no two grants are ever closer than the interval.
    """

    def __init__(
        self,
        min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval_ms < 0:
            raise ConfigurationError("Minimum request interval must not be negative.")
        self.min_interval_ms = min_interval_ms
        self._clock = clock
        self._sleep = sleep
        self._last_grant: Optional[float] = None
        self._lock = Lock()

    @property
    def last_grant(self) -> Optional[float]:
        with self._lock:
            return self._last_grant

    def acquire(self) -> float:
        """Block until a request is permitted and return the grant time."""
        interval = self.min_interval_ms / 1000.0
        with self._lock:
            now = self._clock()
            if self._last_grant is not None:
                remaining = interval - (now - self._last_grant)
                while remaining > 0:
                    logger.debug(
                        "Waiting for rate limit window",
                        extra={"delay_ms": round(remaining * 1000)},
                    )
                    self._sleep(remaining)
                    now = self._clock()
                    remaining = interval - (now - self._last_grant)
            self._last_grant = now
            return now
