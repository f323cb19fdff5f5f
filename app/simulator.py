"""In-memory stand-in for the EnergyGrid telemetry backend."""

from __future__ import annotations

import hmac
import random
import time
from datetime import datetime, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, Optional

from models.records import DeviceStatus
from models.schemas import DeviceTelemetry
from services.signer import Signer
from settings import get_settings


class TelemetrySimulator:
    """Verifies signatures, enforces request spacing and fabricates readings."""

    def __init__(
        self,
        token: str,
        min_interval_ms: int = 1000,
        failure_rate: float = 0.0,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.token = token
        self.min_interval_ms = min_interval_ms
        self.failure_rate = failure_rate
        self._signer = Signer()
        self._random = random.Random(seed)
        self._clock = clock
        self._last_accepted: Optional[float] = None
        self._lock = Lock()

    def verify_signature(self, path: str, timestamp: str, signature: str) -> bool:
        expected = self._signer.sign(path, self.token, timestamp)
        return hmac.compare_digest(expected, signature.lower())

    def admit(self) -> bool:
        """Record an accepted request unless the previous one was too recent."""
        with self._lock:
            now = self._clock()
            if (
                self._last_accepted is not None
                and (now - self._last_accepted) * 1000 < self.min_interval_ms
            ):
                return False
            self._last_accepted = now
            return True

    def should_fail(self) -> bool:
        if self.failure_rate <= 0:
            return False
        with self._lock:
            return self._random.random() < self.failure_rate

    def read(self, sn: str) -> DeviceTelemetry:
        with self._lock:
            online = self._random.random() < 0.9
            power = self._random.uniform(0.5, 5.0) if online else 0.0
        return DeviceTelemetry(
            sn=sn,
            status=(DeviceStatus.online if online else DeviceStatus.offline).value,
            power=f"{power:.2f} kW",
            last_updated=datetime.now(timezone.utc).isoformat(),
        )


@lru_cache
def build_default_simulator() -> TelemetrySimulator:
    settings = get_settings()
    return TelemetrySimulator(
        token=settings.token,
        min_interval_ms=settings.min_request_interval_ms,
        failure_rate=settings.failure_rate,
        seed=settings.random_seed,
    )
