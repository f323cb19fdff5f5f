"""Signed, rate-limited batch fetches with exponential-backoff retries."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from threading import Lock
from typing import Callable, List

from pydantic import ValidationError

from models.records import Batch, DeviceRecord, Failure, RequestOutcome, RequestStats, Success
from models.schemas import DeviceQuery, DeviceQueryResponse, ErrorResponse
from services.errors import (
    BatchValidationError,
    ConfigurationError,
    FetchError,
    MalformedResponseError,
    TransportError,
)
from services.rate_limiter import RateLimiter
from services.signer import Signer, current_timestamp
from services.transport import Transport, TransportResponse

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_PATH = "/device/real/query"
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_MAX_BATCH_SIZE = 10


def backoff_delay(attempt: int, base_delay_ms: int) -> int:
    """Delay in milliseconds to wait after failed attempt number ``attempt``."""
    return base_delay_ms * 2 ** (attempt - 1)


def is_retryable(outcome: Failure) -> bool:
    """Network failures, 429 and 5xx are transient; every other status is final."""
    status = outcome.status_code
    return status is None or status == 429 or status >= 500


class RetryingRequester:
    """Issues one logical batch fetch, retrying transient failures."""

    def __init__(
        self,
        transport: Transport,
        rate_limiter: RateLimiter,
        signer: Signer,
        secret: str,
        endpoint_path: str = DEFAULT_ENDPOINT_PATH,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        sleep: Callable[[float], None] = time.sleep,
        timestamp_factory: Callable[[], str] = current_timestamp,
    ) -> None:
        if max_retries < 1:
            raise ConfigurationError("max_retries must be at least 1.")
        if max_batch_size < 1:
            raise ConfigurationError("max_batch_size must be at least 1.")
        if retry_delay_ms < 0:
            raise ConfigurationError("retry_delay_ms must not be negative.")
        if not secret:
            raise ConfigurationError("A shared secret is required to sign requests.")
        if not endpoint_path:
            raise ConfigurationError("endpoint_path must not be empty.")
        self.transport = transport
        self.rate_limiter = rate_limiter
        self.signer = signer
        self.endpoint_path = endpoint_path
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.max_batch_size = max_batch_size
        self._secret = secret
        self._sleep = sleep
        self._timestamp_factory = timestamp_factory
        self._stats = RequestStats()
        self._stats_lock = Lock()

    @property
    def stats(self) -> RequestStats:
        """Snapshot of the request counters."""
        with self._stats_lock:
            return replace(self._stats)

    def fetch(self, batch: Batch) -> List[DeviceRecord]:
        devices = self._validate(batch)
        body = DeviceQuery(sn_list=devices).model_dump_json().encode("utf-8")

        attempt = 0
        while True:
            attempt += 1
            self._increment("total_requests")
            outcome = self._attempt(body)

            if isinstance(outcome, Success):
                self._increment("successful_requests")
                return outcome.payload

            if is_retryable(outcome) and attempt < self.max_retries:
                self._increment("retried_requests")
                delay_ms = backoff_delay(attempt, self.retry_delay_ms)
                logger.warning(
                    "Attempt %d failed: %s. Retrying in %dms",
                    attempt,
                    outcome.error,
                    delay_ms,
                    extra={
                        "attempt": attempt,
                        "status_code": outcome.status_code,
                        "delay_ms": delay_ms,
                        "device_count": len(devices),
                    },
                )
                self._sleep(delay_ms / 1000.0)
                continue

            self._increment("failed_requests")
            logger.error(
                "Giving up on batch after %d attempt(s): %s",
                attempt,
                outcome.error,
                extra={"attempt": attempt, "status_code": outcome.status_code},
            )
            raise FetchError(outcome.error, outcome.status_code, attempts=attempt)

    def _validate(self, batch: Batch) -> List[str]:
        devices = list(batch)
        if not devices:
            raise BatchValidationError("Batch must contain at least one device.")
        if len(devices) > self.max_batch_size:
            raise BatchValidationError(
                f"Batch size cannot exceed {self.max_batch_size} devices (got {len(devices)})."
            )
        return devices

    def _attempt(self, body: bytes) -> RequestOutcome:
        self.rate_limiter.acquire()
        timestamp = self._timestamp_factory()
        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
            "timestamp": timestamp,
            "signature": self.signer.sign(self.endpoint_path, self._secret, timestamp),
        }
        try:
            response = self.transport.send(self.endpoint_path, body, headers)
            return self._interpret(response)
        except TransportError as exc:
            return Failure(error=str(exc), status_code=None)

    @staticmethod
    def _interpret(response: TransportResponse) -> RequestOutcome:
        status = response.status_code
        if 200 <= status < 300:
            try:
                parsed = DeviceQueryResponse.model_validate_json(response.body)
            except ValidationError as exc:
                raise MalformedResponseError(
                    f"Failed to parse response: {response.body[:200]!r}"
                ) from exc
            records = [
                DeviceRecord(
                    sn=item.sn,
                    status=item.status,
                    power=item.power,
                    last_updated=item.last_updated,
                )
                for item in parsed.data
            ]
            return Success(payload=records, status_code=status)

        try:
            error = ErrorResponse.model_validate_json(response.body).error
        except ValidationError:
            error = "Unknown error"
        return Failure(error=error, status_code=status)

    def _increment(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)
