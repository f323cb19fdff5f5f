"""Fleet-wide aggregation of device telemetry fetched batch by batch."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from models.records import DeviceIdentifier, DeviceRecord, DeviceStatus, FailedBatch, RunSummary
from services.batcher import generate_serial_numbers, partition
from services.errors import ConfigurationError, FetchError
from services.rate_limiter import RateLimiter
from services.requester import RetryingRequester
from services.signer import Signer
from services.transport import HttpxTransport, Transport
from settings import ClientConfig

logger = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_power(value: Any) -> Optional[float]:
    """Numeric power reading, or ``None`` when the value carries no usable number.

    Strings contribute their leading number, so ``"3.42 kW"`` reads as 3.42.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match is None:
            return None
        number = float(match.group(0))
    else:
        return None
    return number if math.isfinite(number) else None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Aggregator:
    """Drives every batch through the requester and folds the results."""

    def __init__(
        self,
        requester: RetryingRequester,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.requester = requester
        self._clock = clock

    def run(
        self,
        total_devices: int,
        batch_size: int,
        identifiers: Optional[Sequence[DeviceIdentifier]] = None,
    ) -> RunSummary:
        self._validate(total_devices, batch_size)
        if identifiers is None:
            identifiers = generate_serial_numbers(total_devices)
        batches = partition(identifiers, batch_size)

        summary = RunSummary(started_at=self._clock(), batches_total=len(batches))
        logger.info(
            "Starting aggregation of %d devices in %d batches",
            len(identifiers),
            len(batches),
            extra={"device_count": len(identifiers)},
        )

        for index, batch in enumerate(batches):
            try:
                records = self.requester.fetch(batch)
            except FetchError as exc:
                logger.error(
                    "Batch %d/%d failed",
                    index + 1,
                    len(batches),
                    extra={"batch_index": index, "reason": exc.error, "status_code": exc.status_code},
                )
                summary.failed_batches.append(
                    FailedBatch(batch_index=index, devices=list(batch), error=str(exc))
                )
                continue

            self.fold(summary, records)
            summary.batches_completed += 1
            logger.info(
                "Batch %d/%d fetched",
                index + 1,
                len(batches),
                extra={"batch_index": index, "device_count": len(records)},
            )

        self.finalize(summary)
        logger.info(
            "Aggregation finished",
            extra={
                "device_count": summary.total,
                "failed_batches": len(summary.failed_batches),
                "duration_ms": summary.duration_ms,
            },
        )
        return summary

    def fold(self, summary: RunSummary, records: Iterable[DeviceRecord]) -> RunSummary:
        """Add ``records`` to the running counts of ``summary``."""
        for record in records:
            summary.devices.append(record)
            summary.total += 1
            if record.status == DeviceStatus.online.value:
                summary.online += 1
            elif record.status == DeviceStatus.offline.value:
                summary.offline += 1
            power = parse_power(record.power)
            if power is not None:
                summary.total_power += power
        return summary

    def finalize(self, summary: RunSummary) -> RunSummary:
        if summary.total > 0:
            summary.average_power = round(summary.total_power / summary.total, 2)
            summary.total_power = round(summary.total_power, 2)
        summary.completed_at = self._clock()
        if summary.started_at is not None:
            elapsed = summary.completed_at - summary.started_at
            summary.duration_ms = int(elapsed.total_seconds() * 1000)
        return summary

    def _validate(self, total_devices: int, batch_size: int) -> None:
        if total_devices < 1:
            raise ConfigurationError(f"Total device count must be positive, got {total_devices}.")
        if batch_size < 1:
            raise ConfigurationError(f"Batch size must be a positive integer, got {batch_size}.")
        if batch_size > self.requester.max_batch_size:
            raise ConfigurationError(
                f"Batch size cannot exceed {self.requester.max_batch_size} devices, got {batch_size}."
            )


def build_aggregator(config: ClientConfig, transport: Optional[Transport] = None) -> Aggregator:
    """Factory that wires the aggregator with the default collaborators."""
    if transport is None:
        transport = HttpxTransport(base_url=config.base_url, timeout=config.timeout)
    requester = RetryingRequester(
        transport=transport,
        rate_limiter=RateLimiter(min_interval_ms=config.min_request_interval_ms),
        signer=Signer(),
        secret=config.token,
        max_retries=config.max_retries,
        retry_delay_ms=config.retry_delay_ms,
        max_batch_size=config.max_batch_size,
    )
    return Aggregator(requester)
