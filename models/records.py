"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Sequence, Union

DeviceIdentifier = str
Batch = Sequence[DeviceIdentifier]


class DeviceStatus(str, Enum):
    """Operational states reported by the telemetry endpoint."""

    online = "Online"
    offline = "Offline"


@dataclass(frozen=True, slots=True)
class DeviceRecord:
    """Telemetry for a single device as returned by the query endpoint."""

    sn: DeviceIdentifier
    status: str
    power: Any = None
    last_updated: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Success:
    payload: Any
    status_code: int


@dataclass(frozen=True, slots=True)
class Failure:
    error: str
    status_code: Optional[int] = None


RequestOutcome = Union[Success, Failure]


@dataclass(slots=True)
class FailedBatch:
    """A batch that exhausted its retries, kept for operator follow-up."""

    batch_index: int
    devices: List[DeviceIdentifier]
    error: str


@dataclass(slots=True)
class RequestStats:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    retried_requests: int = 0


@dataclass
class RunSummary:
    """Aggregate produced by one run over the whole fleet."""

    total: int = 0
    online: int = 0
    offline: int = 0
    total_power: float = 0.0
    average_power: float = 0.0
    failed_batches: List[FailedBatch] = field(default_factory=list)
    devices: List[DeviceRecord] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    batches_total: int = 0
    batches_completed: int = 0
