"""Partitioning of device identifiers into endpoint-sized batches."""

from __future__ import annotations

from typing import List, Sequence

from models.records import DeviceIdentifier
from services.errors import ConfigurationError


def generate_serial_numbers(count: int) -> List[DeviceIdentifier]:
    """Serial numbers ``SN-000`` .. ``SN-<count-1>`` for the default fleet."""
    return [f"SN-{index:03d}" for index in range(count)]


def partition(identifiers: Sequence[DeviceIdentifier], size: int) -> List[List[DeviceIdentifier]]:
    """Split ``identifiers`` into contiguous chunks of at most ``size``."""
    if size < 1:
        raise ConfigurationError(f"Batch size must be a positive integer, got {size}.")
    return [list(identifiers[start : start + size]) for start in range(0, len(identifiers), size)]
