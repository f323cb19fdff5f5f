"""Exceptions raised by the request-orchestration services."""

from __future__ import annotations

from typing import Optional


class AggregatorError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(AggregatorError, ValueError):
    """Invalid run configuration, detected before any request is sent."""


class BatchValidationError(AggregatorError, ValueError):
    """A batch is empty or larger than the endpoint accepts."""


class TransportError(AggregatorError):
    """The request could not be completed at the network level."""


class MalformedResponseError(TransportError):
    """The server answered with a body that could not be interpreted."""


class FetchError(AggregatorError):
    """A batch could not be fetched after all permitted attempts."""

    def __init__(self, error: str, status_code: Optional[int] = None, attempts: int = 0) -> None:
        self.error = error
        self.status_code = status_code
        self.attempts = attempts
        status = f"HTTP {status_code}" if status_code is not None else "no response"
        super().__init__(f"Request failed: {error} ({status})")
