from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest

from services.rate_limiter import RateLimiter
from services.requester import RetryingRequester
from services.signer import Signer
from services.transport import TransportResponse


def ok(sn_list: List[str], status: str = "Online", power: Any = "1.50 kW") -> TransportResponse:
    data = [
        {"sn": sn, "status": status, "power": power, "last_updated": "2024-01-01T00:00:00Z"}
        for sn in sn_list
    ]
    return TransportResponse(status_code=200, body=json.dumps({"data": data}).encode("utf-8"))


def error(status_code: int, message: Optional[str] = None) -> TransportResponse:
    body = json.dumps({"error": message}).encode("utf-8") if message else b"<html>oops</html>"
    return TransportResponse(status_code=status_code, body=body)


class ScriptedTransport:
    """Replays queued responses, or asks ``handler`` for one per request."""

    def __init__(
        self,
        responses: Optional[List[Any]] = None,
        handler: Optional[Callable[[List[str]], Any]] = None,
    ) -> None:
        self.responses = list(responses or [])
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def send(self, path: str, body: bytes, headers: Mapping[str, str]) -> TransportResponse:
        sn_list = json.loads(body)["sn_list"]
        self.calls.append({"path": path, "sn_list": sn_list, "headers": dict(headers), "body": body})
        result = self.handler(sn_list) if self.handler else self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backoff_sleeps() -> List[float]:
    return []


@pytest.fixture()
def make_requester(clock: FakeClock, backoff_sleeps: List[float]):
    counter = iter(range(1_700_000_000_000, 1_800_000_000_000))

    def backoff(seconds: float) -> None:
        backoff_sleeps.append(seconds)
        clock.now += seconds

    def factory(transport, **overrides) -> RetryingRequester:
        params: Dict[str, Any] = {
            "transport": transport,
            "rate_limiter": RateLimiter(min_interval_ms=1000, clock=clock, sleep=clock.sleep),
            "signer": Signer(),
            "secret": "interview_token_123",
            "sleep": backoff,
            "timestamp_factory": lambda: str(next(counter)),
        }
        params.update(overrides)
        return RetryingRequester(**params)

    return factory
