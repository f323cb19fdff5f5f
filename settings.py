from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TOKEN_ENV = "ENERGYGRID_TOKEN"
_BASE_URL_ENV = "ENERGYGRID_BASE_URL"
_MIN_INTERVAL_ENV = "ENERGYGRID_MIN_REQUEST_INTERVAL_MS"
_MAX_RETRIES_ENV = "ENERGYGRID_MAX_RETRIES"
_RETRY_DELAY_ENV = "ENERGYGRID_RETRY_DELAY_MS"
_MAX_BATCH_SIZE_ENV = "ENERGYGRID_MAX_BATCH_SIZE"
_TOTAL_DEVICES_ENV = "ENERGYGRID_TOTAL_DEVICES"
_BATCH_SIZE_ENV = "ENERGYGRID_BATCH_SIZE"
_TIMEOUT_ENV = "ENERGYGRID_TIMEOUT"
_MOCK_INTERVAL_ENV = "MOCK_MIN_REQUEST_INTERVAL_MS"
_MOCK_FAILURE_RATE_ENV = "MOCK_FAILURE_RATE"
_MOCK_SEED_ENV = "MOCK_RANDOM_SEED"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_TOKEN = "interview_token_123"
DEFAULT_BASE_URL = "http://localhost:3000"


@dataclass(frozen=True)
class Settings:
    """Mock server and logging settings."""

    token: str
    min_request_interval_ms: int
    failure_rate: float
    random_seed: Optional[int]
    log_level: str


@dataclass(frozen=True)
class ClientConfig:
    """Everything the aggregation client needs for one run."""

    base_url: str = DEFAULT_BASE_URL
    token: str = DEFAULT_TOKEN
    min_request_interval_ms: int = 1000
    max_retries: int = 3
    retry_delay_ms: int = 1000
    max_batch_size: int = 10
    total_devices: int = 500
    batch_size: int = 10
    timeout: float = 30.0


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_int_env(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float_env(name: str, default: float, minimum: float = 0.0) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_optional_int_env(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        token=_read_str_env(_TOKEN_ENV, DEFAULT_TOKEN),
        min_request_interval_ms=_read_int_env(_MOCK_INTERVAL_ENV, 1000, minimum=0),
        failure_rate=min(_read_float_env(_MOCK_FAILURE_RATE_ENV, 0.0), 1.0),
        random_seed=_read_optional_int_env(_MOCK_SEED_ENV),
        log_level=_read_log_level("INFO"),
    )


def load_client_config(
    base_url: Optional[str] = None,
    token: Optional[str] = None,
    min_request_interval_ms: Optional[int] = None,
    max_retries: Optional[int] = None,
    retry_delay_ms: Optional[int] = None,
    max_batch_size: Optional[int] = None,
    total_devices: Optional[int] = None,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> ClientConfig:
    """Explicit arguments win over environment variables, which win over defaults."""
    defaults = ClientConfig()
    url = base_url or _read_str_env(_BASE_URL_ENV, defaults.base_url)

    def pick(explicit, reader, name, default, **kwargs):
        return explicit if explicit is not None else reader(name, default, **kwargs)

    return ClientConfig(
        base_url=url.rstrip("/"),
        token=token or _read_str_env(_TOKEN_ENV, defaults.token),
        min_request_interval_ms=pick(
            min_request_interval_ms, _read_int_env, _MIN_INTERVAL_ENV, defaults.min_request_interval_ms, minimum=0
        ),
        max_retries=pick(max_retries, _read_int_env, _MAX_RETRIES_ENV, defaults.max_retries),
        retry_delay_ms=pick(
            retry_delay_ms, _read_int_env, _RETRY_DELAY_ENV, defaults.retry_delay_ms, minimum=0
        ),
        max_batch_size=pick(max_batch_size, _read_int_env, _MAX_BATCH_SIZE_ENV, defaults.max_batch_size),
        total_devices=pick(total_devices, _read_int_env, _TOTAL_DEVICES_ENV, defaults.total_devices),
        batch_size=pick(batch_size, _read_int_env, _BATCH_SIZE_ENV, defaults.batch_size),
        timeout=pick(timeout, _read_float_env, _TIMEOUT_ENV, defaults.timeout, minimum=0.001),
    )
