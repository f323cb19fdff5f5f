"""HTTP route definitions for the mock EnergyGrid API."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse

from app.simulator import TelemetrySimulator, build_default_simulator
from models.schemas import DeviceQuery, DeviceQueryResponse, ErrorResponse

QUERY_PATH = "/device/real/query"
MAX_DEVICES_PER_QUERY = 10

logger = logging.getLogger(__name__)

router = APIRouter()


def get_simulator() -> TelemetrySimulator:
    return build_default_simulator()


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.post(
    QUERY_PATH,
    response_model=DeviceQueryResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Real-time telemetry for up to ten devices.",
)
async def query_devices(
    query: DeviceQuery,
    timestamp: Optional[str] = Header(None),
    signature: Optional[str] = Header(None),
    simulator: TelemetrySimulator = Depends(get_simulator),
):
    if not timestamp or not signature:
        return error_response(status.HTTP_401_UNAUTHORIZED, "Missing timestamp or signature")
    if not simulator.verify_signature(QUERY_PATH, timestamp, signature):
        logger.warning("Rejected request with invalid signature", extra={"path": QUERY_PATH})
        return error_response(status.HTTP_401_UNAUTHORIZED, "Invalid signature")

    if not query.sn_list:
        return error_response(status.HTTP_400_BAD_REQUEST, "sn_list must not be empty")
    if len(query.sn_list) > MAX_DEVICES_PER_QUERY:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            f"sn_list cannot exceed {MAX_DEVICES_PER_QUERY} devices",
        )

    if not simulator.admit():
        return error_response(status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests")
    if simulator.should_fail():
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    return DeviceQueryResponse(data=[simulator.read(sn) for sn in query.sn_list])
