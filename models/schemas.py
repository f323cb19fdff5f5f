"""Pydantic schemas for the device query wire format."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class DeviceQuery(BaseModel):
    """Request body for ``POST /device/real/query``."""

    sn_list: List[str] = Field(..., description="Serial numbers to query.")


class DeviceTelemetry(BaseModel):
    """Telemetry entry for one device."""

    sn: str
    status: str
    power: Optional[Any] = Field(
        default=None, description="Power reading, usually a string such as '3.42 kW'."
    )
    last_updated: Optional[str] = None


class DeviceQueryResponse(BaseModel):
    """Successful query response."""

    data: List[DeviceTelemetry]


class ErrorResponse(BaseModel):
    """Error payload returned with non-2xx responses."""

    error: str
