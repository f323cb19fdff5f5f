from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router
from app.simulator import build_default_simulator
from logging_config import configure_logging
from models.schemas import ErrorResponse


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    build_default_simulator()
    try:
        yield
    finally:
        build_default_simulator.cache_clear()


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    message = first.get("msg", "Invalid request body")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=message).model_dump(),
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Mock EnergyGrid API",
        description="Signed, rate-limited device telemetry endpoint for local runs.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    return app

app = create_app()
