"""Shared HTTP response models and error rendering."""

from __future__ import annotations

from typing import Generic, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .errors import CoreError
from .logging import get_logger

T = TypeVar("T")

logger = get_logger("http")


class HealthResponse(BaseModel):
    status: str = "ok"


class ResponseEnvelope(BaseModel, Generic[T]):
    """Standard success envelope carrying the payload and its trace id."""

    data: T
    trace_id: str | None = None


async def core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "http.request.rejected",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
        reason=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers or None,
        media_type="application/problem+json",
    )


def install_error_handlers(app: FastAPI) -> None:
    """Render every ``CoreError`` as a problem-details document."""

    app.add_exception_handler(CoreError, core_error_handler)  # type: ignore[arg-type]
