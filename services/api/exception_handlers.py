"""FastAPI exception handlers for r2gate errors."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from r2gate.exceptions import (
    FetchError,
    ObjectNotFoundError,
    R2GateError,
    StorageError,
)
from services.api.schemas import ErrorResponse


def status_for(exc: R2GateError) -> int:
    if isinstance(exc, ObjectNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, FetchError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, StorageError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def r2gate_exception_handler(request: Request, exc: R2GateError) -> JSONResponse:
    status_code = status_for(exc)
    logger.error(
        "r2gate exception on {path}: {type} - {message}",
        path=request.url.path,
        type=type(exc).__name__,
        message=str(exc),
        details=exc.details,
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=type(exc).__name__, message=exc.message, details=exc.details).model_dump(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled exception on {path}", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": type(exc).__name__,
            "message": str(exc),
        },
    )
