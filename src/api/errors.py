"""
Exception handlers.

Domain errors become ``{"detail": ..., "kind": ...}`` with the status the
error class declares.  Anything else is logged with its traceback and
answered with a generic 500 so internals never reach the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.domain.errors import DomainError

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "kind": "internal"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
