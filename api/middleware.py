"""
Global middleware and exception handlers.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from auth.exceptions import AuthError, ValidationError

logger = logging.getLogger(__name__)


def _error_response(exc: AuthError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


def register_middleware(app: FastAPI) -> None:
    """Attach app-level middleware and map domain errors to JSON bodies."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.debug("%s %s — %.3fs", request.method, request.url.path, elapsed)
        return response

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.debug("Rejected body for %s: %s", request.url.path, exc.errors())
        return _error_response(ValidationError("Malformed request body"))
