"""
Translate account-layer errors into HTTP responses.

Unknown accounts, bad passwords, failed challenges and active lockouts all
produce the same 401 body, so a client cannot tell them apart.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from dashauth.core.errors import (
    InternalError,
    NotFound,
    RateLimited,
    Unauthorized,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

GENERIC_AUTH_FAILURE = {"detail": "Invalid credentials"}


async def validation_failed_handler(request: Request, exc: ValidationFailed) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"errors": [{"field": e.field, "message": e.message} for e in exc.errors]},
    )


async def auth_failure_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=GENERIC_AUTH_FAILURE)


async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
    logger.error(f"Internal error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationFailed, validation_failed_handler)
    for error in (NotFound, Unauthorized, RateLimited):
        app.add_exception_handler(error, auth_failure_handler)
    app.add_exception_handler(InternalError, internal_error_handler)
