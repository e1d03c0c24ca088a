"""
Exception handlers mapping domain errors onto HTTP responses.

Body shape: ``{"code": ..., "detail": ...}``; client-caused errors also
carry ``"error"`` with the underlying message.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from spacehub.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    LimitExceededError,
    NotFoundError,
    SpaceHubError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# Most specific class first
ERROR_STATUS = (
    (ConflictError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (LimitExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (InternalError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: SpaceHubError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(exc: SpaceHubError) -> dict:
    body = {"code": exc.code, "detail": exc.user_message}
    if exc.expose_error:
        body["error"] = str(exc)
    return body


async def spacehub_error_handler(request: Request, exc: SpaceHubError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc)

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=status_code, content=error_body(exc), headers=headers)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    internal = InternalError(str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(internal),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SpaceHubError, spacehub_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
