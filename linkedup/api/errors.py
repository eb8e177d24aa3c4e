"""Maps domain errors onto HTTP statuses; every error body carries the request id."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from linkedup.api.request_id import get_request_id
from linkedup.domain.common.exceptions import (
    Forbidden,
    InvalidArgument,
    LinkedUpError,
    NotAuthenticated,
    NotFound,
    RepositoryError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotAuthenticated, status.HTTP_401_UNAUTHORIZED),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (RepositoryError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
)


def status_for(exc: LinkedUpError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {"detail": exc.detail, "request_id": rid}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {"detail": "validation_error", "errors": jsonable_encoder(exc.errors()), "request_id": rid}
        return JSONResponse(status_code=422, content=payload)

    @app.exception_handler(LinkedUpError)
    async def domain_exc_handler(request: Request, exc: LinkedUpError):  # type: ignore[override]
        rid = get_request_id(request)
        code = status_for(exc)
        if isinstance(exc, RepositoryError):
            logger.error("repository_error", extra={"operation": exc.operation}, exc_info=exc)
        return JSONResponse(status_code=code, content={"detail": exc.reason, "request_id": rid})
