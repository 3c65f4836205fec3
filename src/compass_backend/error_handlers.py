"""Unified exception handling (ErrorResponse).

Every API error is returned as a stable JSON shape:
  {error, message, request_id, details}
so clients never have to branch between FastAPI's default {"detail": ...}
and domain errors.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from compass_backend.errors import CompassError
from compass_backend.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)

_HTTP_ERROR_KINDS: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    422: "validation_error",
    502: "upstream_error",
    503: "unavailable",
}


def _error_response(
    request: Request,
    *,
    status_code: int,
    error: str,
    message: str,
    details: object | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    payload = ErrorResponse(
        error=error,
        message=message,
        request_id=getattr(request.state, "request_id", None),
        details=details,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(payload, exclude_none=True),
        headers=dict(headers) if headers else None,
    )


async def _compass_error_handler(request: Request, exc: Exception) -> JSONResponse:
    err = cast(CompassError, exc)
    if err.status_code >= 500:
        logger.warning(
            "request failed request_id=%s kind=%s path=%s message=%s",
            getattr(request.state, "request_id", None),
            err.kind,
            request.url.path,
            err.message,
        )
    return _error_response(
        request,
        status_code=err.status_code,
        error=err.kind,
        message=err.message,
        details=err.details,
    )


async def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    detail = http_exc.detail

    message = str(detail)
    details: object | None = None
    if isinstance(detail, dict) and isinstance(detail.get("message"), str):
        # Convention: {'message': str, 'details': object}
        message = detail["message"]
        details = detail.get("details")
    elif isinstance(detail, (dict, list)):
        details = detail

    return _error_response(
        request,
        status_code=http_exc.status_code,
        error=_HTTP_ERROR_KINDS.get(http_exc.status_code, f"http_{http_exc.status_code}"),
        message=message,
        details=details,
        headers=getattr(http_exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(
        request,
        status_code=422,
        error="validation_error",
        message="Request validation error",
        details=cast(RequestValidationError, exc).errors(),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled exception request_id=%s method=%s path=%s",
        getattr(request.state, "request_id", None),
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return _error_response(
        request, status_code=500, error="internal_error", message="Internal server error"
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CompassError, _compass_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
