"""
skate.api.errors — Exception → HTTP mapping
=============================================

Every :class:`SkateError` carries its own status code, so one handler
covers them all.  Request-body validation failures are reported as 400
with the same ``{"detail", "error"}`` shape instead of FastAPI's 422, and
so are the framework's own HTTP errors (auth failures, unknown routes).
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from skate.engine.errors import SkateError

logger = logging.getLogger(__name__)

HTTP_ERROR_KINDS = {
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
}


def _format_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


async def _skate_error_handler(request: Request, exc: SkateError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _format_validation(exc)
    logger.info("%s %s invalid body: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=400,
        content={"detail": message, "error": "ValidationError"},
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": HTTP_ERROR_KINDS.get(exc.status_code, "HTTPError")},
        headers=exc.headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SkateError, _skate_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
