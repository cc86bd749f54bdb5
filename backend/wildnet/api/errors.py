"""JSON error bodies for the API: every failure carries ``detail`` and the request id."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wildnet.obs.logging import current_request_id

logger = logging.getLogger(__name__)


def get_request_id(request: Request, default: str = "unknown") -> str:
    rid = (
        getattr(request.state, "request_id", None)
        or current_request_id()
        or request.headers.get("X-Request-Id")
    )
    return rid or default


def error_response(
    request: Request,
    status_code: int,
    detail: Any,
    *,
    headers: Optional[Mapping[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    payload = {"detail": detail, **extra, "request_id": get_request_id(request)}
    return JSONResponse(status_code=status_code, content=payload, headers=dict(headers) if headers else None)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        return error_response(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        return error_response(request, 422, "validation_error", errors=exc.errors())

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        # Message text may echo profile data, so only the type is logged.
        logger.error("unhandled_error path=%s type=%s", request.url.path, type(exc).__name__)
        return error_response(request, 500, "internal_error")
