from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from querytool.errors.codes import ErrorCode
from querytool.errors.exceptions import QueryToolError
from querytool.errors.mapper import map_error

log = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for the FastAPI application."""

    @app.exception_handler(QueryToolError)
    async def query_tool_error_handler(
        request: Request, exc: QueryToolError
    ) -> JSONResponse:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        status, retryable = map_error(exc.code)

        if status >= 500:
            log.warning(
                "Request failed",
                extra={
                    "code": exc.code.value,
                    "path": request.url.path,
                    "request_id": request_id,
                },
            )

        payload = {
            "error": {
                "code": exc.code.value,
                "message": exc.message,
                "details": exc.details,
                "retryable": retryable,
                "request_id": request_id,
                "extra": exc.extra or {},
            }
        }

        headers = {"X-Request-ID": request_id}
        if retryable:
            headers["Retry-After"] = "2"

        return JSONResponse(status_code=status, content=payload, headers=headers)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        log.exception(
            "Unhandled error",
            exc_info=exc,
            extra={"path": request.url.path, "request_id": request_id},
        )
        payload = {
            "error": {
                "code": ErrorCode.INTERNAL.value,
                "message": "internal error",
                "details": None,
                "retryable": False,
                "request_id": request_id,
                "extra": {},
            }
        }
        return JSONResponse(
            status_code=500, content=payload, headers={"X-Request-ID": request_id}
        )

    @app.exception_handler(HTTPException)
    async def http_exception_to_error_contract(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            return JSONResponse(status_code=exc.status_code, content=exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )
