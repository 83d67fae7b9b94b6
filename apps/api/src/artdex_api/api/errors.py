from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from artdex_api.domain.errors import AppError, FieldErrors, add_field_error

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
    )


def _request_field_errors(exc: RequestValidationError) -> FieldErrors:
    errors: FieldErrors = {}
    for error in exc.errors():
        # Drop the "body"/"query" prefix so keys read like the artist field errors.
        location = [str(part) for part in error.get("loc", ())[1:]] or ["request"]
        add_field_error(errors, ".".join(location), str(error.get("msg", "Invalid value")))
    return errors


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "app_error",
                extra={"path": request.url.path, "error_code": exc.code},
            )
        return error_response(exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "request_invalid",
            "Request is invalid",
            {"errors": _request_field_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        """Return the error envelope so responses still pass through CORS middleware."""
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            extra={
                "path": request.url.path,
                "method": request.method,
                "origin": request.headers.get("origin"),
            },
        )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_server_error",
            "An internal server error occurred",
        )
