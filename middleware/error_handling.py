"""Global translation of errors into the `{timestamp, status, error, message, path}` body."""

import logfire

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from typing import Dict, List, Optional, Union

from models.helpers import utc_now
from security.errors import AuthError, RateLimited


def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_response(
    status_code: int,
    message: str,
    path: str,
    error: Optional[str] = None,
    validation_errors: Optional[Dict[str, Union[str, List[str]]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build the error body shared by the exception handlers and the middlewares."""
    content = {
        "timestamp": utc_now().isoformat(),
        "status": status_code,
        "error": error or _reason(status_code),
        "message": message,
        "path": path,
    }
    if validation_errors:
        content["validationErrors"] = validation_errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def rate_limited_response(exc: RateLimited) -> JSONResponse:
    """The 429 body `{status, error, message, retryAfter}` with its headers."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": exc.status_code,
            "error": exc.error,
            "message": exc.message,
            "retryAfter": exc.retry_after,
        },
        headers={
            "X-Rate-Limit-Remaining": "0",
            "Retry-After": str(exc.retry_after),
        },
    )


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that map every error to the common body shape."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        log = logfire.error if exc.status_code >= 500 else logfire.info
        log(
            "{error_type} on {method} {path}",
            error_type=type(exc).__name__,
            method=request.method,
            path=request.url.path,
            status_code=exc.status_code,
        )
        return error_response(
            exc.status_code,
            exc.message,
            request.url.path,
            error=exc.error,
            validation_errors=getattr(exc, "validation_errors", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        validation_errors: Dict[str, str] = {}
        for err in exc.errors():
            validation_errors.setdefault(_field_name(err.get("loc", ())), err.get("msg", "Invalid value"))
        return error_response(
            400,
            "Validation failed for request parameters",
            request.url.path,
            error="Validation Error",
            validation_errors=validation_errors,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else _reason(exc.status_code)
        return error_response(exc.status_code, message, request.url.path, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logfire.exception(
            "Unhandled error on {method} {path}",
            method=request.method,
            path=request.url.path,
        )
        return error_response(500, "An unexpected error occurred", request.url.path)
