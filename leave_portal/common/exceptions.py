"""Custom exceptions and ``{success, error}`` envelope error handlers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all client-facing application exceptions → envelope JSON."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.errors = errors
        super().__init__(message)


class BadRequestException(AppException):
    """400 — missing or malformed request parameters."""

    def __init__(
        self,
        message: str = "The request is missing required parameters.",
        error_code: str = "invalid_request",
        errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        super().__init__(
            status_code=400,
            error_code=error_code,
            message=message,
            errors=errors,
        )


class UnauthorizedException(AppException):
    """401 — no valid session."""

    def __init__(
        self,
        message: str = "Authentication is required.",
        error_code: str = "unauthorized",
    ) -> None:
        super().__init__(status_code=401, error_code=error_code, message=message)


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(status_code=403, error_code="forbidden", message=message)


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_code="not_found",
            message=f"{entity_type} '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409 — unique-constraint / overlapping entry."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=409, error_code="conflict", message=message)


# ── Data-access failures (never shown to callers) ──────────────────

class DataAccessError(Exception):
    """Base for failures raised by the data-access gateway."""


class DatabaseUnavailableError(DataAccessError):
    """A pooled connection could not be obtained."""


class QueryExecutionError(DataAccessError):
    """A statement failed after a connection was obtained."""


# ── Envelope builder ────────────────────────────────────────────────

def _error_body(error_code: str, message: str, errors: Optional[dict] = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "error": error_code,
        "message": message,
    }
    if errors:
        body["errors"] = errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.errors),
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=400,
        content=_error_body(
            "invalid_request",
            "Request validation failed.",
            field_errors,
        ),
    )


async def _handle_rate_limited(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=_error_body("rate_limited", f"Too many requests: {exc.detail}."),
    )


async def _handle_unexpected(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body("internal_error", "An unexpected error occurred."),
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)              # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _handle_rate_limited)          # type: ignore[arg-type]
    app.add_exception_handler(DataAccessError, _handle_unexpected)
    app.add_exception_handler(Exception, _handle_unexpected)
