"""
Domain exceptions and global exception handlers.

Every error response follows the same JSON envelope::

    {
        "error": true,
        "message": "<human-readable description>",
        "details": ...            # only when the error carries extra context
    }

Services raise the domain exceptions below and never import FastAPI's
HTTPException, so the business layer stays framework-agnostic.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────
# Domain exceptions  (raised by service layer, caught by handlers below)
# ────────────────────────────────────────────────────────────────────────────


class AppException(Exception):
    """Base exception for all application-level errors."""

    def __init__(self, status_code: int, message: str, details: Any = None):
        self.status_code = status_code
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundException(AppException):
    """Resource not found (404)."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            status_code=404,
            message=f"{resource} with id '{identifier}' not found",
        )


class ConflictException(AppException):
    """Uniqueness or referential constraint violated at the storage layer (409)."""

    def __init__(self, message: str):
        super().__init__(status_code=409, message=message)


class ValidationException(AppException):
    """Caller input violates a business precondition (422). Nothing was written."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(status_code=422, message=message, details=details)


class UpstreamFetchException(AppException):
    """
    A read required to compute a result failed entirely (503).

    ``source`` names the table (or other upstream) whose read failed, so
    logs and alerts can tell a broken fetch apart from an empty result.
    """

    def __init__(self, source: str, message: Optional[str] = None):
        self.source = source
        super().__init__(
            status_code=503,
            message=message or f"Could not load {source}. Please retry shortly.",
            details={"source": source},
        )


class PartialWriteException(AppException):
    """
    The first step of a two-step write committed but the second failed (500).

    ``details`` carries the identifiers of what was committed so the
    inconsistency can be repaired or retried.
    """

    def __init__(self, message: str, details: Any = None):
        super().__init__(status_code=500, message=message, details=details)


# ────────────────────────────────────────────────────────────────────────────
# IntegrityError translation
# ────────────────────────────────────────────────────────────────────────────

# PostgreSQL SQLSTATE codes for integrity violations.
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_CHECK_VIOLATION = "23514"
_NOT_NULL_VIOLATION = "23502"


def _sqlstate(exc: IntegrityError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_integrity_error(exc: IntegrityError, context: str) -> AppException:
    """
    Map a storage-layer ``IntegrityError`` onto a user-facing domain error.

    SQLite carries no SQLSTATE, so the driver message is inspected as a
    fallback.  ``context`` names the failed operation, e.g.
    ``"Monthly return could not be created"``.
    """
    code = _sqlstate(exc)
    text = str(exc.orig).lower() if exc.orig is not None else ""

    if code == _UNIQUE_VIOLATION or "unique" in text:
        return ConflictException(f"{context}: this record already exists.")
    if code == _FOREIGN_KEY_VIOLATION or "foreign key" in text:
        return ConflictException(
            f"{context}: it references a record that does not exist or was deleted."
        )
    if code == _CHECK_VIOLATION or "check constraint" in text:
        return ValidationException(f"{context}: the data violates a system rule.")
    if code == _NOT_NULL_VIOLATION or "not null" in text:
        return ValidationException(f"{context}: a required field is missing.")
    return ConflictException(f"{context}: a database constraint was violated.")


# ────────────────────────────────────────────────────────────────────────────
# FastAPI exception handler registration
# ────────────────────────────────────────────────────────────────────────────


def _error_body(message: str, details: Any = None) -> dict:
    body: dict = {"error": True, "message": message}
    if details is not None:
        body["details"] = details
    return body


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI application instance."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle domain-specific exceptions raised by the service layer."""
        headers = None
        if isinstance(exc, UpstreamFetchException):
            logger.error(
                "Upstream fetch failed (source=%s) on %s %s",
                exc.source,
                request.method,
                request.url.path,
            )
            retry_after = getattr(exc, "retry_after", None)
            if retry_after is not None:
                # Open circuit breaker: tell clients when to come back.
                headers = {"Retry-After": str(int(retry_after) + 1)}
        elif isinstance(exc, PartialWriteException):
            logger.error("Partial write on %s %s: %s", request.method, request.url.path, exc.details)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.details),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle standard HTTP exceptions (e.g. 404 from path-not-found)."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Return a 422 listing each invalid field and the reason."""
        errors = []
        for err in exc.errors():
            loc = " -> ".join(str(part) for part in err["loc"])
            errors.append({"field": loc, "message": err["msg"]})
        return JSONResponse(
            status_code=422,
            content=_error_body("Validation failed", errors),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected exceptions."""
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal Server Error. Please contact support."),
        )
