"""Error taxonomy and HTTP translation.

Learn: Services raise domain errors (NotFoundError, UnauthorizedError, ...)
and never think about status codes. classify_error() is a pure function
that maps any exception to an (ErrorKind, message) pair, and the handlers
installed by install_error_handlers() turn that pair into a JSON response.
There is no shared error-service object — everything here is stateless.

Ownership mismatches are raised as NotFoundError on purpose: a caller
cannot tell "someone else's document" from "no such document".
"""

import enum

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

logger = structlog.get_logger()


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class DocshelfError(Exception):
    """Base class for errors the API knows how to translate."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DocshelfError):
    """Malformed request body, multipart part, or JSON metadata."""

    kind = ErrorKind.VALIDATION
    default_message = "Invalid request"


class UnauthorizedError(DocshelfError):
    """Missing or invalid credentials or bearer token."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "Authentication required"


class NotFoundError(DocshelfError):
    """Missing resource — or one owned by somebody else."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class ConflictError(DocshelfError):
    """A unique field (email, token owner) is already taken."""

    kind = ErrorKind.CONFLICT
    default_message = "Resource already exists"


class InternalError(DocshelfError):
    """Storage or filesystem failure."""

    kind = ErrorKind.INTERNAL


_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


def status_for(kind: ErrorKind) -> int:
    return _STATUS[kind]


def classify_error(err: BaseException) -> tuple[ErrorKind, str]:
    """Map an exception to its error kind and a client-safe message."""
    if isinstance(err, DocshelfError):
        return err.kind, err.message
    if isinstance(err, IntegrityError):
        return ErrorKind.CONFLICT, "Resource already exists"
    if isinstance(err, RequestValidationError):
        return ErrorKind.VALIDATION, _describe_validation(err.errors())
    if isinstance(err, PydanticValidationError):
        return ErrorKind.VALIDATION, _describe_validation(err.errors())
    if isinstance(err, OSError):
        return ErrorKind.INTERNAL, "Storage error"
    return ErrorKind.INTERNAL, "Internal server error"


def _describe_validation(errors) -> str:
    parts = []
    for e in errors:
        loc = ".".join(str(p) for p in e.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {e.get('msg')}" if loc else str(e.get("msg")))
    return "; ".join(parts) or "Invalid request"


def error_response(err: BaseException) -> JSONResponse:
    kind, message = classify_error(err)
    headers = None
    if kind is ErrorKind.UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=status_for(kind),
        content={"detail": message},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register exception handlers that translate errors to responses."""

    async def handle_known(request: Request, exc: Exception) -> JSONResponse:
        return error_response(exc)

    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "docshelf.unhandled_error",
            path=request.url.path,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return error_response(exc)

    app.add_exception_handler(DocshelfError, handle_known)
    app.add_exception_handler(RequestValidationError, handle_known)
    app.add_exception_handler(IntegrityError, handle_known)
    app.add_exception_handler(Exception, handle_unexpected)
