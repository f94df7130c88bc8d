"""
shared/errors.py
Domain error hierarchy and the FastAPI handlers that render it.

Every error carries a machine-readable code, an HTTP status and a stable
message. Services raise these; routes never build HTTPExceptions themselves.

    DomainError
    +-- Unauthorized       401 (no actor) / 403 (actor lacks the role)
    +-- Forbidden          403
    +-- NotFound           404
    +-- AlreadyExists      409
    +-- InUse              409
    +-- InvalidReference   400
    +-- ValidationFailed   400
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainError(Exception):
    code: str = "DOMAIN_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class Unauthorized(DomainError):
    """Actor missing or not allowed to run the operation."""
    code = "UNAUTHORIZED"

    def __init__(self, message: str, authenticated: bool = False):
        super().__init__(message)
        self.authenticated = authenticated
        self.status_code = (
            status.HTTP_403_FORBIDDEN if authenticated else status.HTTP_401_UNAUTHORIZED
        )


class Forbidden(DomainError):
    """Actor is allowed the operation but not on this target."""
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyExists(DomainError):
    code = "ALREADY_EXISTS"
    status_code = status.HTTP_409_CONFLICT


class InUse(DomainError):
    """Delete refused because other records still reference the target."""
    code = "IN_USE"
    status_code = status.HTTP_409_CONFLICT


class InvalidReference(DomainError):
    code = "INVALID_REFERENCE"
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationFailed(DomainError):
    code = "VALIDATION_FAILED"
    status_code = status.HTTP_400_BAD_REQUEST


# ── Handlers ──────────────────────────────────────────────────

def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


def register_error_handlers(app: FastAPI) -> None:
    """Render DomainError subclasses as {detail, code, request_id}."""

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.message,
                "code": exc.code,
                "request_id": _request_id(request),
            },
            headers=headers,
        )
