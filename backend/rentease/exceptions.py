"""Domain error taxonomy and the FastAPI handler that renders it.

Services raise these; routers let them propagate. The handler turns each one
into ``{"error": <kind>, "detail": <message>}`` with the kind's HTTP status,
and never exposes stack traces or internal identifiers.
"""

from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse


class RentEaseError(Exception):
    """Base class for all booking/ledger domain errors."""

    kind: str = "Error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(RentEaseError):
    """Referenced item, booking, or user does not exist."""

    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found", {"resource": resource})


class ForbiddenError(RentEaseError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidOperationError(RentEaseError):
    """Semantically disallowed action, e.g. booking your own item."""

    kind = "InvalidOperation"
    status_code = status.HTTP_400_BAD_REQUEST


class UnavailableError(RentEaseError):
    kind = "Unavailable"
    status_code = status.HTTP_409_CONFLICT


class DateConflictError(RentEaseError):
    kind = "DateConflict"
    status_code = status.HTTP_409_CONFLICT


class InsufficientFundsError(RentEaseError):
    kind = "InsufficientFunds"
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class InvalidTransitionError(RentEaseError):
    """Requested status change is not reachable from the current status."""

    kind = "InvalidTransition"
    status_code = status.HTTP_409_CONFLICT


class ValidationError(RentEaseError):
    """Malformed input that passed schema validation, e.g. reversed dates."""

    kind = "ValidationError"
    status_code = 422


async def rentease_error_handler(request: Request, exc: RentEaseError) -> JSONResponse:
    """Render a domain error as a tagged JSON body."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message},
    )
