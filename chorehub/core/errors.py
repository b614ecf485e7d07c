"""Domain errors.

Every error the chore/redemption core can raise is an ``HTTPException``
carrying a stable machine-readable ``code`` next to the human-readable
message.  Services raise them before any write happens (or the request
transaction is rolled back by ``get_db``), so a failed command never leaves
partial ledger, status, or inventory changes behind.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class ChoreHubError(HTTPException):
    """Base class for structured domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "ERROR"

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=self.status_code, detail=detail)


class NotFound(ChoreHubError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class Forbidden(ChoreHubError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class InvalidStateTransition(ChoreHubError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_STATE_TRANSITION"


class ChoreFinalized(ChoreHubError):
    status_code = status.HTTP_409_CONFLICT
    code = "CHORE_FINALIZED"


class InsufficientPoints(ChoreHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INSUFFICIENT_POINTS"


class OutOfStock(ChoreHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "OUT_OF_STOCK"


class ValidationError(ChoreHubError):
    status_code = 422
    code = "VALIDATION_ERROR"


class Conflict(ChoreHubError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


async def chorehub_error_handler(request: Request, exc: ChoreHubError) -> JSONResponse:
    """Render a domain error as ``{"detail": ..., "code": ...}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )
