"""
Custom exception hierarchy for the goal engine API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

The engine itself never raises for validation problems; it returns a
`MutationResult`. Routers turn a failed result into one of these via
`error_from_result()`.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from app.services.goal_store import MutationResult, ResultCode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class GoalEngineException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class EmptyTitleError(GoalEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = ResultCode.EMPTY_TITLE


class GoalAlreadyActiveError(GoalEngineException):
    http_status = status.HTTP_409_CONFLICT
    code = ResultCode.GOAL_ALREADY_ACTIVE


class NoActiveGoalError(GoalEngineException):
    http_status = status.HTTP_404_NOT_FOUND
    code = ResultCode.NO_ACTIVE_GOAL


class InvalidPhaseError(GoalEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = ResultCode.INVALID_PHASE


class LogDateOutOfRangeError(GoalEngineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = ResultCode.DATE_OUT_OF_RANGE


class StoreNotHydratedError(GoalEngineException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_NOT_HYDRATED"

    def __init__(self):
        super().__init__(message="Persisted goal state has not finished loading.")


_RESULT_ERRORS: dict[str, type[GoalEngineException]] = {
    cls.code: cls
    for cls in (
        EmptyTitleError,
        GoalAlreadyActiveError,
        NoActiveGoalError,
        InvalidPhaseError,
        LogDateOutOfRangeError,
    )
}


def error_from_result(result: MutationResult, **details: Any) -> GoalEngineException:
    """Map a failed engine result onto its HTTP error."""
    error_cls = _RESULT_ERRORS.get(result.code or "", GoalEngineException)
    return error_cls(message=result.reason or "Operation failed.", details=details or None)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def goal_engine_exception_handler(request: Request, exc: GoalEngineException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
