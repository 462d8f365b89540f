"""Error taxonomy and the tagged result type shared by every service.

Validation and auth failures are raised before any store I/O. Store failures
are wrapped in StoreWriteError/StoreReadError so callers never see driver
exceptions. Client-state operations that apply optimistic changes return a
Result instead of raising, so the caller is forced to look at the outcome.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from libs.common.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class AppError(Exception):
    status_code = 400
    code = "APP_ERROR"

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(AppError):
    """Missing or out-of-range input, detected before any network call."""

    status_code = 422
    code = "VALIDATION_ERROR"


class AuthError(AppError):
    status_code = 401
    code = "AUTH_ERROR"


class PermissionDeniedError(AppError):
    status_code = 403
    code = "PERMISSION_DENIED"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransitionError(AppError):
    """A workflow state change that the state machine does not allow."""

    status_code = 409
    code = "INVALID_TRANSITION"


class WriteConflictError(AppError):
    """A conditional write found the document no longer in the expected state."""

    status_code = 409
    code = "WRITE_CONFLICT"


class StoreWriteError(AppError):
    status_code = 503
    code = "STORE_WRITE_FAILED"


class StoreReadError(AppError):
    status_code = 503
    code = "STORE_READ_FAILED"


class SnapshotParseError(StoreReadError):
    """A stored document could not be decoded into its domain shape."""

    code = "SNAPSHOT_PARSE_FAILED"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: AppError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def _error_body(exc: AppError) -> dict[str, Any]:
    body: dict[str, Any] = {"detail": exc.message, "code": exc.code}
    if exc.field:
        body["field"] = exc.field
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


def add_exception_handlers(app: FastAPI) -> None:
    """Register JSON handlers so domain errors never surface as 500s."""
    app.add_exception_handler(AppError, app_error_handler)
