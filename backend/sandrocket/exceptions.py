"""
Structured exceptions and error responses for Sand Rocket.

Provides consistent error handling across the API with:
- Custom exception classes
- Structured error response format
- FastAPI exception handlers
"""

from typing import Any, Dict, Optional, List
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from sandrocket.logging_config import get_logger

logger = get_logger("sandrocket.error")


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # Location of error (e.g., ["body", "description"])
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g., "not_found", "reorder_failed")
    message: str  # Human-readable message
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class SandRocketException(Exception):
    """Base exception for all Sand Rocket errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(SandRocketException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class ForbiddenError(SandRocketException):
    """Caller is authenticated but lacks the required project role."""

    def __init__(self, message: str = "Not a member of this project"):
        super().__init__(
            message=message,
            error_code="forbidden",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class AuthError(SandRocketException):
    """Authentication failed; `error_code` says why."""

    def __init__(self, error_code: str, message: str):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ConflictError(SandRocketException):
    """A unique value is already taken."""

    def __init__(self, error_code: str, message: str):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
        )


class ValidationError(SandRocketException):
    """Request validation error."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class CrossEpicMoveDisabledError(SandRocketException):
    """Moving a task into another epic is switched off for this deployment."""

    def __init__(self, task_id: int, epic_id: int):
        super().__init__(
            message="Tasks cannot be moved between epics",
            error_code="cross_epic_move_disabled",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body", "epic_id"],
                "msg": f"Task {task_id} cannot move to epic {epic_id}",
                "type": "cross_epic_move",
            }],
        )


class CrossProjectMoveError(SandRocketException):
    """Cannot move a task into an epic of another project."""

    def __init__(self, source_project: int, target_project: int):
        super().__init__(
            message="Cannot move a task into an epic of a different project",
            error_code="cross_project_move",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
        self.source_project = source_project
        self.target_project = target_project


class ReorderFailedError(SandRocketException):
    """The position rewrite failed and was rolled back."""

    def __init__(self, task_id: int):
        super().__init__(
            message=f"Reordering task {task_id} failed; no positions were changed",
            error_code="reorder_failed",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        self.task_id = task_id


class InvalidInvitationError(SandRocketException):
    """Invitation token is unknown, used or expired."""

    def __init__(self):
        super().__init__(
            message="Invalid or expired invitation token",
            error_code="invalid_invitation",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class FileTooLargeError(SandRocketException):
    """Uploaded file exceeds the per-file limit."""

    def __init__(self, size_bytes: int, limit_bytes: int):
        super().__init__(
            message=(
                f"File size {size_bytes / (1024 * 1024):.1f}MB exceeds "
                f"the {limit_bytes / (1024 * 1024):.0f}MB limit"
            ),
            error_code="file_too_large",
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
        )


class StorageQuotaExceededError(SandRocketException):
    """Upload would push the project over its storage quota."""

    def __init__(self, used_bytes: int, limit_bytes: int):
        super().__init__(
            message=(
                f"Project storage limit reached ({used_bytes / (1024 * 1024):.1f}MB / "
                f"{limit_bytes / (1024 * 1024):.0f}MB). Delete some files first."
            ),
            error_code="storage_quota_exceeded",
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def sandrocket_exception_handler(request: Request, exc: SandRocketException) -> JSONResponse:
    """Handle SandRocketException and return structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render pydantic validation failures in the structured error format."""
    details = [
        ErrorDetail(
            loc=[str(part) for part in error.get("loc", ())],
            msg=error.get("msg", ""),
            type=error.get("type", "value_error"),
        )
        for error in exc.errors()
    ]
    fields = ", ".join(
        f"{'.'.join(d.loc[1:]) or 'field'}: {d.msg}" for d in details if d.loc
    )
    body = ErrorResponse(
        error="validation_error",
        message=f"Validation failed: {fields}",
        details=details,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(body),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "Something went wrong",
            "details": None,
        },
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(SandRocketException, sandrocket_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
