"""Application exceptions rendered as the JSON response envelope."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """
    Base exception for every error the API reports to clients.

    4xx errors are rendered with ``status: "fail"`` and 5xx errors with
    ``status: "error"``. Extensions are merged into the response body.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize the error.

        Args:
            status_code: HTTP status code
            message: Human-readable explanation shown to the client
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.message = message
        self.extensions = extensions or {}

        self.body = {
            "status": "fail" if 400 <= status_code < 500 else "error",
            "message": message,
        }
        self.body.update(self.extensions)

        super().__init__(status_code=status_code, detail=message, headers=headers)


class ValidationError(AppError):
    """Exception for malformed client input."""

    def __init__(
        self,
        message: str = "The request data failed validation",
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(status_code=400, message=message, extensions=extensions)

    @classmethod
    def from_errors(cls, errors: Iterable[Mapping[str, Any]]) -> "ValidationError":
        """Build from pydantic-style error dicts (``loc`` and ``msg``)."""
        violations = [
            {
                "path": ".".join(str(part) for part in error.get("loc", ())),
                "message": error.get("msg", "Invalid value"),
            }
            for error in errors
        ]
        message = "; ".join(f"{v['path']}: {v['message']}" for v in violations) or "Invalid request"
        return cls(message, errors=violations)


class AuthenticationError(AppError):
    """Exception for authentication errors."""

    def __init__(self, message: str = "Authentication credentials are required"):
        super().__init__(
            status_code=401,
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundError(AppError):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"No {resource_type} found"
            if resource_id:
                message += f" with ID '{resource_id}'"

        extensions = {}
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(status_code=404, message=message, extensions=extensions)


class ConflictError(AppError):
    """Exception for unique constraint violations."""

    def __init__(
        self,
        message: str = "The request conflicts with an existing resource",
        conflicting_fields: Optional[Dict[str, Any]] = None,
    ):
        extensions = {}
        if conflicting_fields:
            extensions["conflicting_fields"] = conflicting_fields

        super().__init__(status_code=409, message=message, extensions=extensions)


class UpstreamError(AppError):
    """Exception raised when a collaborator (cloud storage, filesystem) fails."""

    def __init__(self, message: str = "An upstream service failed", service: Optional[str] = None):
        extensions = {}
        if service:
            extensions["service"] = service

        super().__init__(status_code=502, message=message, extensions=extensions)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Exception handler for application errors.

    Args:
        request: FastAPI request object
        exc: Application error

    Returns:
        JSONResponse: envelope formatted response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.body,
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert FastAPI request validation failures into 400 envelopes."""
    return await app_error_handler(request, ValidationError.from_errors(exc.errors()))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to the error envelope.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: envelope formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        extra={"error_id": error_id, "path": request.url.path},
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content={
            "status": "error",
            "message": "An unexpected error occurred while processing the request",
            "error_id": error_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
