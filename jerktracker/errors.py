"""
Error taxonomy and the FastAPI handlers that map it onto the response envelope.

Every handled error is rendered as ``{"error": str, "type": str, "details": {...}}``.
Operational errors are logged at warning level. Anything else is logged with
its stack and answered with a generic 500.
"""

import enum
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


class ErrorType(str, enum.Enum):
    """Machine-readable error tags returned in the envelope"""
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT_ERROR"
    BUSINESS_RULE = "BUSINESS_RULE_ERROR"
    INVALID_TRANSITION = "INVALID_TRANSITION_ERROR"
    MIGRATION = "MIGRATION_ERROR"
    DATABASE = "DATABASE_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class AppError(Exception):
    """
    Base class for errors that map to an API response.

    Attributes:
        message: Human-readable description, sent to the client as ``error``.
        type: ErrorType tag.
        status_code: HTTP status for the response.
        is_operational: False for failures that indicate a server-side fault.
        details: Optional structured context (field errors, counters, ...).
    """

    default_type: ErrorType = ErrorType.INTERNAL
    default_status_code: int = 500
    is_operational: bool = True

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.type = self.default_type
        self.status_code = self.default_status_code
        self.details: Dict[str, Any] = details or {}
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, type={self.type.value!r}, "
            f"status_code={self.status_code})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize into the response envelope."""
        body: Dict[str, Any] = {"error": self.message, "type": self.type.value}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    default_type = ErrorType.VALIDATION
    default_status_code = 400


class AuthenticationError(AppError):
    default_type = ErrorType.AUTHENTICATION
    default_status_code = 401

    def __init__(self, message: str = "Authentication required", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class AuthorizationError(AppError):
    default_type = ErrorType.AUTHORIZATION
    default_status_code = 403

    def __init__(self, message: str = "Insufficient permissions", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class NotFoundError(AppError):
    default_type = ErrorType.NOT_FOUND
    default_status_code = 404

    def __init__(self, resource: str = "Resource", **kwargs: Any) -> None:
        super().__init__(f"{resource} not found", **kwargs)


class ConflictError(AppError):
    default_type = ErrorType.CONFLICT
    default_status_code = 409


class BusinessRuleError(AppError):
    """A request that is well-formed but not allowed in the current state."""
    default_type = ErrorType.BUSINESS_RULE
    default_status_code = 400


class InvalidTransitionError(BusinessRuleError):
    default_type = ErrorType.INVALID_TRANSITION

    def __init__(self, current: str, requested: str, allowed: Any = ()) -> None:
        super().__init__(
            f"Cannot change order status from {current} to {requested}",
            details={
                "current": current,
                "requested": requested,
                "allowed": sorted(getattr(status, "value", status) for status in allowed),
            },
        )


class MigrationError(AppError):
    default_type = ErrorType.MIGRATION
    default_status_code = 500


class DatabaseError(AppError):
    default_type = ErrorType.DATABASE
    default_status_code = 500
    is_operational = False

    def __init__(self, message: str = "Database operation failed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


def _request_context(request: Request) -> Dict[str, Any]:
    return {"method": request.method, "path": request.url.path}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.is_operational:
        logger.warning(
            "Request failed",
            error=exc.message,
            type=exc.type.value,
            status_code=exc.status_code,
            **_request_context(request),
        )
    else:
        logger.error(
            "Request failed",
            error=exc.message,
            type=exc.type.value,
            cause=repr(exc.cause) if exc.cause else None,
            **_request_context(request),
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields: Dict[str, str] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        fields[location or "body"] = error.get("msg", "Invalid value")
    return await app_error_handler(
        request, ValidationError("Validation failed", details={"fields": fields})
    )


async def backend_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Storage backend failure", exc_info=exc, **_request_context(request))
    error = DatabaseError(cause=exc)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", exc_info=exc, **_request_context(request))
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "type": ErrorType.INTERNAL.value},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on the application"""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, backend_error_handler)
    app.add_exception_handler(RedisError, backend_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
