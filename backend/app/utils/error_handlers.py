"""
Centralized error handling and user-friendly error messages.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict | None = None,
        errors: list[dict] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input. Carries a field-level error list."""
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        errors: list[dict] | None = None,
        details: dict | None = None,
    ):
        if errors is None and field:
            errors = [{"field": field, "message": message}]
        super().__init__(message, status_code=400, details=details, errors=errors)


class InvalidTransitionError(ValidationError):
    """Requested status change is not allowed from the current status."""
    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move application from {current} to {target}",
            field="status",
            details={"current": current, "target": target},
        )


class UnauthenticatedError(AppError):
    def __init__(self, message: str = "Unauthorized", details: dict | None = None):
        super().__init__(message, status_code=401, details=details)


class AuthorizationError(AppError):
    def __init__(self, message: str = "Access forbidden", details: dict | None = None):
        super().__init__(message, status_code=403, details=details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found", details: dict | None = None):
        super().__init__(message, status_code=404, details=details)


class PayloadTooLargeError(AppError):
    """Upload exceeds its configured size limit."""
    def __init__(self, message: str, *, field: str | None = None, details: dict | None = None):
        errors = [{"field": field, "message": message}] if field else None
        super().__init__(message, status_code=413, details=details, errors=errors)


class InternalError(AppError):
    def __init__(self, message: str = "Internal server error", details: dict | None = None):
        super().__init__(message, status_code=500, details=details)


class DatabaseError(AppError):
    def __init__(self, message: str = "Database operation failed", details: dict | None = None):
        super().__init__(message, status_code=500, details=details)


# User-friendly error messages
ERROR_MESSAGES = {
    # Authentication
    "invalid_credentials": "Invalid credentials",
    "missing_auth_header": "Missing or invalid authorization header",
    "token_expired": "Token expired",
    "invalid_token": "Invalid token",
    "session_expired": "Session expired or invalid",
    "account_disabled": "This account has been deactivated.",

    # File uploads
    "cv_required": "CV is required",
    "invalid_photo_type": "Invalid file type for photo. Photo must be an image.",
    "invalid_cv_type": "Invalid file type for cv. CV must be a PDF.",

    # Applications
    "application_not_found": "Application not found",
    "application_failed": "Failed to submit application. Please try again.",

    # General
    "server_error": "Something went wrong on our end. Please try again later.",
    "database_error": "Database connection issue. Please try again later.",
    "validation_error": "Please check your input and try again.",
}


def get_error_message(error_key: str, default: str | None = None) -> str:
    """Get a user-friendly error message."""
    return ERROR_MESSAGES.get(error_key, default or ERROR_MESSAGES["server_error"])


def create_error_response(
    status_code: int,
    message: str,
    errors: list[dict] | None = None,
    details: dict | str | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    content = {
        "success": False,
        "error": message,
    }

    if errors:
        content["errors"] = errors

    if details:
        content["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content
    )


def _field_from_loc(loc: tuple) -> str:
    # ("body", "interviewDate") -> "interviewDate"; ("query", "status") -> "status"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form", "header")]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI, *, expose_details: bool) -> None:
    """Install the JSON error handlers. `expose_details` is off in production."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.details)
        return create_error_response(
            exc.status_code,
            exc.message,
            errors=exc.errors,
            details=exc.details if expose_details or exc.status_code < 500 else None,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_from_loc(tuple(err.get("loc") or ())), "message": err.get("msg", "Invalid value")}
            for err in exc.errors()
        ]
        return create_error_response(400, get_error_message("validation_error"), errors=errors)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return create_error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(OperationalError)
    async def sqlalchemy_operational_error_handler(request: Request, exc: OperationalError):
        logger.exception("Database OperationalError: %s", exc)
        root = getattr(exc, "orig", None)
        return create_error_response(
            503,
            get_error_message("database_error"),
            details=str(root or exc) if expose_details else None,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database SQLAlchemyError: %s", exc)
        return create_error_response(
            500,
            get_error_message("database_error"),
            details=str(exc) if expose_details else None,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return create_error_response(
            500,
            get_error_message("server_error"),
            details=f"{type(exc).__name__}: {exc}" if expose_details else None,
        )
