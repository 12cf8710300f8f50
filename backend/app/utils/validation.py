"""
Validation utilities for input validation and error handling.

Validators raise `ValidationError` naming the offending field. Use `FieldErrors`
to run several validators and report every failure in a single response.
"""
import re
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any

from ..models.enums import STATUS_VALUES
from .error_handlers import ValidationError

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class FieldErrors:
    """Collects field errors from several validators, then raises them together."""

    def __init__(self) -> None:
        self.errors: list[dict] = []

    @contextmanager
    def collect(self):
        try:
            yield
        except ValidationError as e:
            self.errors.extend(e.errors or [{"field": None, "message": e.message}])

    def raise_if_any(self, message: str = "Please check your input and try again.") -> None:
        if self.errors:
            raise ValidationError(message, errors=list(self.errors))


def validate_email(email: Any, field_name: str = "email") -> str:
    """Validate email format."""
    if not email or not isinstance(email, str):
        raise ValidationError("Email is required", field=field_name)

    email = email.strip().lower()
    if len(email) > 255:
        raise ValidationError("Email too long (max 255 characters)", field=field_name)

    if not re.match(EMAIL_PATTERN, email):
        raise ValidationError("Please provide a valid email", field=field_name)

    return email


def validate_password(password: Any, field_name: str = "password") -> str:
    """Login-side password check; strength rules live with account provisioning."""
    if not password or not isinstance(password, str):
        raise ValidationError("Password is required", field=field_name)

    if len(password) < 4:
        raise ValidationError("Password must be at least 4 characters long", field=field_name)

    if len(password) > 128:
        raise ValidationError("Password too long (max 128 characters)", field=field_name)

    return password


def validate_string_field(
    value: Any,
    field_name: str,
    min_length: int = 1,
    max_length: int = 1000,
    required: bool = True,
    pattern: str | None = None,
) -> str | None:
    """Validate a string field with common rules."""
    if value is None or (isinstance(value, str) and not value.strip() and not required):
        if required:
            raise ValidationError(f"{field_name} is required", field=field_name)
        return None

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    value = value.strip()

    if required and not value:
        raise ValidationError(f"{field_name} is required", field=field_name)

    if len(value) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters", field=field_name)

    if len(value) > max_length:
        raise ValidationError(f"{field_name} must not exceed {max_length} characters", field=field_name)

    if pattern and not re.match(pattern, value):
        raise ValidationError(f"{field_name} format is invalid", field=field_name)

    return value


def validate_status(status: Any, field_name: str = "status", *, allow_empty: bool = False) -> str | None:
    """Validate an application status against the wire enum."""
    if status is None or (isinstance(status, str) and not status.strip()):
        if allow_empty:
            return None
        raise ValidationError("Status is required", field=field_name)

    if not isinstance(status, str) or status.strip().upper() not in STATUS_VALUES:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(STATUS_VALUES)}",
            field=field_name,
        )

    return status.strip().upper()


def parse_datetime(value: Any, field_name: str) -> datetime:
    """Parse an ISO-8601 date/time; naive values are taken as UTC. Returns UTC."""
    raw = (value or "").strip() if isinstance(value, str) else ""
    if not raw:
        raise ValidationError(f"{field_name} is required", field=field_name)
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field_name} must be a valid date", field=field_name)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value: Any, field_name: str) -> date | None:
    """Parse an optional YYYY-MM-DD date (a full ISO timestamp is accepted too)."""
    raw = (value or "").strip() if isinstance(value, str) else ""
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"{field_name} must be a valid date", field=field_name)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise ValidationError("Filename is required", field="filename")

    filename = filename.replace("/", "_").replace("\\", "_").replace("\x00", "")
    filename = filename.replace("..", "_").lstrip(".")

    if len(filename) > 255:
        raise ValidationError("Filename too long", field="filename")

    if not filename or filename == "_":
        raise ValidationError("Invalid filename", field="filename")

    return filename
