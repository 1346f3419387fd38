"""
Exception hierarchy for the Natours API.

The query pipeline, the resource handlers and the persistence adapters never
format responses. They raise one of these exceptions and the centralized
handlers in ``natours.errors.handlers`` translate it.

Each class declares its HTTP status, error code and default message as class
attributes:

    AppError             500  ERROR
    ├── NotFoundError    404  NOT_FOUND
    ├── ValidationError  400  VALIDATION_ERROR
    ├── ExecutionError   400  EXECUTION_FAILED
    │   └── CastError    400  INVALID_VALUE
    ├── DuplicateFieldError 400 DUPLICATE_FIELD
    └── DBError          500  DB_ERROR (not operational)
"""

from http import HTTPStatus
from typing import Any, Dict, List, Optional, Union


class AppError(Exception):
    """
    Base class of every application error.

    Attributes:
        message: Human-readable message, shown to clients for operational errors
        code: Machine-readable error code
        status_code: HTTP status code
        details: Extra context, only sent in debug mode
        is_operational: Whether this is an expected failure whose message is
            safe to show in production
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    code: str = "ERROR"
    default_message: str = "An unexpected error occurred"
    is_operational = True

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status(self) -> str:
        """Envelope status: "fail" for client errors, "error" otherwise."""
        return "fail" if 400 <= int(self.status_code) < 500 else "error"


class NotFoundError(AppError):
    """No document matched an id-addressed operation, or a page is out of range."""

    status_code = HTTPStatus.NOT_FOUND
    code = "NOT_FOUND"
    default_message = "No document found with that ID"

    def __init__(
        self,
        message: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[Union[str, int]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if resource_type and resource_id is not None:
            message = f"No {resource_type.lower()} found with id '{resource_id}'"
            details = {
                **(details or {}),
                "resource_type": resource_type,
                "resource_id": resource_id,
            }
        super().__init__(message, details=details)


class ValidationError(AppError):
    """
    A create or update body was rejected by the model.

    Attributes:
        fields: One ``{"field", "message", "code"}`` entry per failing field
    """

    status_code = HTTPStatus.BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid input data"

    def __init__(
        self,
        message: Optional[str] = None,
        fields: Optional[List[Dict[str, Any]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.fields = fields or []
        if self.fields:
            details = {**(details or {}), "fields": self.fields}
        super().__init__(message, details=details)


class ExecutionError(AppError):
    """A composed query cannot run: unsupported operator, mixed projection."""

    status_code = HTTPStatus.BAD_REQUEST
    code = "EXECUTION_FAILED"
    default_message = "Query could not be executed"


class CastError(ExecutionError):
    """A criterion or id cannot be cast to the type of its field."""

    code = "INVALID_VALUE"

    def __init__(self, path: str, value: Any, details: Optional[Dict[str, Any]] = None):
        self.path = path
        self.value = value
        super().__init__(
            f"Invalid {path}: {value}.",
            details={**(details or {}), "path": path, "value": value},
        )


class DuplicateFieldError(AppError):
    """A write collided with a unique field."""

    status_code = HTTPStatus.BAD_REQUEST
    code = "DUPLICATE_FIELD"
    default_message = "Duplicate field value. Please use another value!"

    def __init__(self, value: Any = None, details: Optional[Dict[str, Any]] = None):
        message = None
        if value is not None:
            message = f"Duplicate field value: {value}. Please use another value!"
        super().__init__(message, details=details)


class DBError(AppError):
    """The database failed; the message is hidden from clients in production."""

    code = "DB_ERROR"
    default_message = "Database error"
    is_operational = False
