"""
PIEM Backend — Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions, one per failure class of the API.
How:   Each exception carries a client-safe message, an optional context
       dict (logged, never returned) and the HTTP status it maps to.
       Global handlers registered in main.py turn them into the JSON envelope.
Who:   Raised by services, validation helpers and auth dependencies.

Exception Hierarchy:
    PiemError (base)
    ├── InvalidArgumentError     → 400 Bad Request (malformed id or payload)
    │   └── InvalidStateError    → 400 Bad Request (operation blocked by record state)
    ├── UnauthenticatedError     → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden (role or ownership)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (natural-key collision)
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class PiemError(Exception):
    """
    Base exception for all PIEM application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status the global handler responds with
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidArgumentError(PiemError):
    """
    Raised when client input is malformed.

    When:    Non-ObjectId path id, payload failing its rule set, self-deletion.
    HTTP:    400 Bad Request

    `errors` is the ordered list of {"field", "message"} pairs returned to
    the client under the `errors` key. It is empty for non-field failures.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Dict[str, str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.errors = errors or []


class InvalidStateError(InvalidArgumentError):
    """
    Raised when a record's current state forbids the operation.

    When:    Deleting a category that still has inventory items.
    HTTP:    400 Bad Request
    """


class UnauthenticatedError(PiemError):
    """Raised when a protected route is called without a recognized session (401)."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required. Please log in.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(PiemError):
    """
    Raised when the caller is known but not allowed to act.

    When:    Non-admin hits an admin route; non-owner edits a category or user.
    HTTP:    403 Forbidden
    """

    status_code = 403

    def __init__(
        self,
        message: str = "Access denied. Admin privileges required.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PiemError):
    """
    Raised when a requested resource does not exist.

    Motor returns None for a missing document; services convert that None
    into this exception so the handler can answer 404.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(PiemError):
    """
    Raised when a create/update would duplicate a natural key.

    HTTP:    409 Conflict

    The uniqueness probe is check-then-act; unique indexes created at
    startup turn a lost race into a DuplicateKeyError, which the service
    also reports as this exception.
    """

    status_code = 409

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(PiemError):
    """
    Raised when a document store operation fails unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is generic. Driver details are
        logged server-side and only echoed outside production.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
