"""
CatTrack Backend: Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the error taxonomy of the API.
How:   Each exception carries a message, an optional context dict, an HTTP
       status code and a machine-readable error code. One global handler
       (registered in main.py) turns them into the JSON error envelope.
Who:   Raised by services, dependencies and middleware.

Exception Hierarchy:
    CatTrackError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized (login rejected)
    ├── ForbiddenError           → 403 Forbidden (role gate, bad token)
    ├── NotFoundError            → 404 Not Found
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 400 Bad Request (wrapped record-layer failure)
    └── RateLimitExceededError   → 429 Too Many Requests

Anything that is not a CatTrackError is reported as a 400 by the catch-all
handler, matching the "unexpected condition" row of the taxonomy.
"""

from typing import Any, Dict, List, Optional, Sequence


class CatTrackError(Exception):
    """
    Base exception for all CatTrack application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only as `details`
                  for client-side errors)
    """

    status_code: int = 400
    error_code: str = "bad_request"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CatTrackError):
    """
    Raised when client input fails validation.

    Field-level messages are concatenated into one message with ", " as the
    separator, each formatted "<message>: <field>".

    Example response:
        {
            "error": "validation_error",
            "message": "Field required: cat_name, Input should be greater than 0: weight",
            "details": {"fields": ["cat_name", "weight"]}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field

    @classmethod
    def from_errors(cls, errors: Sequence[Dict[str, Any]]) -> "ValidationError":
        """
        Build one ValidationError from pydantic/FastAPI error dicts.

        Location prefixes such as "body" or "query" are dropped, so the
        field is named the way the client sent it.
        """
        messages: List[str] = []
        fields: List[str] = []
        for error in errors:
            loc = [str(part) for part in error.get("loc", ()) if part not in _LOCATION_PREFIXES]
            field = ".".join(loc) or "request"
            messages.append(f"{error.get('msg', 'Invalid value')}: {field}")
            fields.append(field)
        return cls(
            message=", ".join(messages) or "Validation failed",
            context={"fields": fields},
        )


_LOCATION_PREFIXES = {"body", "query", "path", "form", "header", "cookie"}


class AuthenticationError(CatTrackError):
    """
    Raised when login credentials are rejected.

    The message is identical for an unknown username and a wrong password so
    the response never reveals whether the account exists.
    """

    status_code = 401
    error_code = "authentication_failed"

    def __init__(
        self,
        message: str = "Incorrect username or password",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(CatTrackError):
    """
    Raised when the principal may not perform the operation.

    When: admin-only route hit by a non-admin, or no valid bearer token.
    HTTP: 403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Forbidden",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CatTrackError):
    """
    Raised when a requested resource does not exist.

    Also raised when an owner-scoped mutation matches nothing, so a record
    owned by someone else is indistinguishable from a missing one.
    """

    status_code = 404
    error_code = "not_found"

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


class FileStorageError(CatTrackError):
    """
    Raised when file system operations fail (disk full, permission denied).

    The client receives a generic message; the path and OS error are logged.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(CatTrackError):
    """
    Raised when a record-layer operation fails unexpectedly.

    Reported as a 400 with a generic message; constraint names and SQL stay
    in the server log.
    """

    status_code = 400
    error_code = "database_error"

    def __init__(
        self,
        message: str = "The request could not be completed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(CatTrackError):
    """Raised when a client exceeds the per-IP request rate limit."""

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
