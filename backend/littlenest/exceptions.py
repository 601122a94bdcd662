"""
LittleNest Backend: Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for every error the API can report.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers in main.py map each type to an HTTP status code
       and a JSON error body.
Who:   Raised by services, the derivation pipeline and dependencies.
When:  During request processing, before anything is committed.

Exception Hierarchy:
    LittleNestError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── DuplicateKeyError        → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class LittleNestError(Exception):
    """
    Base exception for all LittleNest application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only returned for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(LittleNestError):
    """
    Raised when client input breaks a business rule.

    When:    Blank names, unknown gender/zodiac values, out-of-range
             numerology numbers, unsupported upload types.
    HTTP:    400 Bad Request

    Pydantic schema failures are still reported by FastAPI as 422.
    """

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


class AuthenticationError(LittleNestError):
    """
    Raised when a protected route is called without a valid principal.

    When:    Missing or wrong gateway key, missing user id header.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(LittleNestError):
    """
    Raised when an authenticated principal lacks the required role.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(LittleNestError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown name id/slug, unpublished or foreign blog post, empty
             trending/search results.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DuplicateKeyError(LittleNestError):
    """
    Raised when a write would violate a unique index.

    When:    Creating or renaming a name whose name/slug already exists,
             retitling a blog post onto an existing slug.
    HTTP:    409 Conflict

    The surrounding transaction is rolled back, so nothing is half-written.
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(LittleNestError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(LittleNestError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The client always receives a generic message; the original error type
    travels in `context` and is only logged.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(LittleNestError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with a Retry-After header)
    """

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
