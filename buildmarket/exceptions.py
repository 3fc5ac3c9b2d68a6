"""
BuildMarket Backend: Custom Exception Hierarchy
================================================

What:  Application-specific exceptions mapped to HTTP responses.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py turn them into JSON errors.
Who:   Raised by routes (after unwrapping a ServiceResult), middleware, and
       the database layer.

Exception Hierarchy:
    BuildMarketError (base)
    ├── ValidationError           → 400 Bad Request
    ├── ForbiddenError            → 403 Forbidden
    ├── NotFoundError             → 404 Not Found
    ├── ConflictError             → 409 Conflict
    ├── RateLimitExceededError    → 429 Too Many Requests
    ├── DatabaseError             → 500 Internal Server Error
    └── DatabaseUnavailableError  → 503 Service Unavailable

Services never raise the first four for control flow: they return a
ServiceResult with an ErrorKind, and routes convert it here.
"""

from typing import Any, Dict, Optional


class BuildMarketError(Exception):
    """
    Base exception for all BuildMarket application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where noted)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BuildMarketError):
    """
    Client input passed schema validation but breaks a business rule.

    HTTP: 400. Schema-level problems are still reported by FastAPI as 422.
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


class ForbiddenError(BuildMarketError):
    """The caller is identified but not allowed to act on this resource. HTTP: 403."""

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BuildMarketError):
    """
    Raised when a requested resource does not exist.

    HTTP: 404
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(BuildMarketError):
    """
    The request is valid but the resource is in the wrong state for it.

    When:  Buying a build that is already sold, rejecting an approved build,
           deleting a sold listing.
    HTTP:  409
    """

    def __init__(
        self,
        message: str = "The resource is not in a state that allows this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(BuildMarketError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; SQL, constraint
    names and driver errors stay in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseUnavailableError(BuildMarketError):
    """The database could not be reached after every readiness attempt. HTTP: 503."""

    def __init__(
        self,
        attempts: int = 1,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["attempts"] = attempts
        super().__init__(
            message="The database is currently unreachable. Please try again shortly.",
            context=ctx,
        )
        self.attempts = attempts


class RateLimitExceededError(BuildMarketError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes a Retry-After header for HTTP-compliant clients.
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
