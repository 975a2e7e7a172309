"""
StoreHub Backend: Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for the error scenarios handlers meet.
How:   Each exception carries a user-facing message and an optional context
       dict. Services and repositories raise them; the global handlers in
       main.py turn them into JSON errors or flash-and-redirect responses.

Exception Hierarchy:
    StoreHubError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthorizationError       → 403 Forbidden (not the owner / not signed in)
    ├── NotFoundError            → 404 Not Found
    └── UpstreamError            → 500 Internal Server Error
        ├── DatabaseError
        └── FileStorageError
"""

from typing import Any, Dict, Optional


class StoreHubError(Exception):
    """
    Base exception for all StoreHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in a response)
        context:  Additional debug info (logged, never returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(StoreHubError):
    """
    Raised when client input fails validation.

    When:    Disallowed upload type, undecodable image, missing store name,
             coordinates out of range, a name that produces an empty slug.
    HTTP:    400 Bad Request
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


class AuthorizationError(StoreHubError):
    """
    Raised when the requester may not perform an action.

    When:    Editing or updating a store the requester does not own, or calling
             a route that needs a user without one.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You are not allowed to do that!",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(StoreHubError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; repositories convert that into
    this exception so the 404 handling stays out of the query code.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class UpstreamError(StoreHubError):
    """
    Raised when a backing system (database, file system) fails.

    HTTP:    500 Internal Server Error. The message returned to clients is
             generic; details stay in the server log.
    """

    def __init__(
        self,
        message: str = "A backing service failed. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(UpstreamError):
    """A query, insert or update failed (connection lost, constraint, deadlock)."""

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(UpstreamError):
    """Could not write or read a file in the upload directory."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
