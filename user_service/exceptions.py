"""
User Service — Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions for each failure point of the service.
How:   Each exception carries a client-safe message and an optional context
       dict. Global exception handlers (registered in main.py) log the
       context and return a JSON error body with a fixed message.
Who:   Raised by the config loader, the store client, the blob uploader,
       the queue publisher and the route handlers.

Exception Hierarchy:
    UserServiceError (base)
    ├── ConfigError           → process exits at startup
    ├── StorageConnectError   → server startup aborted
    ├── StorageQueryError     → 500 Internal Server Error
    ├── UploadError           → 500 Internal Server Error
    ├── PublishError          → 500 Internal Server Error
    └── ValidationError       → 400 Bad Request
"""

from typing import Any, Dict, Optional


class UserServiceError(Exception):
    """
    Base exception for all user service errors.

    Attributes:
        message:  Error description that is safe to return in an API response
        context:  Debug details (logged server-side, never returned to clients)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigError(UserServiceError):
    """
    Raised when config.json is missing, unreadable or does not decode into
    the settings structure. Fatal: the process exits before serving.
    """

    def __init__(
        self,
        message: str = "Configuration could not be loaded",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageConnectError(UserServiceError):
    """
    Raised when the relational store cannot be opened or does not answer
    the liveness query during startup. Fatal: the lifespan re-raises it and
    the server refuses to start.
    """

    def __init__(
        self,
        message: str = "Cannot connect to the database",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageQueryError(UserServiceError):
    """
    Raised when the user query fails or a row cannot be mapped.

    HTTP: 500 Internal Server Error. No partial result is returned.
    """

    def __init__(
        self,
        message: str = "Error fetching users",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UploadError(UserServiceError):
    """
    Raised when the blob client cannot be built or the transfer fails.

    HTTP: 500 Internal Server Error. The underlying exception is chained
    (``raise ... from``) and its text is kept in ``context["cause"]``.
    """

    def __init__(
        self,
        message: str = "Error uploading file",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PublishError(UserServiceError):
    """
    Raised when the queue client, the sender, serialization or the send
    itself fails.

    HTTP: 500 Internal Server Error. A blob uploaded earlier in the same
    request is left in place.
    """

    def __init__(
        self,
        message: str = "Error sending user data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ValidationError(UserServiceError):
    """
    Raised when the client input cannot be used.

    When:    The multipart body has no usable ``photo`` file part.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Invalid file upload",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
