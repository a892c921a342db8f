"""
Custom exceptions for the dispatch core.
"""
from typing import Dict, List, Optional


class SwitchyardError(Exception):
    """Base exception for dispatch errors."""

    pass


class HTTPError(SwitchyardError):
    """An error that maps directly onto an HTTP status code.

    Raise it from an action or a middleware to let an exception boundary
    render the matching status instead of a generic 500.
    """

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, status_code: Optional[int] = None, message: Optional[str] = None):
        if status_code is not None:
            self.status_code = status_code
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)


class RouteNotFoundError(HTTPError):
    """Raised when no route in the method's table matches the request URI."""

    status_code = 404
    default_message = "Not Found"

    def __init__(self, method: str = "", uri: str = "", message: Optional[str] = None):
        self.method = method
        self.uri = uri
        if message is None and (method or uri):
            message = f"No route matches {method} {uri}"
        super().__init__(message=message)


class ValidationError(HTTPError):
    """Raised by application code when input fails validation.

    Carries a mapping of field name to the list of messages for that field.
    The dispatch core gives it no special treatment; only exception handlers
    look at ``errors``.
    """

    status_code = 422
    default_message = "Validation Errors"

    def __init__(self, errors: Optional[Dict[str, List[str]]] = None, message: Optional[str] = None):
        self.errors = dict(errors or {})
        super().__init__(message=message)


class DuplicateRouteNameError(SwitchyardError):
    """Raised when two routes on the same router are given the same name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"The route name {name!r} already exists")


class RouterFrozenError(SwitchyardError):
    """Raised when routes or middleware are changed after registration ended."""

    pass


class MiddlewareGroupNotFoundError(SwitchyardError, KeyError):
    """Raised when a route opts into a middleware group nobody configured."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Middleware group {name!r} is not configured")

    def __str__(self) -> str:
        return self.args[0]


class ControllerResolutionError(SwitchyardError):
    """Raised when a controller instance or its action method cannot be obtained."""

    def __init__(self, message: str = "Failed to resolve controller", original_exception: Optional[BaseException] = None):
        self.message = message
        self.original_exception = original_exception
        super().__init__(self.message)


class ResponsePreparedError(SwitchyardError):
    """Raised when a response is modified after ``prepare()`` was called."""

    pass
