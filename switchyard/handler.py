"""
Exception handler contract and the default implementation.

The exception-boundary middleware only depends on ``ExceptionHandlerContract``;
``ExceptionHandler`` is the handler most applications start from.
"""

import logging
import traceback
from http import HTTPStatus
from typing import Any, Callable, List, Optional, Protocol, Tuple, Type

from .config import DispatchConfig
from .error_models import ErrorResponse
from .exceptions import HTTPError, RouteNotFoundError, ValidationError
from .models import Request, Response, to_response

# Set up logger for this module
logger = logging.getLogger(__name__)

RenderFunc = Callable[[Request, BaseException], Any]


class ExceptionHandlerContract(Protocol):
    """What an exception boundary needs from an exception handler."""

    def should_report(self, exc: BaseException) -> bool:
        ...

    def report(self, exc: BaseException) -> None:
        ...

    def render(self, request: Request, exc: BaseException) -> Response:
        ...


class ExceptionHandler:
    """Default handler: logs what is worth logging and renders an error response.

    Rendering picks the first custom renderer registered for the exception
    type, then falls back to the status carried by ``HTTPError`` or a 500.
    Requests under ``config.api_prefix`` or asking for JSON get a JSON body;
    everyone else gets plain text.

    Example::

        handler = ExceptionHandler(DispatchConfig(debug=True))

        @handler.handles(PermissionError)
        def forbidden(request, exc):
            return Response.text("Forbidden", 403)
    """

    dont_report: Tuple[Type[BaseException], ...] = (RouteNotFoundError, ValidationError)

    def __init__(self, config: Optional[DispatchConfig] = None):
        self.config = config or DispatchConfig()
        self._renderers: List[Tuple[Type[BaseException], RenderFunc]] = []

    def register(self, exc_type: Type[BaseException], renderer: RenderFunc) -> None:
        """Render ``exc_type`` (and subclasses) with ``renderer(request, exc)``."""
        self._renderers.append((exc_type, renderer))

    def handles(self, exc_type: Type[BaseException]) -> Callable[[RenderFunc], RenderFunc]:
        """Decorator form of ``register``."""
        def decorator(func: RenderFunc) -> RenderFunc:
            self.register(exc_type, func)
            return func
        return decorator

    def should_report(self, exc: BaseException) -> bool:
        return not isinstance(exc, self.dont_report)

    def report(self, exc: BaseException) -> None:
        level = self._log_level(exc)
        logger.log(level, f"{type(exc).__name__}: {exc}", exc_info=(type(exc), exc, exc.__traceback__))

    def _log_level(self, exc: BaseException) -> int:
        if isinstance(exc, RouteNotFoundError):
            return logging.INFO
        if isinstance(exc, ValidationError):
            return logging.WARNING
        if "Critical" in type(exc).__name__:
            return logging.CRITICAL
        return logging.ERROR

    def render(self, request: Request, exc: BaseException) -> Response:
        for exc_type, renderer in self._renderers:
            if isinstance(exc, exc_type):
                logger.debug(f"Rendering {type(exc).__name__} with {getattr(renderer, '__name__', renderer)!r}")
                return to_response(renderer(request, exc))

        status_code, message = self._status_and_message(exc)
        if self.wants_json(request):
            body = ErrorResponse.from_exception(exc, message=message, debug=self.config.debug)
            return Response.json(body.model_dump(mode="json"), status_code)

        text = message
        if self.config.debug:
            text += "\n\n" + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return Response.text(text, status_code)

    def wants_json(self, request: Request) -> bool:
        return self.config.is_api_path(request.path) or request.expects_json()

    def _status_and_message(self, exc: BaseException) -> Tuple[int, str]:
        if isinstance(exc, HTTPError):
            return exc.status_code, exc.message
        if self.config.debug:
            return HTTPStatus.INTERNAL_SERVER_ERROR, str(exc) or type(exc).__name__
        return HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error"
