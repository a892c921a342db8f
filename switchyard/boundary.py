"""
Exception-boundary middleware.

A boundary is an ordinary chain element: it protects everything inward of it
and nothing outward. Put it first in the global list to cover the whole chain,
or in a group (for example "api") to cover only routes opting into that group.
"""

import logging

from .handler import ExceptionHandlerContract
from .middleware import Middleware, Next
from .models import Request, Response

logger = logging.getLogger(__name__)


class ExceptionBoundaryMiddleware(Middleware):
    """Turns exceptions escaping the inner chain into a rendered response."""

    def __init__(self, handler: ExceptionHandlerContract):
        self.handler = handler

    def handle(self, request: Request, next: Next) -> Response:
        try:
            return next()
        except Exception as e:
            logger.debug(f"{self.name} caught {type(e).__name__} for {request.method.value} {request.path}")
            if self.handler.should_report(e):
                self.handler.report(e)
            return self.finalize(self.handler.render(request, e))

    def finalize(self, response: Response) -> Response:
        return response


class ApiExceptionBoundaryMiddleware(ExceptionBoundaryMiddleware):
    """Boundary for API chains: the rendered error is always JSON."""

    def finalize(self, response: Response) -> Response:
        already_json = isinstance(response.body, (dict, list)) or (
            response.body is not None and "json" in (response.content_type or "").lower()
        )
        if not already_json:
            text = response.body_text(errors="replace") if response.body is not None else ""
            response.body = {"message": text}
        return response.set_header("Content-Type", "application/json")
