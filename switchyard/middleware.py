"""Middleware contract and the continuation-passing pipeline that runs it.

A middleware has one capability::

    def handle(self, request: Request, next: Next) -> Response: ...

``next`` is a zero-argument continuation. Calling it runs the rest of the
chain (inner middleware, then the action) and returns its Response. A
middleware may

- pass through: look at the request, then return ``next()``;
- decorate: call ``next()`` and modify the Response on the way out;
- terminate early: return its own Response without calling ``next()``,
  in which case nothing inward runs, the action included.

Example::

    class Timing(Middleware):
        def handle(self, request, next):
            start = time.monotonic()
            response = next()
            return response.set_header("X-Time", f"{time.monotonic() - start:.3f}")

    @middleware
    def require_token(request, next):
        if not request.header("Authorization"):
            return Response.text("Unauthorized", 401)
        return next()
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Tuple

from .models import Request, Response, to_response

logger = logging.getLogger(__name__)

# The rest of the pipeline, as seen from one middleware
Next = Callable[[], Response]


class Middleware(ABC):
    """Base class for a unit of cross-cutting logic wrapped around an action."""

    @abstractmethod
    def handle(self, request: Request, next: Next) -> Response:
        """Handle ``request``; call ``next()`` to continue down the chain."""

    @property
    def name(self) -> str:
        """Middleware name for logging and debugging."""
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """Adapts a plain ``fn(request, next)`` callable to the Middleware contract."""

    def __init__(self, func: Callable[[Request, Next], Response]):
        self.func = func

    def handle(self, request: Request, next: Next) -> Response:
        return self.func(request, next)

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", repr(self.func))

    def __repr__(self) -> str:
        return f"FunctionMiddleware({self.name})"


def middleware(func: Callable[[Request, Next], Response]) -> FunctionMiddleware:
    """Decorator turning a function into a middleware instance."""
    return FunctionMiddleware(func)


def as_middleware(value: Any) -> Middleware:
    """Normalize a registered middleware.

    Accepts a Middleware instance, a Middleware subclass (instantiated with no
    arguments) or a callable taking ``(request, next)``.
    """
    if isinstance(value, Middleware):
        return value
    if isinstance(value, type):
        if issubclass(value, Middleware):
            return value()
        raise TypeError(f"{value.__name__} is not a Middleware subclass")
    if callable(value):
        return FunctionMiddleware(value)
    raise TypeError(f"Cannot use {type(value).__name__} as middleware")


def as_middlewares(values: Iterable[Any]) -> Tuple[Middleware, ...]:
    return tuple(as_middleware(value) for value in values)


class Pipeline:
    """An ordered middleware chain wrapped around one target.

    The first middleware is the outermost. Each middleware gets its own
    continuation closure that carries the index of the next layer, so no
    cursor is shared between layers and a continuation can be called again
    safely. Recursion depth equals the chain length.
    """

    def __init__(self, middlewares: Iterable[Any]):
        self.middlewares: Tuple[Middleware, ...] = as_middlewares(middlewares)

    def __len__(self) -> int:
        return len(self.middlewares)

    def run(self, request: Request, target: Callable[[], Any]) -> Response:
        """Run the chain with ``target`` as the innermost step."""
        return self._call(request, target, 0)

    def _call(self, request: Request, target: Callable[[], Any], index: int) -> Response:
        if index >= len(self.middlewares):
            return to_response(target())

        current = self.middlewares[index]

        def next_layer() -> Response:
            return self._call(request, target, index + 1)

        logger.debug(f"  [{index}] → {current.name}")
        return current.handle(request, next_layer)


def run_chain(chain: Iterable[Any], request: Request, target: Callable[[], Any]) -> Response:
    """Run ``target`` behind ``chain``; an empty chain is just ``target()``."""
    return Pipeline(chain).run(request, target)
