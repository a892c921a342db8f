"""
A small request-dispatch core: per-method route tables with first-match
linear scanning, and global, group and route middleware composed into one
continuation-passing chain around the matched action.

This module provides the Router, the Middleware contract, exception-boundary
middleware with a default exception handler, and a minimal controller
container for controller-method actions.
"""

from http import HTTPStatus

from .boundary import ApiExceptionBoundaryMiddleware, ExceptionBoundaryMiddleware
from .config import DispatchConfig
from .container import Container, ControllerResolver
from .cors import CORSConfig, CORSMiddleware
from .error_models import ErrorResponse
from .events import EventDispatcher, RouteMatched
from .exceptions import (
    ControllerResolutionError,
    DuplicateRouteNameError,
    HTTPError,
    MiddlewareGroupNotFoundError,
    ResponsePreparedError,
    RouteNotFoundError,
    RouterFrozenError,
    SwitchyardError,
    ValidationError,
)
from .handler import ExceptionHandler, ExceptionHandlerContract
from .middleware import FunctionMiddleware, Middleware, Next, Pipeline, middleware, run_chain
from .models import HTTPMethod, MultiValueHeaders, Request, Response, to_response
from .route import CallableAction, ControllerAction, Route, compile_pattern
from .router import Router

__version__ = "0.1.0"
__author__ = "Switchyard Contributors"
__license__ = "MIT"

__all__ = [
    "Router",
    "Route",
    "compile_pattern",
    "CallableAction",
    "ControllerAction",
    "Request",
    "Response",
    "MultiValueHeaders",
    "HTTPMethod",
    "HTTPStatus",
    "to_response",
    "Middleware",
    "FunctionMiddleware",
    "Next",
    "Pipeline",
    "middleware",
    "run_chain",
    "ExceptionBoundaryMiddleware",
    "ApiExceptionBoundaryMiddleware",
    "ExceptionHandler",
    "ExceptionHandlerContract",
    "ErrorResponse",
    "CORSConfig",
    "CORSMiddleware",
    "DispatchConfig",
    "Container",
    "ControllerResolver",
    "EventDispatcher",
    "RouteMatched",
    "SwitchyardError",
    "HTTPError",
    "RouteNotFoundError",
    "ValidationError",
    "DuplicateRouteNameError",
    "RouterFrozenError",
    "MiddlewareGroupNotFoundError",
    "ControllerResolutionError",
    "ResponsePreparedError",
]
