"""Router module: per-method route tables, matching and middleware dispatch."""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .config import DispatchConfig
from .container import ControllerResolver
from .events import EventDispatcher, RouteMatched
from .exceptions import (
    DuplicateRouteNameError,
    MiddlewareGroupNotFoundError,
    RouteNotFoundError,
    RouterFrozenError,
)
from .middleware import Middleware, as_middlewares, run_chain
from .models import HTTPMethod, Request, Response
from .route import Route

# Set up logger for this module
logger = logging.getLogger(__name__)


def normalize_path(prefix: str, path: str) -> str:
    """Join a prefix and a route path without doubling slashes.

    Examples:
        normalize_path("", "/users")      -> "/users"
        normalize_path("/api", "users")   -> "/api/users"
        normalize_path("/api/", "/users") -> "/api/users"
        normalize_path("/api", "/")       -> "/api/"
    """
    if not prefix:
        return path

    if not prefix.startswith("/"):
        prefix = "/" + prefix
    prefix = prefix.rstrip("/")

    if not path.startswith("/"):
        path = "/" + path

    return prefix + path


class Router:
    """Owns one ordered route list per HTTP method and dispatches requests.

    Registration order is match priority: ``resolve_route`` scans the method's
    list and the first matching route wins, however specific a later route is.

    The router is populated during application bootstrap and only read while
    serving. ``freeze()`` ends the registration phase; every mutation after
    that raises ``RouterFrozenError``, so concurrent ``resolve`` calls never
    need a lock. The hosting application owns the Router instance and passes
    it to whatever serves requests.

    Example::

        router = Router(resolver=Container())
        router.set_global_middlewares([CORSMiddleware(cors_config)])
        router.set_middleware_groups({"api": [ApiExceptionBoundaryMiddleware(handler)]})

        router.get("/users/{id}", show_user).set_middleware_groups(["api"])
        router.post("/users", (UserController, "store")).set_name("users.store")

        router.freeze()
        response = router.resolve(request)
    """

    def __init__(
        self,
        resolver: Optional[ControllerResolver] = None,
        events: Optional[EventDispatcher] = None,
        config: Optional[DispatchConfig] = None,
    ):
        """Initialize a router.

        Args:
            resolver: Builds controllers for controller-method actions
            events: Receives a RouteMatched event for each matched request
            config: Dispatch settings; defaults to DispatchConfig()
        """
        self.resolver = resolver
        self.events = events
        self.config = config or DispatchConfig()
        self._routes: Dict[HTTPMethod, List[Route]] = {method: [] for method in HTTPMethod}
        self._global_middlewares: Tuple[Middleware, ...] = ()
        self._middleware_groups: Dict[str, Tuple[Middleware, ...]] = {}
        self._named_routes: Dict[str, Route] = {}
        self._prefixes: List[str] = []
        self._frozen = False

    # Registration

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RouterFrozenError("Router registration phase has ended")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Router":
        """End the registration phase for this router and all of its routes."""
        self._frozen = True
        for routes in self._routes.values():
            for route in routes:
                route.freeze()
        logger.debug(f"Router frozen with {sum(len(r) for r in self._routes.values())} routes")
        return self

    def register(
        self,
        method: Union[HTTPMethod, str],
        pattern: str,
        action: Any,
        *,
        name: Optional[str] = None,
        middlewares: Optional[Iterable[Any]] = None,
        middleware_groups: Optional[Iterable[str]] = None,
    ) -> Route:
        """Compile ``pattern`` and append it to the method's route list.

        Returns the Route so callers can keep configuring it fluently.
        """
        self._check_mutable()
        method = HTTPMethod.coerce(method)
        full_pattern = normalize_path("".join(self._prefixes) or "/", pattern)

        route = Route(full_pattern, action, method=method, registry=self)
        if middlewares is not None:
            route.set_middlewares(middlewares)
        if middleware_groups is not None:
            route.set_middleware_groups(middleware_groups)
        # The name is claimed only once the route is fully configured
        if name is not None:
            route.set_name(name)

        self._routes[method].append(route)
        logger.debug(f"Registered {method.value} {full_pattern} -> {route.action.describe()}")
        return route

    def _register_name(self, route: Route, name: str) -> None:
        existing = self._named_routes.get(name)
        if existing is not None and existing is not route:
            raise DuplicateRouteNameError(name)
        if route.name is not None and self._named_routes.get(route.name) is route:
            del self._named_routes[route.name]
        self._named_routes[name] = route

    def _shortcut(self, method: HTTPMethod, pattern: str, action: Any, options: Dict[str, Any]):
        if action is not None:
            return self.register(method, pattern, action, **options)

        def decorator(func: Callable) -> Callable:
            self.register(method, pattern, func, **options)
            return func

        return decorator

    def get(self, pattern: str, action: Any = None, **options: Any):
        """Register a GET route.

        With an action, returns the Route. Without one, returns a decorator::

            @router.get("/users/{id}", middleware_groups=["api"])
            def show_user(id):
                return {"id": id}
        """
        return self._shortcut(HTTPMethod.GET, pattern, action, options)

    def post(self, pattern: str, action: Any = None, **options: Any):
        """Register a POST route (see ``get``)."""
        return self._shortcut(HTTPMethod.POST, pattern, action, options)

    def put(self, pattern: str, action: Any = None, **options: Any):
        """Register a PUT route (see ``get``)."""
        return self._shortcut(HTTPMethod.PUT, pattern, action, options)

    def patch(self, pattern: str, action: Any = None, **options: Any):
        """Register a PATCH route (see ``get``)."""
        return self._shortcut(HTTPMethod.PATCH, pattern, action, options)

    def delete(self, pattern: str, action: Any = None, **options: Any):
        """Register a DELETE route (see ``get``)."""
        return self._shortcut(HTTPMethod.DELETE, pattern, action, options)

    def options(self, pattern: str, action: Any = None, **options: Any):
        """Register an OPTIONS route (see ``get``)."""
        return self._shortcut(HTTPMethod.OPTIONS, pattern, action, options)

    @contextmanager
    def prefix(self, prefix: str) -> Iterator["Router"]:
        """Prepend ``prefix`` to every pattern registered inside the block.

        Prefixes nest::

            with router.prefix("/api"):
                with router.prefix("/v1"):
                    router.get("/users", list_users)  # /api/v1/users
        """
        self._check_mutable()
        segment = prefix.strip("/")
        self._prefixes.append(f"/{segment}" if segment else "")
        try:
            yield self
        finally:
            self._prefixes.pop()

    def set_global_middlewares(self, middlewares: Iterable[Any]) -> "Router":
        """Set the middleware applied to every route, outermost first."""
        self._check_mutable()
        self._global_middlewares = as_middlewares(middlewares)
        return self

    def set_middleware_groups(self, groups: Mapping[str, Iterable[Any]]) -> "Router":
        """Replace the named middleware groups routes can opt into."""
        self._check_mutable()
        self._middleware_groups = {name: as_middlewares(group) for name, group in groups.items()}
        return self

    @property
    def global_middlewares(self) -> Tuple[Middleware, ...]:
        return self._global_middlewares

    @property
    def middleware_groups(self) -> Dict[str, Tuple[Middleware, ...]]:
        return dict(self._middleware_groups)

    # Introspection

    def routes(self, method: Optional[Union[HTTPMethod, str]] = None) -> List[Route]:
        """Registered routes in match order, for one method or all of them."""
        if method is not None:
            return list(self._routes[HTTPMethod.coerce(method)])
        return [route for routes in self._routes.values() for route in routes]

    def is_empty(self) -> bool:
        return not any(self._routes.values())

    def allowed_methods(self, uri: str) -> List[HTTPMethod]:
        """Methods that have at least one route matching ``uri``."""
        return [
            method for method, routes in self._routes.items()
            if any(route.matches(uri) for route in routes)
        ]

    def get_route_by_name(self, name: str) -> Optional[Route]:
        return self._named_routes.get(name)

    def url_for(
        self,
        name: str,
        params: Optional[Dict[str, Any]] = None,
        absolute: bool = False,
        domain: Optional[str] = None,
    ) -> str:
        """Build the URI of a named route.

        Args:
            name: Route name given with ``Route.set_name``
            params: Values for the route's tokens; extras become the query string
            absolute: Prefix the URI with ``domain`` or the configured base URL
            domain: Scheme and host to use instead of ``config.base_url``

        Raises:
            KeyError: If no route has this name
            ValueError: If a route parameter is missing
        """
        route = self._named_routes.get(name)
        if route is None:
            raise KeyError(f"No route named {name!r}")

        uri = route.build_uri(params)
        if not absolute:
            return uri
        base = (domain or self.config.base_url).rstrip("/")
        return base + normalize_path("", uri)

    # Resolution

    def resolve_route(self, request: Request) -> Route:
        """Return the first route registered for the request's method that matches its path.

        Raises:
            RouteNotFoundError: If no route in the method's table matches
        """
        for route in self._routes[request.method]:
            if route.matches(request.path):
                logger.debug(f"Matched {request.method.value} {request.path} -> {route.pattern}")
                if self.events is not None:
                    self.events.dispatch(RouteMatched(route, request.path, request.method.value))
                return route

        logger.debug(f"No route for {request.method.value} {request.path}")
        raise RouteNotFoundError(request.method.value, request.path)

    def middleware_chain(self, route: Route) -> Tuple[Middleware, ...]:
        """Assemble the chain for ``route``: global, then each opted-in group, then the route's own."""
        chain: List[Middleware] = list(self._global_middlewares)
        for group_name in route.middleware_groups:
            group = self._middleware_groups.get(group_name)
            if group is None:
                raise MiddlewareGroupNotFoundError(group_name)
            chain.extend(group)
        chain.extend(route.middlewares)
        return tuple(chain)

    def resolve(self, request: Request) -> Response:
        """Dispatch ``request`` to its route's action behind the assembled middleware chain.

        Exceptions propagate to the caller unless an exception-boundary
        middleware in the chain turns them into a response.
        """
        route = self.resolve_route(request)
        request.bind_route(route)
        target = route.bind_action(request, self.resolver)
        chain = self.middleware_chain(route)
        logger.debug(f"Dispatching {request.method.value} {request.path} through {len(chain)} middleware")
        return run_chain(chain, request, target)
