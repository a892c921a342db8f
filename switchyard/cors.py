"""CORS (Cross-Origin Resource Sharing) as a global middleware.

Register ``CORSMiddleware`` as the first global middleware so every matched
route gets CORS headers. Preflight requests need an OPTIONS route to reach
the middleware, since middleware only runs for matched routes::

    router.set_global_middlewares([CORSMiddleware(CORSConfig(origins=["https://app.example.com"]), router)])
    router.options("/users/{id}", lambda: None)

References:
- WHATWG Fetch Standard: https://fetch.spec.whatwg.org/
- MDN CORS: https://developer.mozilla.org/en-US/docs/Web/HTTP/CORS
"""

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, List, Literal, Optional, Union

from .middleware import Middleware, Next
from .models import HTTPMethod, Request, Response

if TYPE_CHECKING:
    from .router import Router

logger = logging.getLogger(__name__)


@dataclass
class CORSConfig:
    """Configuration for CORS.

    Attributes:
        origins: Allowed origins, or "*" for any origin.
                 Examples: ["https://app.example.com"]

        methods: Allowed methods. If None, the methods registered for the
                 request path are advertised.

        allow_headers: Request headers the browser may send. ["*"] allows all.

        expose_headers: Response headers scripts may read.

        credentials: Allow cookies and authorization headers. Cannot be
                     combined with origins="*" unless reflect_any_origin is set.

        max_age: Seconds a browser may cache a preflight answer.

        reflect_any_origin: With origins="*", echo the request Origin instead of
                            a literal "*". Development only.

    Examples:
        CORSConfig(origins=["https://app.example.com"], credentials=True)
        CORSConfig(origins="*", methods=["GET"])
    """

    origins: Union[List[str], Literal["*"]]
    methods: Optional[List[str]] = None

    allow_headers: List[str] = field(default_factory=lambda: [
        "Accept",
        "Content-Type",
        "Authorization",
        "X-Requested-With",
    ])

    expose_headers: List[str] = field(default_factory=list)

    credentials: bool = False

    # 24 hours
    max_age: int = 86400

    reflect_any_origin: bool = False

    def matches_origin(self, origin: str) -> bool:
        if self.origins == "*":
            return True
        return origin in self.origins

    def allow_origin_value(self, origin: str) -> str:
        """Value for Access-Control-Allow-Origin answering ``origin``."""
        if self.origins == "*" and not (self.credentials and self.reflect_any_origin):
            return "*"
        return origin

    def get_allowed_methods(self, path: str, router: Optional["Router"] = None) -> List[str]:
        """Configured methods, or the methods the router has routes for at ``path``."""
        if self.methods is not None:
            return list(self.methods)
        if router is None:
            return [method.value for method in HTTPMethod]
        return [method.value for method in router.allowed_methods(path)]

    def validate(self) -> None:
        """Validate CORS configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.credentials and self.origins == "*" and not self.reflect_any_origin:
            raise ValueError(
                "CORS: Cannot use wildcard origin '*' with credentials=True. "
                "Specify explicit origins, or set reflect_any_origin=True for development."
            )
        if self.max_age < 0:
            raise ValueError(f"CORS: max_age must not be negative, got {self.max_age}")


class CORSMiddleware(Middleware):
    """Answers preflight requests and decorates responses with CORS headers."""

    def __init__(self, config: CORSConfig, router: Optional["Router"] = None):
        config.validate()
        self.config = config
        self.router = router

    def handle(self, request: Request, next: Next) -> Response:
        origin = request.header("Origin")
        if not origin or not self.config.matches_origin(origin):
            return next()

        if self.is_preflight(request):
            logger.debug(f"Answering CORS preflight for {request.path} from {origin}")
            return self.preflight_response(request, origin)

        response = next()
        return self.decorate(response, origin)

    @staticmethod
    def is_preflight(request: Request) -> bool:
        return request.method == HTTPMethod.OPTIONS and request.header("Access-Control-Request-Method") is not None

    def preflight_response(self, request: Request, origin: str) -> Response:
        response = Response(HTTPStatus.NO_CONTENT)
        self._set_origin_headers(response, origin)

        methods = self.config.get_allowed_methods(request.path, self.router)
        response.set_header("Access-Control-Allow-Methods", ", ".join(methods))

        if self.config.allow_headers == ["*"]:
            requested = request.header("Access-Control-Request-Headers")
            if requested:
                response.set_header("Access-Control-Allow-Headers", requested)
        elif self.config.allow_headers:
            response.set_header("Access-Control-Allow-Headers", ", ".join(self.config.allow_headers))

        response.set_header("Access-Control-Max-Age", str(self.config.max_age))
        return response

    def decorate(self, response: Response, origin: str) -> Response:
        self._set_origin_headers(response, origin)
        if self.config.expose_headers:
            response.set_header("Access-Control-Expose-Headers", ", ".join(self.config.expose_headers))
        return response

    @staticmethod
    def _add_vary_origin(response: Response) -> None:
        """Add Origin to Vary, keeping values set by inner layers."""
        existing = response.headers.get("Vary")
        if not existing:
            response.set_header("Vary", "Origin")
            return
        values = [v.strip() for v in existing.split(",")]
        if "*" in values or any(v.lower() == "origin" for v in values):
            return
        response.set_header("Vary", f"{existing}, Origin")

    def _set_origin_headers(self, response: Response, origin: str) -> None:
        allow_origin = self.config.allow_origin_value(origin)
        response.set_header("Access-Control-Allow-Origin", allow_origin)
        if allow_origin != "*":
            self._add_vary_origin(response)
        if self.config.credentials:
            response.set_header("Access-Control-Allow-Credentials", "true")
