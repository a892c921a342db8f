"""Route compilation, matching and the action variants a route can carry."""

import inspect
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Pattern, Tuple, Union
from urllib.parse import urlencode

from .exceptions import ControllerResolutionError, RouterFrozenError
from .middleware import Middleware, as_middleware
from .models import HTTPMethod, Request

if TYPE_CHECKING:
    from .container import ControllerResolver

# A token such as {id} or {postId}. Anything shaped like this is a parameter;
# there is no escape for a literal "{x}" path segment.
TOKEN_PATTERN = re.compile(r"\{([A-Za-z0-9_]+)\}")
PARAMETER_PATTERN = "([A-Za-z0-9]+)"


@dataclass(frozen=True)
class CallableAction:
    """An action that is directly callable."""

    func: Callable[..., Any]

    def bind(self, resolver: Optional["ControllerResolver"]) -> Callable[..., Any]:
        return self.func

    def describe(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


@dataclass(frozen=True)
class ControllerAction:
    """A controller type plus the name of the method that handles the route.

    The controller is built by a ControllerResolver at dispatch time, so each
    request gets a fresh instance.
    """

    controller: type
    method: str

    def bind(self, resolver: Optional["ControllerResolver"]) -> Callable[..., Any]:
        if resolver is None:
            raise ControllerResolutionError(
                f"No controller resolver configured for {self.describe()}"
            )
        instance = resolver.resolve(self.controller)
        handler = getattr(instance, self.method, None)
        if handler is None or not callable(handler):
            raise ControllerResolutionError(
                f"Controller {self.controller.__name__} has no action method {self.method!r}"
            )
        return handler

    def describe(self) -> str:
        return f"{self.controller.__name__}.{self.method}"


Action = Union[CallableAction, ControllerAction]


def to_action(value: Any) -> Action:
    """Normalize what a caller registered into one of the two action variants.

    Accepts an action instance, a ``(ControllerClass, "method")`` pair, or any
    callable.
    """
    if isinstance(value, (CallableAction, ControllerAction)):
        return value
    if isinstance(value, (tuple, list)):
        if len(value) == 2 and isinstance(value[0], type) and isinstance(value[1], str):
            return ControllerAction(value[0], value[1])
        raise TypeError("Controller actions must be a (ControllerClass, 'method') pair")
    if callable(value):
        return CallableAction(value)
    raise TypeError(f"Route action must be callable, got {type(value).__name__}")


def compile_pattern(pattern: str) -> Tuple[Pattern[str], Tuple[str, ...]]:
    """Compile a URI template into an anchored matcher and its parameter names.

    Each ``{name}`` token becomes a group matching ``[A-Za-z0-9]+``; every other
    character is matched literally. The trailing slash is optional on both the
    template and the incoming URI.

    Examples:
        compile_pattern("/users/{id}")  -> (^/users/([A-Za-z0-9]+)/?$, ("id",))
        compile_pattern("/")            -> (^/?$, ())
    """
    body = pattern.rstrip("/")
    parts: List[str] = []
    names: List[str] = []
    position = 0

    for token in TOKEN_PATTERN.finditer(body):
        name = token.group(1)
        if name in names:
            raise ValueError(f"Route parameter {name!r} appears twice in {pattern!r}")
        parts.append(re.escape(body[position:token.start()]))
        parts.append(PARAMETER_PATTERN)
        names.append(name)
        position = token.end()
    parts.append(re.escape(body[position:]))

    return re.compile("^" + "".join(parts) + "/?$"), tuple(names)


class Route:
    """One compiled URI pattern bound to an action and its own middleware.

    Routes are configured during registration (name, middleware, groups) and
    become read-only once their router is frozen.
    """

    def __init__(self, pattern: str, action: Any, method: Optional[HTTPMethod] = None, registry: Optional[Any] = None):
        self.pattern = pattern
        self.action: Action = to_action(action)
        self.method = method
        self.matcher, self.parameter_names = compile_pattern(pattern)
        self.name: Optional[str] = None
        self.middlewares: Tuple[Middleware, ...] = ()
        self.middleware_groups: Tuple[str, ...] = ()
        self._registry = registry
        self._frozen = False

        # Cache the signature of plain callables for argument binding
        self._signature: Optional[inspect.Signature] = None
        if isinstance(self.action, CallableAction):
            self._signature = _signature_of(self.action.func)

    @classmethod
    def compile(cls, pattern: str, action: Any = None) -> "Route":
        """Build a standalone route; without an action it answers 204."""
        return cls(pattern, action if action is not None else _no_content)

    def __repr__(self) -> str:
        method = self.method.value if self.method else "*"
        return f"Route({method} {self.pattern!r} -> {self.action.describe()})"

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RouterFrozenError(f"Route {self.pattern!r} can no longer be modified")

    def set_name(self, name: str) -> "Route":
        self._check_mutable()
        if self._registry is not None:
            self._registry._register_name(self, name)
        self.name = name
        return self

    def set_middlewares(self, middlewares: Iterable[Any]) -> "Route":
        """Replace the middleware bound to this route only."""
        self._check_mutable()
        self.middlewares = tuple(as_middleware(m) for m in middlewares)
        return self

    def set_middleware_groups(self, groups: Iterable[str]) -> "Route":
        """Opt into named middleware groups, applied in the order given."""
        self._check_mutable()
        self.middleware_groups = tuple(groups)
        return self

    def has_middlewares(self) -> bool:
        return bool(self.middlewares)

    def has_parameters(self) -> bool:
        return bool(self.parameter_names)

    def matches(self, uri: str) -> bool:
        return self.matcher.fullmatch(uri) is not None

    def extract_parameters(self, uri: str) -> Dict[str, str]:
        """Map parameter names to the values captured from ``uri``, in declaration order.

        Raises:
            ValueError: If ``uri`` does not match this route. Callers check
                ``matches`` first.
        """
        match = self.matcher.fullmatch(uri)
        if match is None:
            raise ValueError(f"URI {uri!r} does not match route pattern {self.pattern!r}")
        return dict(zip(self.parameter_names, match.groups()))

    def build_uri(self, parameters: Optional[Dict[str, Any]] = None) -> str:
        """Fill the pattern's tokens; leftover parameters become the query string."""
        values = dict(parameters or {})
        missing = [name for name in self.parameter_names if name not in values]
        if missing:
            raise ValueError(f"Missing route parameters for {self.pattern!r}: {', '.join(missing)}")

        uri = TOKEN_PATTERN.sub(lambda token: str(values.pop(token.group(1))), self.pattern)
        if values:
            uri = f"{uri}?{urlencode(values)}"
        return uri

    def bind_action(self, request: Request, resolver: Optional["ControllerResolver"] = None) -> Callable[[], Any]:
        """Resolve the action and return a zero-argument callable that runs it.

        Controller actions are instantiated here, before the middleware chain
        starts. Arguments are picked when the callable runs, so middleware may
        still adjust the request first.
        """
        handler = self.action.bind(resolver)
        signature = self._signature if isinstance(self.action, CallableAction) else _signature_of(handler)

        def run() -> Any:
            args, kwargs = _arguments_for(signature, request)
            return handler(*args, **kwargs)

        return run


def _no_content() -> None:
    return None


def _signature_of(func: Callable[..., Any]) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(func)
    except (TypeError, ValueError):
        return None


def _arguments_for(signature: Optional[inspect.Signature], request: Request) -> Tuple[List[Any], Dict[str, Any]]:
    """Pick arguments for an action by parameter name.

    Positional-only parameters are passed positionally, in order; a skipped
    one with a default is filled with that default to keep later ones aligned.
    """
    if signature is None:
        return [], {}

    args: List[Any] = []
    kwargs: Dict[str, Any] = {}
    remaining = dict(request.path_params)
    accepts_var_keyword = False

    for name, param in signature.parameters.items():
        if param.kind == inspect.Parameter.VAR_KEYWORD:
            accepts_var_keyword = True
            continue
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            continue

        if name == "request" or param.annotation in (Request, "Request"):
            value = request
        elif name in remaining:
            value = remaining.pop(name)
        elif param.default is not inspect.Parameter.empty:
            if param.kind == inspect.Parameter.POSITIONAL_ONLY:
                args.append(param.default)
            continue
        else:
            raise ValueError(f"Unable to resolve action argument: {name}")

        if param.kind == inspect.Parameter.POSITIONAL_ONLY:
            args.append(value)
        else:
            kwargs[name] = value

    if accepts_var_keyword:
        kwargs.update(remaining)
    return args, kwargs
