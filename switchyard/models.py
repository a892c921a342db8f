"""
Request and response value objects consumed and produced by the router.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple, Union

from .exceptions import ResponsePreparedError

if TYPE_CHECKING:
    from .route import Route


class MultiValueHeaders:
    """
    Case-insensitive header container that keeps every value of a header.

    Lookups ignore case, iteration yields the casing of the first occurrence.
    ``get`` and ``[]`` return the first value, ``get_all`` returns them all::

        headers = MultiValueHeaders({"Accept": "application/json"})
        headers.add("Set-Cookie", "a=1")
        headers.add("set-cookie", "b=2")
        headers.get_all("SET-COOKIE")  # ['a=1', 'b=2']
    """

    def __init__(self, data=None):
        # lowercase name -> [(original name, value), ...]
        self._headers: Dict[str, List[Tuple[str, str]]] = {}
        self._frozen = False

        if data is None:
            return
        if isinstance(data, MultiValueHeaders):
            self._headers = {k: list(v) for k, v in data._headers.items()}
        elif isinstance(data, dict):
            for name, value in data.items():
                if isinstance(value, (list, tuple)):
                    for item in value:
                        self.add(name, item)
                else:
                    self.add(name, value)
        else:
            for name, value in data:
                self.add(name, value)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the container read-only; copies start out mutable again."""
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ResponsePreparedError("Cannot modify headers of a prepared response")

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping any values already stored for ``name``."""
        self._check_mutable()
        self._headers.setdefault(name.lower(), []).append((name, str(value)))

    def set(self, name: str, value: str) -> None:
        """Replace all values of ``name`` with a single value."""
        self._check_mutable()
        self._headers[name.lower()] = [(name, str(value))]

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        if not isinstance(name, str):
            return default
        values = self._headers.get(name.lower())
        if values:
            return values[0][1]
        return default

    def get_all(self, name: str) -> List[str]:
        return [value for _, value in self._headers.get(name.lower(), [])]

    def remove(self, name: str) -> None:
        """Drop ``name`` if present. Unlike ``del`` this never raises."""
        self._check_mutable()
        self._headers.pop(name.lower(), None)

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __delitem__(self, name: str) -> None:
        self._check_mutable()
        if not isinstance(name, str) or name.lower() not in self._headers:
            raise KeyError(name)
        del self._headers[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        for values in self._headers.values():
            yield values[0][0]

    def __len__(self) -> int:
        return len(self._headers)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MultiValueHeaders):
            return self.to_multidict() == other.to_multidict()
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    def items(self) -> List[Tuple[str, str]]:
        """Return (name, first value) pairs."""
        return [(values[0][0], values[0][1]) for values in self._headers.values()]

    def items_all(self) -> List[Tuple[str, str]]:
        """Return every (name, value) pair, duplicates included."""
        result: List[Tuple[str, str]] = []
        for values in self._headers.values():
            result.extend(values)
        return result

    def to_dict(self) -> Dict[str, str]:
        return dict(self.items())

    def to_multidict(self) -> Dict[str, List[str]]:
        return {values[0][0]: [v for _, v in values] for values in self._headers.values()}

    def update(self, other) -> None:
        """Replace headers with those from ``other`` (dict or MultiValueHeaders)."""
        self._check_mutable()
        incoming = other if isinstance(other, MultiValueHeaders) else MultiValueHeaders(other)
        for name_lower, values in incoming._headers.items():
            self._headers[name_lower] = list(values)

    def copy(self) -> "MultiValueHeaders":
        return MultiValueHeaders(self)

    def __repr__(self):
        return f"MultiValueHeaders({self.items()!r})"


class HTTPMethod(Enum):
    """HTTP verbs a route can be registered for."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"

    @classmethod
    def coerce(cls, value: Union["HTTPMethod", str]) -> "HTTPMethod":
        """Accept an HTTPMethod or a method name in any case."""
        if isinstance(value, HTTPMethod):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {value!r}") from None


@dataclass
class Request:
    """Represents an incoming HTTP request.

    Built by the HTTP server adapter. The router binds the matched route onto
    it before any middleware runs, so the action and every middleware can
    introspect ``request.route`` and ``request.path_params``.

    ``attributes`` is a per-request bag for passing data forward between
    middleware layers (an authenticated user, a trace of visited layers).
    It belongs to this request only and must never be shared.
    """

    method: HTTPMethod
    path: str
    headers: Union[Dict[str, str], MultiValueHeaders] = field(default_factory=dict)
    body: Optional[bytes] = None
    query_params: Dict[str, str] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    route: Optional["Route"] = None
    path_params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.method = HTTPMethod.coerce(self.method)
        if not isinstance(self.headers, MultiValueHeaders):
            self.headers = MultiValueHeaders(self.headers)

    def bind_route(self, route: "Route") -> None:
        """Attach the matched route and the parameters it extracts from the path."""
        self.route = route
        self.path_params = route.extract_parameters(self.path)

    def route_parameters(self, key: Optional[str] = None) -> Any:
        if key is None:
            return dict(self.path_params)
        return self.path_params.get(key)

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def set_attribute(self, key: str, value: Any) -> "Request":
        self.attributes[key] = value
        return self

    def has_attribute(self, key: str) -> bool:
        return key in self.attributes

    def input(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Look a value up in route parameters, then body data, then the query string."""
        merged: Dict[str, Any] = {}
        merged.update(self.query_params)
        merged.update(self.data)
        merged.update(self.path_params)
        if key is None:
            return merged
        return merged.get(key, default)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def expects_json(self) -> bool:
        """True when the client asked for JSON or the call came from a script."""
        accept = self.headers.get("Accept") or ""
        if "json" in accept.lower():
            return True
        return (self.headers.get("X-Requested-With") or "").lower() == "xmlhttprequest"


@dataclass
class Response:
    """Represents an HTTP response.

    The body can be a str (sent as UTF-8), bytes, a dict or list (sent as
    JSON) or None. Responses stay mutable while they travel back out through
    the middleware chain; ``prepare()`` is the terminal step run by the
    adapter, after which the response can no longer change.
    """

    status_code: int = HTTPStatus.OK
    body: Optional[Union[str, bytes, dict, list]] = None
    headers: Optional[Union[Dict[str, str], MultiValueHeaders]] = None
    content_type: Optional[str] = None
    _prepared: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.headers, MultiValueHeaders):
            self.headers = MultiValueHeaders(self.headers)
        if self.content_type:
            self.headers["Content-Type"] = self.content_type

    def __setattr__(self, name: str, value: Any) -> None:
        if name != "_prepared" and getattr(self, "_prepared", False):
            raise ResponsePreparedError(f"Cannot change {name!r} on a prepared response")
        super().__setattr__(name, value)

    @property
    def prepared(self) -> bool:
        return self._prepared

    def _check_mutable(self) -> None:
        if self._prepared:
            raise ResponsePreparedError("Cannot modify a prepared response")

    def set_header(self, name: str, value: str) -> "Response":
        self._check_mutable()
        assert isinstance(self.headers, MultiValueHeaders)
        self.headers[name] = value
        if name.lower() == "content-type":
            self.content_type = value
        return self

    def remove_header(self, name: str) -> "Response":
        self._check_mutable()
        assert isinstance(self.headers, MultiValueHeaders)
        self.headers.remove(name)
        if name.lower() == "content-type":
            self.content_type = None
        return self

    def with_status(self, status_code: int) -> "Response":
        self.status_code = status_code
        return self

    def body_bytes(self) -> bytes:
        """Render the body the way it goes on the wire."""
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, (dict, list)):
            return json.dumps(self.body).encode("utf-8")
        return str(self.body).encode("utf-8")

    def body_text(self, errors: str = "strict") -> str:
        return self.body_bytes().decode("utf-8", errors)

    def prepare(self) -> "Response":
        """Finalize headers for sending; the response is read-only afterwards."""
        self._check_mutable()
        if self.body is None:
            self.remove_header("Content-Type")
            self.remove_header("Content-Length")
        else:
            self.set_header("Content-Length", str(len(self.body_bytes())))
        assert isinstance(self.headers, MultiValueHeaders)
        self.headers.freeze()
        self._prepared = True
        return self

    @classmethod
    def json(cls, data: Union[dict, list], status_code: int = HTTPStatus.OK) -> "Response":
        return cls(status_code, data, content_type="application/json")

    @classmethod
    def text(cls, text: str, status_code: int = HTTPStatus.OK) -> "Response":
        return cls(status_code, text, content_type="text/plain")

    @classmethod
    def html(cls, markup: str, status_code: int = HTTPStatus.OK) -> "Response":
        return cls(status_code, markup, content_type="text/html")

    @classmethod
    def redirect(cls, uri: str, status_code: int = HTTPStatus.FOUND) -> "Response":
        return cls(status_code, headers={"Location": uri})

    @classmethod
    def no_content(cls) -> "Response":
        return cls(HTTPStatus.NO_CONTENT)


def to_response(value: Any) -> Response:
    """Turn whatever an action returned into a Response."""
    if isinstance(value, Response):
        return value
    if value is None:
        return Response.no_content()
    if isinstance(value, (dict, list)):
        return Response.json(value)
    if isinstance(value, str):
        return Response.html(value)
    if isinstance(value, bytes):
        return Response(HTTPStatus.OK, value, content_type="application/octet-stream")
    raise TypeError(f"Cannot build a response from {type(value).__name__}")
