"""
Router lifecycle events and a small synchronous dispatcher for them.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from .route import Route

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


@dataclass(frozen=True)
class RouteMatched:
    """Fired when the router found the route for a request."""

    route: "Route"
    uri: str
    method: str

    name = "router.matched"


class EventDispatcher:
    """Calls listeners registered for an event name, in registration order.

    Listeners run synchronously on the dispatching call stack; an exception
    raised by a listener propagates to whoever dispatched the event.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def listen(self, event_name: str, listener: Optional[Listener] = None):
        """Register a listener. Usable directly or as a decorator::

            @events.listen("router.matched")
            def log_match(event):
                ...
        """
        def decorator(func: Listener) -> Listener:
            self._listeners.setdefault(event_name, []).append(func)
            return func

        if listener is None:
            return decorator
        return decorator(listener)

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    def listeners(self, event_name: str) -> List[Listener]:
        return list(self._listeners.get(event_name, []))

    def dispatch(self, event: Any) -> None:
        event_name = getattr(event, "name", type(event).__name__)
        for listener in self._listeners.get(event_name, []):
            logger.debug(f"Dispatching {event_name} to {getattr(listener, '__name__', listener)!r}")
            listener(event)
