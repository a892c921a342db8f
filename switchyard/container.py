"""
Controller instantiation for controller-method route actions.

The router only needs something that turns a controller class into an
instance; ``ControllerResolver`` is that contract. ``Container`` is a small
default implementation that builds controllers by constructor parameter name.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Protocol

from .exceptions import ControllerResolutionError

logger = logging.getLogger(__name__)


class ControllerResolver(Protocol):
    """Anything that can hand out a ready-to-use controller instance."""

    def resolve(self, controller_type: type) -> Any:
        ...


class Container:
    """Builds a fresh controller for every resolution.

    Services are provided by name; a controller constructor parameter with the
    same name receives the service::

        container = Container()
        container.provide("users", lambda: UserRepository(db))

        class UserController:
            def __init__(self, users):
                self.users = users

        container.resolve(UserController).users  # a new UserRepository

    ``bind`` overrides construction of one controller type entirely.
    """

    def __init__(self):
        self._factories: Dict[type, Callable[[], Any]] = {}
        self._services: Dict[str, Callable[[], Any]] = {}

    def bind(self, controller_type: type, factory: Callable[[], Any]) -> None:
        """Use ``factory`` to build ``controller_type``."""
        self._factories[controller_type] = factory

    def provide(self, name: str, factory: Callable[[], Any]) -> None:
        """Register a named service, built by calling ``factory`` on each use."""
        self._services[name] = factory

    def has(self, name: str) -> bool:
        return name in self._services

    def make(self, name: str) -> Any:
        if name not in self._services:
            raise ControllerResolutionError(f"Unable to resolve service: {name}")
        return self._services[name]()

    def resolve(self, controller_type: type) -> Any:
        factory = self._factories.get(controller_type)
        try:
            if factory is not None:
                return factory()
            return controller_type(**self._constructor_arguments(controller_type))
        except ControllerResolutionError:
            raise
        except Exception as e:
            logger.error(f"Failed to build controller {controller_type.__name__}: {e}")
            raise ControllerResolutionError(
                f"Failed to build controller {controller_type.__name__}: {e}",
                original_exception=e,
            ) from e

    def _constructor_arguments(self, controller_type: type) -> Dict[str, Any]:
        try:
            signature = inspect.signature(controller_type)
        except (TypeError, ValueError):
            return {}

        kwargs: Dict[str, Any] = {}
        for param_name, param in signature.parameters.items():
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            if param_name in self._services:
                kwargs[param_name] = self._services[param_name]()
            elif param.default is inspect.Parameter.empty:
                raise ControllerResolutionError(
                    f"Unable to resolve dependency {param_name!r} for {controller_type.__name__}"
                )
        return kwargs
