"""
Shared pytest fixtures for the dispatch core tests.
"""

import pytest

from switchyard import (
    Container,
    DispatchConfig,
    EventDispatcher,
    ExceptionHandler,
    Middleware,
    Request,
    Router,
)


class RecordingMiddleware(Middleware):
    """Appends its label to ``request.attributes["trace"]`` on the way in and out."""

    def __init__(self, label: str):
        self.label = label
        self.calls = 0

    def handle(self, request, next):
        self.calls += 1
        request.attributes.setdefault("trace", []).append(f"{self.label}:in")
        response = next()
        request.attributes["trace"].append(f"{self.label}:out")
        return response

    @property
    def name(self) -> str:
        return self.label


@pytest.fixture
def config():
    return DispatchConfig()


@pytest.fixture
def container():
    return Container()


@pytest.fixture
def events():
    return EventDispatcher()


@pytest.fixture
def router(container, events, config):
    return Router(resolver=container, events=events, config=config)


@pytest.fixture
def handler(config):
    return ExceptionHandler(config)


@pytest.fixture
def make_request():
    """Build a Request with sensible defaults."""
    def _make(method="GET", path="/", **kwargs):
        return Request(method, path, **kwargs)
    return _make


@pytest.fixture
def recorder():
    """Factory for RecordingMiddleware instances."""
    return RecordingMiddleware
