"""Tests for Router registration, lookup and naming."""

import logging

import pytest

from switchyard import HTTPMethod, Request, Router
from switchyard.config import DispatchConfig
from switchyard.events import RouteMatched
from switchyard.exceptions import (
    DuplicateRouteNameError,
    RouteNotFoundError,
    RouterFrozenError,
)
from switchyard.router import normalize_path


class TestPathNormalization:
    """Test path normalization utility."""

    def test_root_with_slash_path(self):
        assert normalize_path("/", "/users") == "/users"

    def test_prefix_with_no_slash_path(self):
        assert normalize_path("/api", "users") == "/api/users"

    def test_prefix_with_trailing_slash(self):
        assert normalize_path("/api/", "/users") == "/api/users"

    def test_root_to_root(self):
        assert normalize_path("/", "/") == "/"

    def test_prefix_with_param(self):
        assert normalize_path("/users", "/{id}") == "/users/{id}"


class TestRegistration:
    """Test route registration."""

    def test_register_returns_route(self, router):
        route = router.register("GET", "/users", lambda: [])
        assert route.pattern == "/users"
        assert route.method == HTTPMethod.GET
        assert router.routes("GET") == [route]

    def test_method_shortcuts(self, router):
        for method in ("get", "post", "put", "patch", "delete", "options"):
            getattr(router, method)("/items", lambda: None)
        assert [r.method for r in router.routes()] == list(HTTPMethod)

    def test_decorator_form_returns_function(self, router):
        @router.get("/users/{id}", name="users.show")
        def show_user(id):
            return {"id": id}

        assert callable(show_user)
        assert router.get_route_by_name("users.show").pattern == "/users/{id}"

    def test_pattern_without_leading_slash(self, router):
        router.get("users", lambda: None)
        assert router.routes("GET")[0].pattern == "/users"

    def test_register_with_options(self, router):
        route = router.post("/users", lambda: None, middleware_groups=["api"], middlewares=[lambda r, n: n()])
        assert route.middleware_groups == ("api",)
        assert len(route.middlewares) == 1

    def test_unknown_method_rejected(self, router):
        with pytest.raises(ValueError, match="Unsupported HTTP method"):
            router.register("BREW", "/coffee", lambda: None)

    def test_is_empty(self, router):
        assert router.is_empty()
        router.get("/", lambda: None)
        assert not router.is_empty()


class TestPrefixes:
    """Test grouped registration under a path prefix."""

    def test_prefix_applies_inside_block_only(self, router):
        with router.prefix("/api"):
            router.get("/users", lambda: None)
        router.get("/users", lambda: None)
        assert [r.pattern for r in router.routes("GET")] == ["/api/users", "/users"]

    def test_nested_prefixes(self, router):
        with router.prefix("api"):
            with router.prefix("/v1/"):
                router.get("/users", lambda: None)
        assert router.routes("GET")[0].pattern == "/api/v1/users"

    def test_prefix_root_route(self, router):
        with router.prefix("/admin"):
            router.get("/", lambda: "dashboard")
        route = router.resolve_route(Request("GET", "/admin"))
        assert route.pattern == "/admin/"


class TestResolveRoute:
    """Test first-match linear lookup."""

    def test_returns_exact_route(self, router):
        users = router.get("/users", lambda: None)
        user = router.get("/users/{id}", lambda id: None)
        assert router.resolve_route(Request("GET", "/users")) is users
        assert router.resolve_route(Request("GET", "/users/7")) is user

    def test_first_registered_wins_over_more_specific(self, router):
        """Overlap is resolved by registration order, not specificity."""
        generic = router.get("/users/{id}", lambda id: "generic")
        router.get("/users/me", lambda: "specific")
        assert router.resolve_route(Request("GET", "/users/me")) is generic

    def test_specific_first_wins_when_registered_first(self, router):
        specific = router.get("/users/me", lambda: "specific")
        router.get("/users/{id}", lambda id: "generic")
        assert router.resolve_route(Request("GET", "/users/me")) is specific

    @pytest.mark.parametrize("method", list(HTTPMethod))
    def test_not_found_for_every_method(self, router, method):
        router.get("/only-get", lambda: None)
        request = Request(method, "/missing")
        with pytest.raises(RouteNotFoundError) as exc_info:
            router.resolve_route(request)
        assert exc_info.value.status_code == 404
        assert exc_info.value.method == method.value
        assert exc_info.value.uri == "/missing"

    def test_method_tables_are_independent(self, router):
        router.post("/users", lambda: None)
        with pytest.raises(RouteNotFoundError):
            router.resolve_route(Request("GET", "/users"))

    def test_route_matched_event(self, router, events):
        seen = []
        events.listen(RouteMatched.name, seen.append)
        route = router.get("/users/{id}", lambda id: None)

        router.resolve_route(Request("GET", "/users/3"))

        assert seen == [RouteMatched(route, "/users/3", "GET")]

    def test_listener_exception_propagates(self, router, events):
        @events.listen("router.matched")
        def explode(event):
            raise RuntimeError("listener failed")

        router.get("/", lambda: None)
        with pytest.raises(RuntimeError, match="listener failed"):
            router.resolve_route(Request("GET", "/"))

    def test_logs_match_and_miss(self, router, caplog):
        router.get("/users", lambda: None)
        with caplog.at_level(logging.DEBUG, logger="switchyard.router"):
            router.resolve_route(Request("GET", "/users"))
            with pytest.raises(RouteNotFoundError):
                router.resolve_route(Request("GET", "/nope"))
        assert "Matched GET /users -> /users" in caplog.text
        assert "No route for GET /nope" in caplog.text


class TestIntrospection:
    """Test allowed methods and route listings."""

    def test_allowed_methods(self, router):
        router.get("/users/{id}", lambda id: None)
        router.delete("/users/{id}", lambda id: None)
        router.post("/users", lambda: None)
        assert router.allowed_methods("/users/4") == [HTTPMethod.GET, HTTPMethod.DELETE]
        assert router.allowed_methods("/nothing") == []

    def test_routes_in_registration_order(self, router):
        first = router.get("/a", lambda: None)
        second = router.get("/b", lambda: None)
        assert router.routes(HTTPMethod.GET) == [first, second]


class TestNamedRoutes:
    """Test route names and URL generation."""

    def test_set_name_registers_route(self, router):
        route = router.get("/users/{id}", lambda id: None).set_name("users.show")
        assert router.get_route_by_name("users.show") is route
        assert route.name == "users.show"

    def test_duplicate_name_rejected(self, router):
        router.get("/a", lambda: None).set_name("dup")
        with pytest.raises(DuplicateRouteNameError, match="dup"):
            router.get("/b", lambda: None).set_name("dup")

    def test_renaming_frees_old_name(self, router):
        route = router.get("/a", lambda: None).set_name("old")
        route.set_name("new")
        assert router.get_route_by_name("old") is None
        assert router.get_route_by_name("new") is route

    def test_failed_registration_releases_name(self, router):
        with pytest.raises(TypeError):
            router.get("/x", lambda: None, name="home", middlewares=["not-a-middleware"])

        assert router.routes("GET") == []
        assert router.get_route_by_name("home") is None
        with pytest.raises(KeyError):
            router.url_for("home")

        route = router.get("/x", lambda: None, name="home")
        assert router.get_route_by_name("home") is route

    def test_url_for(self, router):
        router.get("/users/{id}", lambda id: None, name="users.show")
        assert router.url_for("users.show", {"id": 12}) == "/users/12"

    def test_url_for_absolute_uses_base_url(self, container, events):
        router = Router(container, events, DispatchConfig(base_url="https://example.com/"))
        router.get("/users/{id}", lambda id: None, name="users.show")
        assert router.url_for("users.show", {"id": 1}, absolute=True) == "https://example.com/users/1"

    def test_url_for_absolute_with_domain(self, router):
        router.get("/about", lambda: None, name="about")
        assert router.url_for("about", absolute=True, domain="https://other.test") == "https://other.test/about"

    def test_url_for_unknown_name(self, router):
        with pytest.raises(KeyError):
            router.url_for("missing")


class TestFreeze:
    """Test the end of the registration phase."""

    def test_frozen_router_rejects_mutation(self, router):
        route = router.get("/a", lambda: None)
        router.freeze()

        assert router.frozen
        with pytest.raises(RouterFrozenError):
            router.get("/b", lambda: None)
        with pytest.raises(RouterFrozenError):
            router.set_global_middlewares([])
        with pytest.raises(RouterFrozenError):
            router.set_middleware_groups({})
        with pytest.raises(RouterFrozenError):
            route.set_middleware_groups(["api"])

    def test_frozen_router_still_resolves(self, router):
        router.get("/a", lambda: "ok")
        router.freeze()
        assert router.resolve(Request("GET", "/a")).body == "ok"
