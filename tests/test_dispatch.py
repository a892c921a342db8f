"""Tests for end-to-end dispatch with callable and controller actions."""

import pytest

from switchyard import Container, Request, Response, Router
from switchyard.exceptions import ControllerResolutionError


class UserRepository:
    def __init__(self):
        self.users = {"1": "alice", "2": "bob"}

    def find(self, id):
        return self.users.get(id)


class UserController:
    instances = 0

    def __init__(self, users):
        UserController.instances += 1
        self.users = users

    def index(self):
        return sorted(self.users.users.values())

    def show(self, id):
        return {"id": id, "name": self.users.find(id)}

    def store(self, request: Request):
        return Response.json({"created": request.input("name")}, 201)


@pytest.fixture
def app_router(container):
    container.provide("users", UserRepository)
    router = Router(resolver=container)
    router.get("/users", (UserController, "index"))
    router.get("/users/{id}", (UserController, "show"))
    router.post("/users", (UserController, "store"))
    return router


class TestControllerActions:
    """Test controller-method actions resolved through the container."""

    def test_index(self, app_router):
        response = app_router.resolve(Request("GET", "/users"))
        assert response.body == ["alice", "bob"]

    def test_show_receives_route_parameter(self, app_router):
        response = app_router.resolve(Request("GET", "/users/2/"))
        assert response.body == {"id": "2", "name": "bob"}

    def test_store_receives_request(self, app_router):
        response = app_router.resolve(Request("POST", "/users", data={"name": "carol"}))
        assert response.status_code == 201
        assert response.body == {"created": "carol"}

    def test_fresh_controller_per_request(self, app_router):
        before = UserController.instances
        app_router.resolve(Request("GET", "/users"))
        app_router.resolve(Request("GET", "/users"))
        assert UserController.instances == before + 2

    def test_missing_method_raises(self, container):
        router = Router(resolver=container)
        container.bind(UserController, lambda: UserController(UserRepository()))
        router.get("/broken", (UserController, "nope"))
        with pytest.raises(ControllerResolutionError, match="no action method 'nope'"):
            router.resolve(Request("GET", "/broken"))

    def test_controller_without_resolver(self):
        router = Router()
        router.get("/users", (UserController, "index"))
        with pytest.raises(ControllerResolutionError):
            router.resolve(Request("GET", "/users"))

    def test_controller_built_before_middleware(self, container):
        order = []

        class Tracked:
            def __init__(self):
                order.append("controller")

            def run(self):
                order.append("action")

        def mw(request, next):
            order.append("middleware")
            return next()

        router = Router(resolver=container)
        router.get("/t", (Tracked, "run"), middlewares=[mw])
        router.resolve(Request("GET", "/t"))

        assert order == ["controller", "middleware", "action"]


class TestResponseCoercion:
    """Test turning action return values into responses."""

    @pytest.mark.parametrize(
        "value, status, content_type",
        [
            ({"a": 1}, 200, "application/json"),
            ([1, 2], 200, "application/json"),
            ("<p>hi</p>", 200, "text/html"),
            (b"\x00\x01", 200, "application/octet-stream"),
            (None, 204, None),
        ],
    )
    def test_return_values(self, router, value, status, content_type):
        router.get("/v", lambda: value)
        response = router.resolve(Request("GET", "/v"))
        assert response.status_code == status
        assert response.content_type == content_type

    def test_unsupported_return_value(self, router):
        router.get("/v", lambda: 3.14)
        with pytest.raises(TypeError, match="float"):
            router.resolve(Request("GET", "/v"))


class TestContainer:
    """Test the default controller container."""

    def test_resolve_with_named_service(self):
        container = Container()
        container.provide("users", UserRepository)
        controller = container.resolve(UserController)
        assert isinstance(controller.users, UserRepository)

    def test_services_built_per_resolution(self):
        container = Container()
        container.provide("users", UserRepository)
        assert container.resolve(UserController).users is not container.resolve(UserController).users

    def test_defaults_may_be_omitted(self):
        class WithDefault:
            def __init__(self, limit=10):
                self.limit = limit

        assert Container().resolve(WithDefault).limit == 10

    def test_missing_dependency(self):
        with pytest.raises(ControllerResolutionError, match="'users'"):
            Container().resolve(UserController)

    def test_bind_overrides_construction(self):
        container = Container()
        repo = UserRepository()
        container.bind(UserController, lambda: UserController(repo))
        assert container.resolve(UserController).users is repo

    def test_constructor_failure_is_wrapped(self, caplog):
        class Broken:
            def __init__(self):
                raise RuntimeError("db down")

        with pytest.raises(ControllerResolutionError) as exc_info:
            Container().resolve(Broken)
        assert isinstance(exc_info.value.original_exception, RuntimeError)
        assert "Failed to build controller Broken" in caplog.text

    def test_make_service(self):
        container = Container()
        container.provide("answer", lambda: 42)
        assert container.has("answer")
        assert container.make("answer") == 42
        with pytest.raises(ControllerResolutionError):
            container.make("question")
