"""
Unit tests for the router.
"""

import pytest

from simplecrud.http.router import Router, Route, RouteMatch, normalize_path, compile_path
from simplecrud.http.request import HTTPRequest
from simplecrud.http.response import HTTPStatus, ok


def echo(request: HTTPRequest):
    return ok({"path": request.path, "params": request.path_params})


@pytest.fixture
def api_router() -> Router:
    """The users API table, with echo handlers."""
    router = Router()
    router.add_route("/health", echo, method="GET", name="health")
    router.add_route("/users", echo, method="GET", name="list_users")
    router.add_route("/users/:id", echo, method="GET", name="get_user")
    router.add_route("/users", echo, method="POST", name="create_user")
    router.add_route("/users/:id", echo, method="PUT", name="update_user")
    router.add_route("/users/:id", echo, method="DELETE", name="delete_user")
    return router


class TestPaths:

    @pytest.mark.parametrize("raw,expected", [
        ("/users", "/users"),
        ("/users/", "/users"),
        ("/users/2/", "/users/2"),
        ("/", "/"),
        ("", "/"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize("path,regex", [
        ("/", "^/$"),
        ("/users", "^/users$"),
        ("/users/:id", "^/users/(?P<id>[^/]+)$"),
    ])
    def test_compile(self, path, regex):
        assert compile_path(path).pattern == regex

    def test_literal_segments_escaped(self):
        assert compile_path("/v1.0/users").match("/v1.0/users")
        assert not compile_path("/v1.0/users").match("/v1x0/users")


class TestMatching:

    @pytest.mark.parametrize("method,path,name", [
        ("GET", "/users", "list_users"),
        ("POST", "/users", "create_user"),
        ("GET", "/users/2", "get_user"),
        ("PUT", "/users/2", "update_user"),
        ("DELETE", "/users/2", "delete_user"),
        ("GET", "/health", "health"),
    ])
    def test_api_table(self, api_router, method, path, name):
        assert api_router.match(method, path).route.name == name

    def test_method_is_case_insensitive(self, api_router):
        assert api_router.match("post", "/users").route.name == "create_user"

    def test_id_captured_as_text(self, api_router):
        assert api_router.match("GET", "/users/2").params == {"id": "2"}
        assert api_router.match("GET", "/users/abc").params == {"id": "abc"}
        assert api_router.match("GET", "/users/-1").params == {"id": "-1"}

    def test_trailing_slash(self, api_router):
        assert api_router.match("GET", "/users/").route.name == "list_users"
        assert api_router.match("DELETE", "/users/3/").params == {"id": "3"}

    @pytest.mark.parametrize("method,path", [
        ("GET", "/posts"),
        ("GET", "/users/1/2"),
        ("PATCH", "/users/1"),
        ("DELETE", "/users"),
        ("POST", "/users/1"),
    ])
    def test_misses(self, api_router, method, path):
        assert api_router.match(method, path) is None

    def test_head_served_by_get_route(self, api_router):
        assert api_router.match("HEAD", "/users/5").route.name == "get_user"
        assert api_router.match("HEAD", "/health").route.name == "health"

    def test_head_route_preferred(self, api_router):
        api_router.add_route("/health", echo, method="HEAD", name="health_head")
        assert api_router.match("HEAD", "/health").route.name == "health_head"

    def test_head_without_get_route(self):
        router = Router()
        router.add_route("/users", echo, method="POST")
        assert router.match("HEAD", "/users") is None

    def test_several_params(self):
        router = Router()
        router.add_route("/users/:user_id/posts/:post_id", echo, method="GET")

        found = router.match("GET", "/users/456/posts/789")

        assert isinstance(found, RouteMatch)
        assert found.params == {"user_id": "456", "post_id": "789"}
        assert found.route.param_names == ["user_id", "post_id"]

    def test_any_method(self):
        router = Router()
        router.add_route("/echo", echo)

        assert router.match("OPTIONS", "/echo") is not None

    def test_first_registration_wins(self):
        router = Router()
        router.add_route("/users/:id", echo, method="GET", name="first")
        router.add_route("/users/:key", echo, method="GET", name="second")

        assert router.match("GET", "/users/1").route.name == "first"

    def test_root(self):
        router = Router()
        router.add_route("/", echo, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/users") is None

    def test_prefix(self):
        router = Router(prefix="/api/")
        route = router.add_route("/users", echo, method="GET")

        assert route.path == "/api/users"
        assert router.match("GET", "/api/users") is not None
        assert router.match("GET", "/users") is None


class TestHandle:

    def test_path_params_set_on_request(self, api_router):
        request = HTTPRequest(method="PUT", path="/users/7")
        response = api_router.handle(request)

        assert response.status == HTTPStatus.OK
        assert request.path_params == {"id": "7"}
        assert response.json["data"]["params"] == {"id": "7"}

    @pytest.mark.parametrize("method,path", [("GET", "/posts"), ("DELETE", "/users")])
    def test_miss_is_route_not_found(self, api_router, method, path):
        response = api_router.handle(HTTPRequest(method=method, path=path))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.json == {"success": False, "message": "Route not found"}

    def test_custom_not_found_message(self):
        router = Router(not_found_message="Nope")
        assert router.handle(HTTPRequest(method="GET", path="/")).json["message"] == "Nope"


class TestRegistration:

    def test_add_route_returns_route(self):
        router = Router()
        route = router.add_route("/users/", echo, method="get")

        assert isinstance(route, Route)
        assert route.path == "/users"
        assert route.method == "GET"
        assert router.routes() == [route]

    @pytest.mark.parametrize("verb", ["get", "post", "put", "delete"])
    def test_verb_decorators(self, verb):
        router = Router()

        @getattr(router, verb)("/things")
        def handler(request):
            return ok()

        assert router.routes()[0].method == verb.upper()
        assert router.routes()[0].handler is handler

    def test_meta(self):
        router = Router()

        @router.route("/users", "GET", name="list_users", summary="All users")
        def handler(request):
            return ok([])

        assert router.routes()[0].meta == {"summary": "All users"}


class TestUrlFor:

    def test_static(self, api_router):
        assert api_router.url_for("list_users") == "/users"

    def test_with_id(self, api_router):
        assert api_router.url_for("get_user", id=4) == "/users/4"

    def test_missing_param_left_as_pattern(self, api_router):
        assert api_router.url_for("get_user") == "/users/:id"

    def test_unknown_name(self, api_router):
        assert api_router.url_for("nonexistent") is None


class TestPrintRoutes:

    def test_table(self, capsys):
        router = Router()
        router.add_route("/users", echo, method="GET")
        router.add_route("/any", echo)

        router.print_routes()
        out = capsys.readouterr().out

        assert "GET      /users" in out
        assert "ANY      /any" in out
