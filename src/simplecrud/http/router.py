"""
=============================================================================
ROUTER
=============================================================================

Picks the handler for a (method, path) pair. The API's table:

    GET     /health       health.handle
    GET     /users        users.list_users
    GET     /users/:id    users.get_user
    POST    /users        users.create_user
    PUT     /users/:id    users.update_user
    DELETE  /users/:id    users.delete_user

A ":name" segment captures exactly one path segment into
request.path_params; "/users/:id" compiles to ^/users/(?P<id>[^/]+)$.
The captured text is not validated here, so "/users/abc" still reaches
get_user, which answers "User not found".

Before matching, the trailing slash is dropped ("/users/" is "/users").
Routes are tried in registration order and the first hit wins. HEAD is
served by the GET route for the same path. A miss,
whether the path is unknown or the method is not registered for it, is

    404 {"success": false, "message": "Route not found"}

and never a 405.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, Any, List
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found


Handler = Callable[[HTTPRequest], HTTPResponse]

ROUTE_NOT_FOUND = "Route not found"

_PARAM = re.compile(r"^:(\w+)$")


def normalize_path(path: str) -> str:
    """"/users/" -> "/users"; "" and "/" -> "/"."""
    return "/" + path.strip("/")


def compile_path(path: str) -> re.Pattern:
    """Anchored regex for a route path, with one named group per :param."""
    pieces = []
    for segment in path.strip("/").split("/"):
        if not segment:
            continue
        param = _PARAM.match(segment)
        pieces.append(f"(?P<{param.group(1)}>[^/]+)" if param else re.escape(segment))
    return re.compile("^/" + "/".join(pieces) + "$")


@dataclass
class Route:
    """One entry of the route table. `method` None means any method."""

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.pattern = compile_path(self.path)

    @property
    def param_names(self) -> List[str]:
        return list(self.pattern.groupindex)

    def accepts(self, method: str) -> bool:
        return self.method is None or self.method == method

    def build(self, **params: Any) -> str:
        """The concrete URL for these parameter values."""
        return "/".join(
            str(params[segment[1:]]) if segment[1:] in params and _PARAM.match(segment) else segment
            for segment in self.path.split("/")
        )


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Route table with decorator registration and named routes.

        router = Router()

        @router.get("/users/:id", name="get_user")
        def get_user(request):
            user_id = request.path_params["id"]
            ...

        router.url_for("get_user", id=4)   # "/users/4"

    Args:
        prefix: Prepended to every registered path.
        not_found_message: Message of the 404 envelope for misses.
    """

    def __init__(self, prefix: str = "", not_found_message: str = ROUTE_NOT_FOUND):
        self.prefix = prefix.rstrip("/")
        self.not_found_message = not_found_message
        self._table: List[Route] = []
        self._by_name: Dict[str, Route] = {}

    def add_route(self, path: str, handler: Handler, method: Optional[str] = None,
                  name: Optional[str] = None, **meta: Any) -> Route:
        """
        Register `handler` for `path` (":param" segments allowed) and
        `method` (any method when None). `name` makes it reachable from
        url_for(); extra keywords end up in route.meta.
        """
        route = Route(
            path=normalize_path(self.prefix + path),
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            meta=meta,
        )
        self._table.append(route)
        if name:
            self._by_name[name] = route
        return route

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        The first route for this method and path, or None. HEAD falls back
        to the GET route when no HEAD route is registered.
        """
        method, path = method.upper(), normalize_path(path)
        found = self._first(method, path)
        if found is None and method == "HEAD":
            found = self._first("GET", path)
        return found

    def _first(self, method: str, path: str) -> Optional[RouteMatch]:
        for route in self._table:
            if not route.accepts(method):
                continue
            hit = route.pattern.match(path)
            if hit:
                return RouteMatch(route, hit.groupdict())
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run the matching handler with request.path_params set, or answer 404."""
        found = self.match(request.method, request.path)
        if found is None:
            return not_found(self.not_found_message)

        request.path_params = found.params
        return found.route.handler(request)

    # ─────────────────────────────────────────────────────────────────────
    # DECORATORS
    # ─────────────────────────────────────────────────────────────────────

    def route(self, path: str, method: Optional[str] = None, name: Optional[str] = None,
              **meta: Any) -> Callable[[Handler], Handler]:
        def register(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name, **meta)
            return handler
        return register

    def get(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name, **meta)

    def post(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name, **meta)

    def put(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", name, **meta)

    def delete(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", name, **meta)

    # ─────────────────────────────────────────────────────────────────────
    # INTROSPECTION
    # ─────────────────────────────────────────────────────────────────────

    def url_for(self, name: str, **params: Any) -> Optional[str]:
        """URL of a named route, e.g. url_for("get_user", id=4) -> "/users/4"; None if unknown."""
        route = self._by_name.get(name)
        return route.build(**params) if route else None

    def routes(self) -> List[Route]:
        return list(self._table)

    def print_routes(self) -> None:
        """Route table for the startup banner."""
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self._table:
            print(f"  {route.method or 'ANY':8} {route.path}")
        print("-" * 60)
