"""
=============================================================================
USERS HANDLER
=============================================================================

The HTTP face of the UserStore: parses ids and bodies, calls exactly one
store operation per request, and shapes the result into an envelope.

=============================================================================
ENDPOINTS
=============================================================================

    ┌────────┬──────────────┬────────┬─────────────────────────────────────┐
    │ Method │ Path         │ Status │ Body                                │
    ├────────┼──────────────┼────────┼─────────────────────────────────────┤
    │ GET    │ /users       │ 200    │ {success, data: [...], count}       │
    │ GET    │ /users/:id   │ 200    │ {success, data}                     │
    │ POST   │ /users       │ 201    │ {success, data, message}            │
    │ PUT    │ /users/:id   │ 200    │ {success, data, message}            │
    │ DELETE │ /users/:id   │ 200    │ {success, data, message}            │
    └────────┴──────────────┴────────┴─────────────────────────────────────┘

=============================================================================
ERROR TRANSLATION
=============================================================================

    ValidationFailed      400  "Name, email, and age are required"
                               (or the specific field message)
    DuplicateEmail        400  "Email already exists"
    NotFound              404  "User not found"
    malformed JSON body   400  "Invalid JSON body"

An id segment that is not a base-10 integer ("abc", "1.5") matches no
record, so it is answered exactly like an unknown id: 404.

Anything else a handler raises is left to ErrorMiddleware (500).
=============================================================================
"""

from functools import wraps
from typing import Callable, Optional
import logging
import re

from ..errors import NotFound, UserStoreError, status_for
from ..http.request import HTTPRequest, HTTPParseError
from ..http.response import HTTPResponse, ok, created, bad_request, failure
from ..http.router import Router
from ..payload import UserPayload
from ..store import UserStore


logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON body"

_ID_PATTERN = re.compile(r"-?[0-9]+")


def parse_user_id(raw: Optional[str]) -> int:
    """
    Parse the :id path segment. Only ASCII digits count.

    Raises:
        NotFound: The segment is not a base-10 integer, or has more digits
            than int() converts.
    """
    if raw is None or not _ID_PATTERN.fullmatch(raw):
        raise NotFound()
    try:
        return int(raw)
    except ValueError:
        raise NotFound() from None


def translate_errors(
    handler: Callable[["UserHandler", HTTPRequest], HTTPResponse]
) -> Callable[["UserHandler", HTTPRequest], HTTPResponse]:
    """Answer store errors and bad JSON with failure envelopes."""
    @wraps(handler)
    def wrapper(self: "UserHandler", request: HTTPRequest) -> HTTPResponse:
        try:
            return handler(self, request)
        except UserStoreError as e:
            logger.info(f"{request.method} {request.path} refused: {e.message}")
            return failure(e.message, status_for(e))
        except HTTPParseError as e:
            logger.info(f"{request.method} {request.path} refused: {e}")
            return bad_request(INVALID_JSON_MESSAGE)
    return wrapper


class UserHandler:
    """
    Route handlers for the /users resource.

    The store is injected, so every application (and every test) works on
    its own instance:

        store = UserStore.with_seed()
        users = UserHandler(store)
        users.register(router)
    """

    def __init__(self, store: UserStore):
        self.store = store
        self._router: Optional[Router] = None

    def register(self, router: Router) -> "UserHandler":
        """Add the five /users routes to a router."""
        router.get("/users", name="list_users")(self.list_users)
        router.get("/users/:id", name="get_user")(self.get_user)
        router.post("/users", name="create_user")(self.create_user)
        router.put("/users/:id", name="update_user")(self.update_user)
        router.delete("/users/:id", name="delete_user")(self.delete_user)
        self._router = router
        return self

    def _location(self, user_id: int) -> str:
        if self._router is not None:
            url = self._router.url_for("get_user", id=user_id)
            if url:
                return url
        return f"/users/{user_id}"

    # =========================================================================
    # HANDLERS
    # =========================================================================

    @translate_errors
    def list_users(self, request: HTTPRequest) -> HTTPResponse:
        logger.info("Getting all users")
        users = self.store.list()
        return ok([user.to_dict() for user in users], count=len(users))

    @translate_errors
    def get_user(self, request: HTTPRequest) -> HTTPResponse:
        user_id = parse_user_id(request.path_params.get("id"))
        logger.info(f"Getting user with ID: {user_id}")
        return ok(self.store.get(user_id).to_dict())

    @translate_errors
    def create_user(self, request: HTTPRequest) -> HTTPResponse:
        """
        POST /users

        All of name, email and age are required. The response carries a
        Location header pointing at the new record.
        """
        payload = UserPayload.from_json(request.json).require_complete()
        logger.info(f"Creating new user: {payload.name} <{payload.email}>")

        user = self.store.create(payload.name, payload.email, payload.age)
        logger.info(f"User created with ID: {user.id}")

        return created(
            user.to_dict(),
            message="User created successfully",
            location=self._location(user.id),
        )

    @translate_errors
    def update_user(self, request: HTTPRequest) -> HTTPResponse:
        """
        PUT /users/:id

        Partial: only fields present in the body change. An empty body
        returns the record unchanged.
        """
        user_id = parse_user_id(request.path_params.get("id"))
        # Unknown ids are 404 even when the body is also invalid
        self.store.get(user_id)
        payload = UserPayload.from_json(request.json)
        logger.info(f"Updating user with ID: {user_id}")

        user = self.store.update(
            user_id,
            name=payload.name,
            email=payload.email,
            age=payload.age,
        )
        return ok(user.to_dict(), message="User updated successfully")

    @translate_errors
    def delete_user(self, request: HTTPRequest) -> HTTPResponse:
        user_id = parse_user_id(request.path_params.get("id"))
        logger.info(f"Deleting user with ID: {user_id}")
        user = self.store.delete(user_id)
        return ok(user.to_dict(), message="User deleted successfully")
