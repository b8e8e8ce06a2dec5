"""
=============================================================================
USER STORE ERRORS
=============================================================================

Every way a store operation can be refused, as an exception hierarchy.

    ┌──────────────────────┬────────────┬──────────────────────────────────┐
    │ Exception            │ HTTP       │ Default message                  │
    ├──────────────────────┼────────────┼──────────────────────────────────┤
    │ ValidationFailed     │ 400        │ Name, email, and age are required│
    │ DuplicateEmail       │ 400        │ Email already exists             │
    │ NotFound             │ 404        │ User not found                   │
    └──────────────────────┴────────────┴──────────────────────────────────┘

The store itself knows nothing about HTTP. The status codes live in
`status_for()` so the users handler can translate an error into an
envelope without an if/elif ladder.

Two failure kinds are not exceptions here:

- "Route not found" is the router's fallback response.
- "Internal server error" is whatever escapes a handler, answered by
  ErrorMiddleware.
=============================================================================
"""

from typing import Optional

from .http.status_codes import HTTPStatus


class UserStoreError(Exception):
    """
    Base class for refused store operations.

    The message is the exact text sent back to the client in the
    `message` field of the error envelope.
    """

    default_message = "User store error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(UserStoreError):
    """A required field is missing or a field has the wrong shape."""

    default_message = "Name, email, and age are required"


class DuplicateEmail(UserStoreError):
    """Another record already holds this email."""

    default_message = "Email already exists"


class NotFound(UserStoreError):
    """No record has the requested id."""

    default_message = "User not found"


_STATUS_BY_ERROR = {
    ValidationFailed: HTTPStatus.BAD_REQUEST,
    DuplicateEmail: HTTPStatus.BAD_REQUEST,
    NotFound: HTTPStatus.NOT_FOUND,
}


def status_for(error: UserStoreError) -> HTTPStatus:
    """Map a store error to the HTTP status it is answered with."""
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status
    return HTTPStatus.BAD_REQUEST
