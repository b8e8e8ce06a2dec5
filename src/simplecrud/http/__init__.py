"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

    request.py       bytes -> HTTPRequest        (RequestParser)
    response.py      HTTPResponse -> bytes       (ResponseBuilder, envelopes)
    router.py        (method, path) -> handler   (Router)
    status_codes.py  HTTPStatus enum with reason phrases

=============================================================================
"""

from .status_codes import HTTPStatus
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    success,
    failure,
    ok,
    created,
    bad_request,
    not_found,
    internal_error,
)
from .router import Router, Route, RouteMatch, Handler

__all__ = [
    "HTTPStatus",
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "success",
    "failure",
    "ok",
    "created",
    "bad_request",
    "not_found",
    "internal_error",
    "Router",
    "Route",
    "RouteMatch",
    "Handler",
]
