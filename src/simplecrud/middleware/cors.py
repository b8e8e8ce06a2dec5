"""
=============================================================================
CORS MIDDLEWARE
=============================================================================

Lets browser code served from another origin call the API.

Out of the box it is as permissive as an unconfigured cors() in an
Express app:

    Access-Control-Allow-Origin     *
    Access-Control-Allow-Methods    GET,HEAD,PUT,PATCH,POST,DELETE
    Access-Control-Allow-Headers    whatever the preflight's
                                    Access-Control-Request-Headers lists

Preflight:

    OPTIONS /users/2                         204 No Content
    Origin: https://app.example      ──►     Access-Control-Allow-Origin: *
    Access-Control-Request-Method: PUT       Access-Control-Allow-Methods: ...
    Access-Control-Request-Headers:          Access-Control-Allow-Headers:
        content-type                             content-type
                                             Access-Control-Max-Age: 86400

OPTIONS requests stop here, so they never produce "Route not found".
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


ANY_ORIGIN = "*"
DEFAULT_METHODS = ("GET", "HEAD", "PUT", "PATCH", "POST", "DELETE")


@dataclass
class CORSConfig:
    """
    CORS options.

        CORSConfig()                                          # open
        CORSConfig(allow_origins=["https://app.example"],
                   allow_credentials=True)                    # locked down

    `allow_headers` None echoes whatever a preflight asks for.
    """

    allow_origins: List[str] = field(default_factory=lambda: [ANY_ORIGIN])
    allow_methods: List[str] = field(default_factory=lambda: list(DEFAULT_METHODS))
    allow_headers: Optional[List[str]] = None
    expose_headers: List[str] = field(default_factory=list)
    allow_credentials: bool = False
    max_age: int = 86400

    def origin_for(self, origin: str) -> Optional[str]:
        """
        Value of Access-Control-Allow-Origin for a request from `origin`.

            wildcard, no credentials    "*"
            wildcard, credentials       the origin itself
            listed origin               the origin itself
            anything else               None (no CORS headers at all)
        """
        if ANY_ORIGIN in self.allow_origins:
            return origin if origin and self.allow_credentials else ANY_ORIGIN
        return origin if origin in self.allow_origins else None


class CORSMiddleware(Middleware):
    """Answers preflights and adds CORS headers to every other response."""

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.method == "OPTIONS":
            response = ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()
            response.headers.update(self._preflight_headers(request))
        else:
            response = next(request)

        self._decorate(response, request.get_header("origin"))
        return response

    def _preflight_headers(self, request: HTTPRequest) -> Dict[str, str]:
        if self.config.allow_headers is None:
            requested = request.get_header("access-control-request-headers")
        else:
            requested = ",".join(self.config.allow_headers)

        headers = {
            "Access-Control-Allow-Methods": ",".join(self.config.allow_methods),
            "Access-Control-Max-Age": str(self.config.max_age),
        }
        if requested:
            headers["Access-Control-Allow-Headers"] = requested
        return headers

    def _decorate(self, response: HTTPResponse, origin: str) -> None:
        allowed = self.config.origin_for(origin)
        if allowed is None:
            return

        headers = response.headers
        headers["Access-Control-Allow-Origin"] = allowed
        if self.config.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if self.config.expose_headers:
            headers["Access-Control-Expose-Headers"] = ",".join(self.config.expose_headers)

        # A specific origin makes the response vary by Origin
        if allowed != ANY_ORIGIN:
            varies = [v.strip() for v in headers.get("Vary", "").split(",") if v.strip()]
            if "Origin" not in varies:
                headers["Vary"] = ", ".join(varies + ["Origin"])
