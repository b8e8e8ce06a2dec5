"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this service can answer with, and their reason phrases.

    ┌────────┬──────────────────────────────┬──────────────────────────────┐
    │  Code  │ Phrase                       │ Sent when                    │
    ├────────┼──────────────────────────────┼──────────────────────────────┤
    │  200   │ OK                           │ list / get / update / delete │
    │  201   │ Created                      │ POST /users                  │
    │  204   │ No Content                   │ CORS preflight (OPTIONS)     │
    ├────────┼──────────────────────────────┼──────────────────────────────┤
    │  400   │ Bad Request                  │ validation, duplicate email, │
    │        │                              │ malformed JSON or request    │
    │  404   │ Not Found                    │ unknown user, unknown route  │
    │  405   │ Method Not Allowed           │ unparseable request method   │
    │  408   │ Request Timeout              │ client never sent a request  │
    │  413   │ Payload Too Large            │ request over the size limit  │
    ├────────┼──────────────────────────────┼──────────────────────────────┤
    │  500   │ Internal Server Error        │ handler raised unexpectedly  │
    │  503   │ Service Unavailable          │ worker queue full            │
    │  505   │ HTTP Version Not Supported   │ not HTTP/1.0 or HTTP/1.1     │
    └────────┴──────────────────────────────┴──────────────────────────────┘

Note that a known path with the wrong method is still a 404
("Route not found"), not a 405. 405 only comes from the request parser.
=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

    IntEnum, so members compare and serialize as plain integers:

        >>> HTTPStatus.CREATED == 201
        True
        >>> HTTPStatus.CREATED.phrase
        'Created'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. "Not Found"."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """4xx or 5xx. Used to pick the access log level."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
