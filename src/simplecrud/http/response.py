"""
=============================================================================
RESPONSES AND ENVELOPES
=============================================================================

Every body this API sends is a JSON object led by a `success` flag:

    {"success": true,  "data": [...], "count": 3}
    {"success": true,  "data": {...}, "message": "User created successfully"}
    {"success": false, "message": "User not found"}

success() and failure() build them; ok, created, bad_request, not_found
and internal_error fix the status.

to_bytes() adds Content-Length, Date and Server unless already set:

    HTTP/1.1 201 Created
    Content-Type: application/json; charset=utf-8
    Location: /users/4
    Content-Length: 112
    Date: Mon, 19 Oct 2026 12:00:00 GMT
    Server: SimpleCRUD/1.0

    {"success": true, "data": {...}, "message": "User created successfully"}
=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


JSON_CONTENT_TYPE = "application/json; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
DEFAULT_SERVER_NAME = "SimpleCRUD/1.0"

CRLF = "\r\n"


def _encode(body: Union[str, bytes]) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else body


@dataclass
class HTTPResponse:
    """A response ready to be written to the socket."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def json(self) -> Any:
        """Decoded JSON body; None for an empty body."""
        return json.loads(self.body) if self.body else None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = _encode(body)
        return self

    def strip_body(self) -> "HTTPResponse":
        """Drop the body for a HEAD answer, keeping the Content-Length it had."""
        self.headers.setdefault("Content-Length", str(len(self.body)))
        self.body = b""
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        defaults = {
            "Content-Length": str(len(self.body)),
            "Date": format_http_date(datetime.now(timezone.utc)),
            "Server": server_name,
        }
        headers = {**self.headers, **{k: v for k, v in defaults.items() if k not in self.headers}}

        head = CRLF.join([self.status_line, *(f"{name}: {value}" for name, value in headers.items())])
        return (head + CRLF + CRLF).encode("utf-8") + self.body


class ResponseBuilder:
    """
    Chainable construction of an HTTPResponse.

        (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json({"success": True, "data": user.to_dict()})
            .header("Location", "/users/4")
            .build())
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._response = HTTPResponse()
        self._server_name = server_name

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._response.status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._response.set_header(name, value)
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._response.headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._response.set_body(body)
        return self

    def text(self, text: str, content_type: str = TEXT_CONTENT_TYPE) -> "ResponseBuilder":
        return self.body(text).content_type(content_type)

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """JSON body. Non-ASCII text is sent as UTF-8, not \\u escapes."""
        encoded = json.dumps(data, ensure_ascii=False, indent=2 if pretty else None)
        return self.body(encoded).content_type(JSON_CONTENT_TYPE)

    def no_cache(self) -> "ResponseBuilder":
        return self.headers({
            "Cache-Control": "no-store, no-cache, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        })

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return self._response

    def to_bytes(self) -> bytes:
        return self._response.to_bytes(self._server_name)


def format_http_date(dt: datetime) -> str:
    """RFC 7231 date, e.g. "Thu, 15 Jan 2026 12:30:45 GMT"."""
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


# ─────────────────────────────────────────────────────────────────────────
# ENVELOPES
# ─────────────────────────────────────────────────────────────────────────

def success(data: Any = None, status: HTTPStatus = HTTPStatus.OK,
            message: Optional[str] = None, **extra: Any) -> HTTPResponse:
    """
    {"success": true, "data": ..., **extra, "message": ...}

    `data` is left out when None (an empty list stays), `message` when
    None. Keys appear in that order.
    """
    envelope: Dict[str, Any] = {"success": True}
    if data is not None:
        envelope["data"] = data
    envelope.update(extra)
    if message is not None:
        envelope["message"] = message
    return ResponseBuilder().status(status).json(envelope).build()


def failure(message: str, status: HTTPStatus = HTTPStatus.BAD_REQUEST) -> HTTPResponse:
    """{"success": false, "message": ...}"""
    return ResponseBuilder().status(status).json({"success": False, "message": message}).build()


def ok(data: Any = None, message: Optional[str] = None, **extra: Any) -> HTTPResponse:
    return success(data, HTTPStatus.OK, message, **extra)


def created(data: Any = None, message: Optional[str] = None,
            location: Optional[str] = None) -> HTTPResponse:
    """201 envelope; `location` becomes the Location header."""
    response = success(data, HTTPStatus.CREATED, message)
    if location:
        response.set_header("Location", location)
    return response


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return failure(message, HTTPStatus.BAD_REQUEST)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return failure(message, HTTPStatus.NOT_FOUND)


def internal_error(message: str = "Internal server error") -> HTTPResponse:
    # Exception details go to the log only
    return failure(message, HTTPStatus.INTERNAL_SERVER_ERROR)
