"""
=============================================================================
REQUESTS
=============================================================================

RequestParser turns one complete request, exactly as Connection read it,
into an HTTPRequest:

    PUT /users/2 HTTP/1.1\r\n           request line  -> method, path, version
    Host: localhost:3000\r\n            headers       -> lower-cased dict
    Content-Type: application/json\r\n
    Content-Length: 11\r\n
    \r\n                                end of headers
    {"age": 26}                         body          -> Content-Length bytes

Rejections carry the status the client gets back:

    400   missing blank line, malformed request line, ".." in the path,
          unusable Content-Length, body shorter than announced
    405   a method this server does not speak
    413   more than max_request_size bytes
    505   an HTTP version other than 1.0 / 1.1

An unreadable JSON body is not a parse failure. It surfaces only when a
handler asks for `request.json`, and the users handler turns it into its
own "Invalid JSON body" envelope.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple
from urllib.parse import parse_qs, urlsplit, unquote
import re
import json


class HTTPParseError(Exception):
    """A request that cannot be served. `status_code` is what to answer."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


_UNDECODED = object()
_DIGITS = re.compile(r"[0-9]+")


@dataclass
class HTTPRequest:
    """
    A parsed request.

    `headers` are keyed by lower-case name. `query_params` maps each name
    to all its values (`?a=1&a=2` -> `{"a": ["1", "2"]}`); routing ignores
    them. `path_params` is filled in by the router, e.g. `{"id": "2"}` for
    `/users/:id`. `raw` keeps the bytes as received.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = b""

    _json: Any = field(default=_UNDECODED, repr=False, compare=False)

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        return next(iter(self.query_params.get(name, ())), default)

    @property
    def content_type(self) -> Optional[str]:
        """Media type without parameters, e.g. "application/json"."""
        media_type = self.get_header("content-type").partition(";")[0]
        return media_type.strip().lower() or None

    @property
    def is_json(self) -> bool:
        return self.content_type == "application/json"

    @property
    def content_length(self) -> int:
        """Declared body size; 0 when absent or unreadable."""
        value = self.get_header("content-length", "0").strip()
        return int(value) if _DIGITS.fullmatch(value) else 0

    @property
    def host(self) -> str:
        return self.get_header("host")

    @property
    def user_agent(self) -> str:
        return self.get_header("user-agent")

    @property
    def json(self) -> Any:
        """
        The body as JSON, decoded on first access. An empty or blank body
        is None. Content-Type is not required.

        Raises:
            HTTPParseError: The body is not UTF-8 JSON (status 400).
        """
        if self._json is _UNDECODED:
            self._json = _decode_json(self.body)
        return self._json

    @property
    def is_keep_alive(self) -> bool:
        """HTTP/1.1 stays open unless told to close; HTTP/1.0 only when asked."""
        connection = self.get_header("connection").lower()
        if self.version == "HTTP/1.0":
            return connection == "keep-alive"
        return connection != "close"


def _decode_json(body: bytes) -> Any:
    if not body.strip():
        return None
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise HTTPParseError(f"Invalid JSON body: {e}") from e


class RequestParser:
    """
    Stateless parser; one instance is shared by every worker.

        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw, ("127.0.0.1", 52814))
    """

    METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"})
    VERSIONS = frozenset({"HTTP/1.0", "HTTP/1.1"})

    VERSION_SYNTAX = re.compile(r"HTTP/\d\.\d")
    METHOD_SYNTAX = re.compile(r"[A-Z]+")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse one complete request.

        Raises:
            HTTPParseError: With the status to answer (400/405/413/505).
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        head, separator, rest = data.partition(b"\r\n\r\n")
        if not separator:
            raise HTTPParseError("Incomplete request: no header terminator")

        request_line, *header_lines = head.decode("utf-8", errors="replace").split("\r\n")
        method, path, query_params, version = self._parse_request_line(request_line)
        headers = self._parse_headers(header_lines)

        length = self._declared_length(headers)
        if len(rest) < length:
            raise HTTPParseError(f"Incomplete body: expected {length} bytes, got {len(rest)}")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=rest[:length],
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, Dict[str, List[str]], str]:
        """METHOD SP TARGET SP VERSION -> (method, path, query_params, version)"""
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = parts
        if not self.METHOD_SYNTAX.fullmatch(method) or not self.VERSION_SYNTAX.fullmatch(version):
            raise HTTPParseError(f"Invalid request line: {line!r}")
        if method not in self.METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)
        if version not in self.VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        url = urlsplit(target)
        path = unquote(url.path) or "/"
        if ".." in path:
            raise HTTPParseError("Invalid path: contains ..")

        return method, path, parse_qs(url.query, keep_blank_values=True), version

    @staticmethod
    def _parse_headers(lines: List[str]) -> Dict[str, str]:
        """
        Lower-cased names; repeated headers joined with ", "; indented lines
        continue the previous header. Lines without a name are skipped.
        """
        headers: Dict[str, str] = {}
        last = None

        for line in filter(None, lines):
            if line[0] in " \t":
                if last is not None:
                    headers[last] = f"{headers[last]} {line.strip()}"
                continue

            name, colon, value = line.partition(":")
            name = name.strip().lower()
            if not colon or not name:
                continue

            value = value.strip()
            headers[name] = f"{headers[name]}, {value}" if name in headers else value
            last = name

        return headers

    @staticmethod
    def _declared_length(headers: Dict[str, str]) -> int:
        value = headers.get("content-length", "0").strip()
        if not _DIGITS.fullmatch(value):
            raise HTTPParseError(f"Invalid Content-Length header: {value!r}")
        return int(value)


def parse_request(data: bytes, client_address: Tuple[str, int] = ("", 0),
                  max_size: int = 1024 * 1024) -> HTTPRequest:
    """Parse with a one-off RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
