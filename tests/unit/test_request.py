"""
Unit tests for RequestParser and HTTPRequest.
"""

import pytest

from simplecrud.http.request import HTTPRequest, RequestParser, HTTPParseError, parse_request


def rejection(raw: bytes, parser: RequestParser = None) -> HTTPParseError:
    with pytest.raises(HTTPParseError) as exc_info:
        (parser or RequestParser()).parse(raw)
    return exc_info.value


class TestRequestLine:

    def test_listing(self, sample_get_request: bytes):
        request = RequestParser().parse(sample_get_request, ("127.0.0.1", 52814))

        assert (request.method, request.path, request.version) == ("GET", "/users", "HTTP/1.1")
        assert request.client_address == ("127.0.0.1", 52814)
        assert request.raw == sample_get_request

    def test_query_kept_out_of_path(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.path == "/users"
        assert request.query_params == {"page": ["1"], "limit": ["10"]}
        assert request.get_query("page") == "1"
        assert request.get_query("sort") is None
        assert request.get_query("sort", "id") == "id"

    def test_percent_decoding(self):
        request = parse_request(b"GET /users?q=jane%20doe HTTP/1.1\r\n\r\n")
        assert request.get_query("q") == "jane doe"

    def test_bare_request(self):
        request = parse_request(b"DELETE /users/3 HTTP/1.1\r\n\r\n")

        assert request.path == "/users/3"
        assert request.headers == {}
        assert request.body == b""

    @pytest.mark.parametrize("raw,status", [
        (b"GET\r\n\r\n", 400),
        (b"GET /users\r\n\r\n", 400),
        (b"get /users HTTP/1.1\r\n\r\n", 400),
        (b"GET /users HTTP/one\r\n\r\n", 400),
        (b"BREW /users HTTP/1.1\r\n\r\n", 405),
        (b"GET /users HTTP/2.0\r\n\r\n", 505),
        (b"GET /users/../etc/passwd HTTP/1.1\r\n\r\n", 400),
        (b"GET /users HTTP/1.1\r\nHost: x\r\n", 400),
    ])
    def test_rejected(self, raw, status):
        assert rejection(raw).status_code == status

    def test_oversized(self):
        raw = b"GET /users HTTP/1.1\r\nX-Padding: " + b"x" * 200 + b"\r\n\r\n"
        assert rejection(raw, RequestParser(max_request_size=100)).status_code == 413


class TestHeaders:

    def test_lookup_ignores_case(self):
        request = parse_request(b"GET / HTTP/1.1\r\nCONTENT-TYPE: Application/JSON; charset=utf-8\r\n\r\n")

        assert request.get_header("Content-Type") == "Application/JSON; charset=utf-8"
        assert request.content_type == "application/json"
        assert request.is_json

    def test_convenience_properties(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.host == "localhost:3000"
        assert request.user_agent == "pytest"
        assert request.get_header("accept") == "application/json"

    def test_repeats_joined(self):
        raw = b"GET / HTTP/1.1\r\nAccept: text/plain\r\nAccept: application/json\r\n\r\n"
        assert parse_request(raw).headers["accept"] == "text/plain, application/json"

    def test_continuation_line(self):
        raw = b"GET / HTTP/1.1\r\nX-Note: first\r\n\tsecond\r\n\r\n"
        assert parse_request(raw).headers["x-note"] == "first second"

    def test_line_without_colon_skipped(self):
        raw = b"GET / HTTP/1.1\r\ngarbage\r\nHost: api\r\n\r\n"
        assert parse_request(raw).headers == {"host": "api"}

    @pytest.mark.parametrize("raw,keep_alive", [
        (b"GET / HTTP/1.1\r\n\r\n", True),
        (b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n", False),
        (b"GET / HTTP/1.0\r\n\r\n", False),
        (b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n", True),
    ])
    def test_keep_alive(self, raw, keep_alive):
        assert parse_request(raw).is_keep_alive is keep_alive


class TestBody:

    def test_create_payload(self, sample_post_request: bytes):
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.json == {"name": "Alice", "email": "alice@example.com", "age": 28}
        assert request.content_length == len(request.body)
        assert not request.is_keep_alive

    def test_stops_at_content_length(self):
        raw = b"PUT /users/2 HTTP/1.1\r\nContent-Length: 11\r\n\r\n{\"age\": 26}EXTRA"
        assert parse_request(raw).body == b'{"age": 26}'

    def test_shorter_than_announced(self):
        raw = b"POST /users HTTP/1.1\r\nContent-Length: 40\r\n\r\n{}"
        assert rejection(raw).status_code == 400

    @pytest.mark.parametrize("value", [b"ten", b"-5", b"1.5", b"\xd9\xa3"])
    def test_unusable_content_length(self, value):
        raw = b"POST /users HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\n"
        assert rejection(raw).status_code == 400


class TestJSONBody:

    def body(self, data: bytes) -> HTTPRequest:
        return HTTPRequest(method="POST", path="/users", body=data)

    @pytest.mark.parametrize("data", [b"", b" \r\n\t"])
    def test_blank_is_none(self, data):
        assert self.body(data).json is None

    def test_content_type_not_required(self):
        assert self.body(b'{"name": "Dana"}').json == {"name": "Dana"}

    def test_decoded_once(self):
        request = self.body(b'{"name": "Dana"}')
        assert request.json is request.json

    @pytest.mark.parametrize("data", [b'{"name": ', b"\xff\xfe", b"{'single': 1}"])
    def test_unreadable(self, data):
        with pytest.raises(HTTPParseError) as exc_info:
            self.body(data).json
        assert exc_info.value.status_code == 400
        assert str(exc_info.value).startswith("Invalid JSON body")


class TestDefaults:

    def test_missing_header(self):
        request = HTTPRequest(method="GET", path="/users")

        assert request.get_header("X-Trace") == ""
        assert request.get_header("X-Trace", "none") == "none"
        assert request.content_type is None

    def test_garbled_content_length_reads_as_zero(self):
        request = HTTPRequest(method="GET", path="/", headers={"content-length": "lots"})
        assert request.content_length == 0
