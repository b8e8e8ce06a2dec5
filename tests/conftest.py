"""
Shared fixtures: raw request bytes, an in-process app driven through
dispatch(), and a live server on an OS-chosen port.
"""

import json
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from simplecrud import HTTPServer, ServerConfig, UserStore, create_app
from simplecrud.http import HTTPRequest, HTTPResponse


# ─────────────────────────────────────────────────────────────────────────
# RAW REQUESTS
# ─────────────────────────────────────────────────────────────────────────

@pytest.fixture
def sample_get_request() -> bytes:
    """Keep-alive listing with a query string."""
    return b"\r\n".join([
        b"GET /users?page=1&limit=10 HTTP/1.1",
        b"Host: localhost:3000",
        b"User-Agent: pytest",
        b"Accept: application/json",
        b"Connection: keep-alive",
        b"",
        b"",
    ])


@pytest.fixture
def sample_post_request() -> bytes:
    """Create for Alice, closing afterwards."""
    body = json.dumps({"name": "Alice", "email": "alice@example.com", "age": 28}).encode()
    head = b"\r\n".join([
        b"POST /users HTTP/1.1",
        b"Host: localhost:3000",
        b"Content-Type: application/json",
        b"Content-Length: %d" % len(body),
        b"Connection: close",
    ])
    return head + b"\r\n\r\n" + body


# ─────────────────────────────────────────────────────────────────────────
# IN-PROCESS APP
# ─────────────────────────────────────────────────────────────────────────

@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(host="127.0.0.1", port=0, min_workers=2, max_workers=4,
                        timeout=5.0, log_level="WARNING")


@pytest.fixture
def store() -> UserStore:
    """Alice, Bob and Charlie; next id 4."""
    return UserStore.with_seed()


@pytest.fixture
def app(config: ServerConfig, store: UserStore) -> HTTPServer:
    return create_app(config, store=store)


def build_request(method: str, path: str, body: Any = None,
                  headers: Optional[Dict[str, str]] = None) -> HTTPRequest:
    """
    An HTTPRequest shaped like the parser's output.

    str and bytes bodies go out as given; anything else is JSON-encoded.
    A non-empty body gets Content-Length and, unless overridden,
    Content-Type: application/json.
    """
    if body is None:
        payload = b""
    elif isinstance(body, (bytes, str)):
        payload = body.encode("utf-8") if isinstance(body, str) else body
    else:
        payload = json.dumps(body).encode("utf-8")

    lowered = {name.lower(): value for name, value in (headers or {}).items()}
    if payload:
        lowered.setdefault("content-type", "application/json")
        lowered["content-length"] = str(len(payload))

    return HTTPRequest(method=method, path=path, headers=lowered, body=payload)


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    return build_request


@pytest.fixture
def call(app: HTTPServer) -> Callable[..., HTTPResponse]:
    """call("PUT", "/users/2", {"age": 26}) answers through app.dispatch()."""
    def dispatch(method: str, path: str, body: Any = None,
                 headers: Optional[Dict[str, str]] = None) -> HTTPResponse:
        return app.dispatch(build_request(method, path, body, headers))
    return dispatch


# ─────────────────────────────────────────────────────────────────────────
# LIVE SERVER
# ─────────────────────────────────────────────────────────────────────────

class LiveServer:
    """Runs an HTTPServer on a daemon thread; `port` is known once started."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self.port: Optional[int] = None
        self._thread = threading.Thread(target=server.run, name="live-api", daemon=True)

    def __enter__(self) -> "LiveServer":
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("server did not start listening")
        self.port = self.server.bound_port
        return self

    def __exit__(self, *exc_info):
        self.stop()

    def stop(self):
        self.server.stop()
        self._thread.join(timeout=5.0)


@pytest.fixture
def live_api() -> Iterator[LiveServer]:
    """The full API on 127.0.0.1, port picked by the OS."""
    server = create_app(ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    ))
    with LiveServer(server) as live:
        yield live
