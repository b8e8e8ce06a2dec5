"""
=============================================================================
ACCESS LOG
=============================================================================

Writes one line per request to the "simplecrud.access" logger and tags
the response with X-Request-ID (taken from the request when the client
sent one).

    text   127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "POST /users" 201 112 0.41ms
    json   {"request_id": "a1b2c3d4", "method": "POST", "path": "/users", ...}

5xx responses are logged at ERROR; everything else at the configured
level. Silence the access log without touching the application log:

    logging.getLogger("simplecrud.access").setLevel(logging.WARNING)
=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Iterable, Optional
from dataclasses import dataclass, asdict
from urllib.parse import urlencode

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("simplecrud.access")

ACCESS_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """What gets recorded about one request."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @classmethod
    def capture(cls, request: HTTPRequest, response: HTTPResponse,
                request_id: str, duration_ms: float) -> "RequestLog":
        return cls(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=urlencode(request.query_params, doseq=True),
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=round(duration_ms, 2),
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    def to_text(self) -> str:
        return (f'{self.client_ip} - - [{self.timestamp}] "{self.method} {self.path}" '
                f'{self.status_code} {self.content_length} {self.duration_ms:.2f}ms')


class LoggingMiddleware(Middleware):
    """
    Access logging.

    Args:
        log_format: "text" or "json".
        include_request_id: Echo the request id as X-Request-ID.
        log_level: Level used below 500.
        skip_paths: Exact paths never logged, e.g. a probed /health.
    """

    def __init__(self, log_format: str = "text", include_request_id: bool = True,
                 log_level: int = logging.INFO, skip_paths: Optional[Iterable[str]] = None):
        if log_format not in ACCESS_FORMATS:
            raise ValueError(f"Unknown log format: {log_format} (expected one of {ACCESS_FORMATS})")

        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = frozenset(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = request.get_header("X-Request-ID") or uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.path} [{request_id}] "
                f"{type(e).__name__}: {e} ({self._elapsed_ms(started):.2f}ms)"
            )
            raise

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path not in self.skip_paths:
            self._write(RequestLog.capture(request, response, request_id, self._elapsed_ms(started)))

        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return (time.perf_counter() - started) * 1000

    def _write(self, entry: RequestLog):
        level = logging.ERROR if entry.status_code >= 500 else self.log_level
        logger.log(level, entry.to_json() if self.log_format == "json" else entry.to_text())
