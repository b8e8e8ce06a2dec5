"""
=============================================================================
HEALTH CHECK HANDLER
=============================================================================

GET /health tells load balancers and humans that the API is up.

    HTTP/1.1 200 OK
    Cache-Control: no-store, no-cache, must-revalidate

    {
        "success": true,
        "message": "Simple CRUD API is running",
        "timestamp": "2026-10-19T12:00:00.123Z",
        "uptime": 42.17
    }

`timestamp` is ISO 8601 UTC with milliseconds and a "Z" suffix.
`uptime` is seconds since the handler was created (at app creation, so
effectively since process start).

Health responses must never be cached: a cached "running" from a dead
instance keeps traffic flowing to it.
=============================================================================
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import time

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


HEALTH_MESSAGE = "Simple CRUD API is running"


def iso_timestamp(dt: Optional[datetime] = None) -> str:
    """UTC time as "2026-10-19T12:00:00.123Z"."""
    dt = dt or datetime.now(timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class HealthHandler:
    """
    Health endpoint.

        health = HealthHandler()
        router.get("/health", name="health")(health.handle)
    """

    def __init__(
        self,
        message: str = HEALTH_MESSAGE,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            message: Text of the `message` field.
            clock: Monotonic seconds source for uptime (swappable in tests).
        """
        self.message = message
        self._clock = clock
        self._start_time = clock()

    @property
    def uptime(self) -> float:
        """Seconds since this handler was created."""
        return self._clock() - self._start_time

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({
                "success": True,
                "message": self.message,
                "timestamp": iso_timestamp(),
                "uptime": round(self.uptime, 3),
            })
            .no_cache()
            .build())
