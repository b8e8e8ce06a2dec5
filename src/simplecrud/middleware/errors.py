"""
=============================================================================
ERROR MIDDLEWARE
=============================================================================

The last line of defense: any exception a handler (or inner middleware)
lets escape becomes

    500 {"success": false, "message": "Internal server error"}

The traceback goes to the log; nothing about it goes to the client.

Register it FIRST so it wraps everything else, including the access
logger (which then still logs the failed request before re-raising).
=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, internal_error


logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ErrorMiddleware(Middleware):
    """Turns unhandled exceptions into the generic 500 envelope."""

    def __init__(self, message: str = INTERNAL_ERROR_MESSAGE):
        self.message = message

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            return next(request)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method} {request.path}: {e}")
            return internal_error(self.message)
