"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting request/response processing, in the order create_app()
installs it:

    ErrorMiddleware     unhandled exception -> 500 envelope
    LoggingMiddleware   one access line per request, X-Request-ID
    CORSMiddleware      preflight answers and CORS headers

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, FunctionMiddleware, function_middleware
from .errors import ErrorMiddleware
from .logging import LoggingMiddleware
from .cors import CORSMiddleware, CORSConfig

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "function_middleware",
    "ErrorMiddleware",
    "LoggingMiddleware",
    "CORSMiddleware",
    "CORSConfig",
]
