"""
=============================================================================
MIDDLEWARE CONTRACT
=============================================================================

Every middleware is a callable taking the request and the rest of the
chain. The API installs three of them in front of the router:

    request
       │
       ▼
    ErrorMiddleware ─────► any escaped exception becomes
       │                   {"success": false, "message": "Internal server error"}
       ▼
    LoggingMiddleware ───► one access line, X-Request-ID on the way out
       │
       ▼
    CORSMiddleware ──────► OPTIONS answered here with 204
       │
       ▼
    Router ──────────────► UserHandler / HealthHandler

Calling `next(request)` continues down the chain. Returning a response
without calling it stops there.
=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial, reduce
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# A request handler: the router, or the chain below a middleware
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    One link of the chain.

        class PoweredBy(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Powered-By", "SimpleCRUD")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle `request`, usually by delegating to `next`."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def __repr__(self) -> str:
        return f"<{self.name}>"


class MiddlewarePipeline:
    """
    Ordered middleware list. The first one added sees the request first
    and the response last.

        pipeline = MiddlewarePipeline().use(ErrorMiddleware(), LoggingMiddleware())
        handler = pipeline.wrap(router.handle)
    """

    def __init__(self):
        self._chain: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._chain.append(middleware)
        logger.debug(f"Middleware installed at position {len(self._chain)}: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for item in middleware:
            self.add(item)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Fold the chain around `handler`, innermost first, so that
        [Error, Logging, CORS] becomes Error(Logging(CORS(handler))).
        """
        return reduce(
            lambda inner, middleware: partial(middleware, next=inner),
            reversed(self._chain),
            handler,
        )

    @property
    def names(self) -> List[str]:
        return [middleware.name for middleware in self._chain]

    def __len__(self) -> int:
        return len(self._chain)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._chain)


class FunctionMiddleware(Middleware):
    """A plain `(request, next) -> response` function used as middleware."""

    def __init__(self, func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
                 name: Optional[str] = None):
        self.func = func
        self._label = name or getattr(func, "__name__", "anonymous")

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self.func(request, next)

    @property
    def name(self) -> str:
        return self._label


def function_middleware(func: Callable[[HTTPRequest, NextHandler], HTTPResponse]) -> FunctionMiddleware:
    """
    Decorator turning a function into middleware:

        @function_middleware
        def no_cache(request, next):
            return next(request).no_cache()

        app.use(no_cache)
    """
    return FunctionMiddleware(func)
