"""
=============================================================================
SIMPLE CRUD API SERVER
=============================================================================

HTTPServer joins the listener, the worker pool, the parser, the middleware
chain and the router. create_app() builds the users API on top of it.

    listener ── accept ──► Connection ── submit ──► worker
                                                      │
                              ┌───────────────────────┘
                              ▼
                      read ─► parse ─► dispatch ─► send ─► (keep-alive? read again)
                                          │
                                          ▼   one request at a time
                              ErrorMiddleware
                                └─ LoggingMiddleware
                                     └─ CORSMiddleware
                                          └─ Router ─► UserHandler / HealthHandler

Workers read and write sockets in parallel; dispatch() holds a lock
around middleware and router, so no two requests touch the store at once.

Failures answered before the router, all as {"success": false, "message"}:

    400 / 405 / 505   request line or headers unusable
    408               nothing arrived on a fresh connection in time
    413               more than max_request_size bytes
    503               worker queue full, or waited in it past `timeout`
    500               anything else that escaped
=============================================================================
"""

import logging
import threading
from functools import partial
from typing import Optional, Callable

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestTooLarge
from .handlers import UserHandler, HealthHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus,
    Router,
)
from .middleware import (
    MiddlewarePipeline, Middleware,
    ErrorMiddleware, LoggingMiddleware, CORSMiddleware,
)
from .store import UserStore


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
SHUTDOWN_GRACE = 30.0


class HTTPServer:
    """
    Threaded HTTP/1.1 server.

        server = HTTPServer(ServerConfig(port=3000))
        server.use(LoggingMiddleware())

        @server.get("/ping")
        def ping(request):
            return ok({"pong": True})

        server.run()

    Middleware wraps the router in the order it was added, the first one
    outermost.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._listener = SocketServer(self.config)
        self._workers = ThreadPool(min_workers=self.config.min_workers, max_workers=self.config.max_workers)
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = Router()
        self._middleware = MiddlewarePipeline()

        self._chain: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._dispatch_lock = threading.Lock()
        self._running = False

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    def use(self, middleware: Middleware) -> "HTTPServer":
        self._middleware.add(middleware)
        self._chain = None
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def middleware(self) -> MiddlewarePipeline:
        return self._middleware

    # Decorators, forwarded to the router
    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self.route(path, "GET", **kwargs)

    def post(self, path: str, **kwargs):
        return self.route(path, "POST", **kwargs)

    def put(self, path: str, **kwargs):
        return self.route(path, "PUT", **kwargs)

    def delete(self, path: str, **kwargs):
        return self.route(path, "DELETE", **kwargs)

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Answer one parsed request through middleware and router.

        Serialized: a second caller waits until the first has its response.
        Tests call this directly to exercise the API without sockets.
        A HEAD request gets the headers of its GET answer and no body.
        """
        with self._dispatch_lock:
            if self._chain is None:
                self._chain = self._middleware.wrap(self._router.handle)
            response = self._chain(request)

        if request.method == "HEAD":
            response.strip_body()
        return response

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE
    # ─────────────────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_port(self) -> Optional[int]:
        return self._listener.bound_port

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._listener.wait_until_ready(timeout)

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until SIGINT/SIGTERM or stop(). Blocks.

        `host` and `port` override the configured values.

        Raises:
            OSError: The address could not be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._configure_logging()
        self._workers.start()
        self._running = True
        self._announce()

        try:
            self._listener.start(self._on_connection)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._running = False
            logger.info("Shutting down server...")
            self._workers.shutdown(wait=True, timeout=SHUTDOWN_GRACE)
            logger.info("Server stopped")

    def stop(self):
        """Ask run() to return. Does not wait for it."""
        self._listener.shutdown()

    def _configure_logging(self):
        level = logging.getLevelName(self.config.log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logging.getLogger("simplecrud").setLevel(level)

    def _announce(self):
        logger.info(f"Starting Simple CRUD API on {self.config.host}:{self.config.port}")
        width = 62
        rows = [
            f"{self.config.server_name} running",
            f"http://{self.config.host}:{self.config.port}",
            f"Workers: {self.config.min_workers}-{self.config.max_workers} threads",
            f"Middleware: {', '.join(self._middleware.names) or 'none'}",
            "Press Ctrl+C to stop",
        ]
        print()
        print("╔" + "═" * width + "╗")
        for row in rows:
            print("║  " + row.ljust(width - 2) + "║")
        print("╚" + "═" * width + "╝")
        self._router.print_routes()

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTIONS (worker threads)
    # ─────────────────────────────────────────────────────────────────────

    def _on_connection(self, conn: Connection):
        queued = self._workers.submit(
            self._serve, args=(conn,), timeout=self.config.timeout, block=False,
            on_drop=partial(self._shed, conn, "waited too long for a worker"),
        )
        if not queued:
            self._shed(conn, "worker queue full")

    def _shed(self, conn: Connection, reason: str):
        """Turn a connection away unserved: 503, then close."""
        logger.warning(f"[{conn.id}] {reason.capitalize()}, answering 503")
        with conn:
            self._reject(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")

    def _serve(self, conn: Connection):
        """Answer requests on one connection until it should close."""
        with conn:
            try:
                while self._running and self._serve_one(conn):
                    conn.set_keep_alive()
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Rejected request: {e}")
                self._reject(conn, HTTPStatus(e.status_code), str(e))
            except RequestTooLarge as e:
                logger.info(f"[{conn.id}] {e}")
                self._reject(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
            except TimeoutError:
                self._reject(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")
                self._reject(conn, HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")

    def _serve_one(self, conn: Connection) -> bool:
        """One request/response exchange. True if the connection stays open."""
        raw = conn.read_request()
        if raw is None:
            return False

        request = self._parser.parse(raw, conn.address)
        conn.state = conn.state.PROCESSING
        response = self.dispatch(request)

        keep_alive = self.config.keep_alive and request.is_keep_alive
        if keep_alive:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
        else:
            response.headers["Connection"] = "close"

        return conn.send_response(response.to_bytes(self.config.server_name)) and keep_alive

    def _reject(self, conn: Connection, status: HTTPStatus, message: str):
        """Failure envelope for requests that never reach the router."""
        response = (ResponseBuilder(self.config.server_name)
            .status(status)
            .json({"success": False, "message": message})
            .close_connection())
        conn.send_response(response.to_bytes())


def create_app(config: Optional[ServerConfig] = None, store: Optional[UserStore] = None) -> HTTPServer:
    """
    Build the Simple CRUD API.

    Args:
        config: Server settings; defaults when omitted.
        store: Store to serve. When omitted, a fresh one holding the three
               seed users (next id 4) is created.

    Returns:
        An HTTPServer to run(), or to drive through dispatch() in tests.
    """
    config = config or ServerConfig()
    if store is None:
        store = UserStore.with_seed(unique_email_on_update=config.unique_email_on_update)

    app = HTTPServer(config)
    app.use(ErrorMiddleware())
    app.use(LoggingMiddleware(log_format=config.log_format))
    if config.cors:
        app.use(CORSMiddleware())

    app.store = store
    app.users = UserHandler(store).register(app.router)
    app.health = HealthHandler()
    app.get("/health", name="health")(app.health.handle)

    return app
