"""
=============================================================================
LISTENER
=============================================================================

The one listening socket of the API. It binds HOST:PORT, then hands every
accepted client to a callback as a Connection until asked to stop.

    HOST:PORT ──► listen(backlog) ──► accept() ──► Connection ──► callback
                                         ▲                           │
                                         └─────── next client ◄──────┘

Socket options:

    SO_REUSEADDR    rebind right after a restart, even with TIME_WAIT sockets
    SO_REUSEPORT    where the platform has it
    TCP_NODELAY     JSON envelopes are small; send them without delay
    timeout 1.0     accept() returns every second so stop requests are seen

SIGINT and SIGTERM stop the listener when it runs on the main thread. A
listener started from any other thread is stopped with shutdown().
=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)
ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Accept loop for HTTPServer.

        listener = SocketServer(config)
        listener.start(on_connection)   # returns after shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._listener: Optional[socket.socket] = None
        self._running = False
        self._stopped = threading.Event()
        self._listening = threading.Event()
        self._bound_port: Optional[int] = None
        self._previous_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        return (self.config.host, self.config.port)

    @property
    def bound_port(self) -> Optional[int]:
        """Port in use while listening; the OS-chosen one when started on port 0."""
        return self._bound_port

    # ─────────────────────────────────────────────────────────────────────
    # SETUP
    # ─────────────────────────────────────────────────────────────────────

    def _bind(self) -> socket.socket:
        """Create the listening socket. Raises OSError if the address is taken."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                logger.debug("SO_REUSEPORT rejected by the platform")
        listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        listener.settimeout(ACCEPT_POLL_INTERVAL)

        host, port = self.address
        try:
            listener.bind((host, port))
            listener.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {host}:{port}: {e}")
            listener.close()
            raise

        return listener

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Started off the main thread; stop with shutdown()")
            return

        def on_signal(signum, frame):
            logger.info(f"{signal.Signals(signum).name} received, stopping")
            self.shutdown()

        for signum in SHUTDOWN_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, on_signal)

    def _restore_signal_handlers(self):
        while self._previous_handlers:
            signum, handler = self._previous_handlers.popitem()
            signal.signal(signum, handler)

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    def start(self, on_connection: Callable[[Connection], None]):
        """
        Listen and accept until shutdown(). Blocks.

        Args:
            on_connection: Receives every accepted client as a Connection.

        Raises:
            OSError: HOST:PORT could not be bound.
        """
        self._listener = self._bind()
        self._bound_port = self._listener.getsockname()[1]

        self._stopped.clear()
        self._running = True
        self._install_signal_handlers()
        self._listening.set()
        logger.info(f"Listening on {self.config.host}:{self._bound_port}")

        try:
            while self._running:
                conn = self._accept()
                if conn is not None:
                    on_connection(conn)
        finally:
            self._close()

    def _accept(self) -> Optional[Connection]:
        """Next client, or None when the poll interval passed without one."""
        try:
            client, peer = self._listener.accept()
        except socket.timeout:
            return None
        except OSError as e:
            if self._running:
                logger.error(f"accept() failed: {e}")
            self._running = False
            return None

        logger.debug(f"Client connected from {peer[0]}:{peer[1]}")
        return self._wrap(client, peer)

    def _wrap(self, client: socket.socket, peer: Tuple[str, int]) -> Connection:
        return Connection(
            socket=client,
            address=peer,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )

    # ─────────────────────────────────────────────────────────────────────
    # STOPPING
    # ─────────────────────────────────────────────────────────────────────

    def shutdown(self):
        """Ask the accept loop to end. Callable from any thread, any number of times."""
        if self._running:
            logger.info("Stopping listener")
        self._running = False
        self._stopped.set()

    def _close(self):
        self._restore_signal_handlers()

        if self._listener is not None:
            try:
                self._listener.close()
            except OSError as e:
                logger.debug(f"Listener close: {e}")
            self._listener = None

        self._running = False
        self._listening.clear()
        logger.info("Listener closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """True once the socket is listening, False if `timeout` ran out first."""
        return self._listening.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)
