"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with what the request loop needs:
buffered reads, timeouts, a size limit and a clean close.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

TCP keeps bytes in order but not message boundaries. A single JSON POST
can arrive as

    recv() -> "POST /users HTTP/1.1\r\nContent-Le"
    recv() -> "ngth: 52\r\n\r\n{\"name\": \"Ali"
    recv() -> "ce\", ...}"

so reading a request means buffering until the blank line that ends the
headers, then buffering again until Content-Length body bytes are in.
Whatever arrives past that belongs to the next (pipelined) request and
stays in the buffer.

=============================================================================
KEEP-ALIVE
=============================================================================

    TCP connect
        ├── POST /users        (timeout: 30 s, client may be slow)
        ├── GET  /users/4      (timeout: 5 s, keep-alive idle)
        └── GET  /users
    TCP close (client asked, or idle timeout)

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
     │         │                          │                     │
     │         └──────────► CLOSING ◄─────┴─────────────────────┘
     │                         │
     └────────────────────────►▼
                             CLOSED

=============================================================================
"""

import socket
import time
import logging
import re
from contextlib import suppress
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple
import uuid


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"
CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Where a connection is in its request/response cycle."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The client sent more bytes than max_request_size allows."""


class _ClientGone(Exception):
    pass


@dataclass
class Connection:
    """
    One accepted client.

        with conn:
            raw = conn.read_request()
            conn.send_response(response.to_bytes())

    read_request() hands back exactly one request and keeps anything read
    past it for the next call. Leaving the `with` block closes the socket.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _pending: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        # Accepted sockets must not keep the listener's 1 s poll timeout
        self.socket.settimeout(self.timeout or None)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def idle_time(self) -> float:
        """Seconds since the last byte was read or written."""
        return time.time() - self.last_activity

    # ─────────────────────────────────────────────────────────────────────
    # READING
    # ─────────────────────────────────────────────────────────────────────

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request: the header block plus as many body
        bytes as Content-Length announces.

        Returns:
            The raw request, or None when the client hung up or stayed
            silent past keep_alive_timeout after an earlier request.

        Raises:
            TimeoutError: Nothing complete arrived within `timeout` on a
                fresh connection.
            RequestTooLarge: The request would exceed max_request_size.
        """
        self.state = ConnectionState.READING
        idle_wait = self.requests_handled > 0
        if idle_wait:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            header_end = self._fill_until_headers()
            total = header_end + len(HEADER_TERMINATOR) + self._content_length(header_end)
            if total > self.max_request_size:
                raise RequestTooLarge(f"Request too large: {total} bytes announced")

            # A short body is left to the parser, which answers 400
            with suppress(_ClientGone):
                while len(self._pending) < total:
                    self._fill()
        except _ClientGone:
            return None
        except socket.timeout:
            if idle_wait:
                logger.debug(f"[{self.id}] Idle past keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")
        finally:
            if self.state is not ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout or None)

        request = bytes(self._pending[:total])
        del self._pending[:total]
        self.requests_handled += 1
        return request

    def _fill_until_headers(self) -> int:
        while True:
            end = self._pending.find(HEADER_TERMINATOR)
            if end != -1:
                return end
            self._fill()

    def _fill(self):
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            chunk = b""
        if not chunk:
            raise _ClientGone()

        self.last_activity = time.time()
        self._pending += chunk
        if len(self._pending) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._pending)} bytes buffered")

    def _content_length(self, header_end: int) -> int:
        """
        Content-Length from the raw header block, or 0. Malformed values
        count as 0 here; RequestParser rejects them properly.
        """
        match = CONTENT_LENGTH.search(bytes(self._pending[:header_end]))
        return int(match.group(1)) if match else 0

    # ─────────────────────────────────────────────────────────────────────
    # WRITING
    # ─────────────────────────────────────────────────────────────────────

    def send_response(self, data: bytes) -> bool:
        """Write a whole response. False when the client is already gone."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.last_activity = time.time()
        return True

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE
    # ─────────────────────────────────────────────────────────────────────

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """
        Half-close, drain what the client is still sending, then release
        the socket. Unread bytes at close() turn into a RST that can cut
        off the last response. Closing twice does nothing.
        """
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        with suppress(OSError):
            self.socket.shutdown(socket.SHUT_WR)
        with suppress(OSError):
            self.socket.settimeout(DRAIN_TIMEOUT)
            while self.socket.recv(self.buffer_size):
                pass
        with suppress(OSError):
            self.socket.close()

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} request(s)")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
