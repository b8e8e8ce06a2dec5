"""
=============================================================================
CORE NETWORKING
=============================================================================

    socket_server.py    listening socket, accept loop, signal handling
    connection.py       one client: buffered reads, keep-alive, close
    thread_pool.py      workers that serve accepted connections

    SocketServer ──accept──► Connection ──submit──► ThreadPool ──► HTTPServer

=============================================================================
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Task, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "SocketServer",
    "ThreadPool",
    "Task",
    "Worker",
    "WorkerState",
]
