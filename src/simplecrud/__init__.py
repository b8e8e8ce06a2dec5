"""
=============================================================================
SIMPLE CRUD API
=============================================================================

An in-memory "users" REST service over JSON, served by a threaded
HTTP/1.1 server built on raw sockets.

    GET    /users         list all users          {success, data, count}
    GET    /users/:id     one user                {success, data}
    POST   /users         create (201)            {success, data, message}
    PUT    /users/:id     partial update          {success, data, message}
    DELETE /users/:id     delete                  {success, data, message}
    GET    /health        liveness                {success, message, timestamp, uptime}

Errors are {"success": false, "message": "..."} with 400, 404 or 500.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    store.py          UserStore: records, id counter, uniqueness
    payload.py        request body -> typed, validated fields
    errors.py         store errors and their HTTP status
    handlers/         /users and /health endpoints
    http/             request parsing, responses, routing
    middleware/       errors, access log, CORS
    core/             sockets, connections, thread pool
    server.py         HTTPServer and create_app()
    config.py         ServerConfig (env + defaults)

=============================================================================
QUICK START
=============================================================================

    from simplecrud import create_app, ServerConfig

    app = create_app(ServerConfig(port=3000))
    app.run()

Or from a shell:

    python -m simplecrud --port 3000
=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import UserStoreError, ValidationFailed, DuplicateEmail, NotFound
from .store import User, UserStore
from .server import HTTPServer, create_app

__all__ = [
    "ServerConfig",
    "UserStoreError",
    "ValidationFailed",
    "DuplicateEmail",
    "NotFound",
    "User",
    "UserStore",
    "HTTPServer",
    "create_app",
    "__version__",
]
