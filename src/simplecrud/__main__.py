"""
=============================================================================
SIMPLE CRUD API CLI
=============================================================================

    python -m simplecrud
    python -m simplecrud --port 8000
    python -m simplecrud --host 127.0.0.1 --log-level DEBUG
    PORT=8000 CORS=false simple-crud

Settings are read from the environment first (see config.py); flags given
on the command line override them.

Exit status is 1 when the configuration is invalid or the port cannot be
bound.
=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_LEVELS
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simple-crud",
        description="Simple CRUD API: an in-memory users service over HTTP/JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Endpoints:
  GET    /users       List users
  GET    /users/:id   Get one user
  POST   /users       Create a user
  PUT    /users/:id   Update a user
  DELETE /users/:id   Delete a user
  GET    /health      Health check
        """
    )

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind to (env HOST, default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (env PORT, default: 3000)"
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (env LOG_LEVEL, default: INFO)"
    )
    parser.add_argument(
        "--no-cors",
        action="store_true",
        help="Do not send CORS headers (env CORS=false)"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"SimpleCRUD {__version__}"
    )
    return parser


def load_config(argv: Optional[List[str]] = None) -> ServerConfig:
    """
    Merge environment and command line into a validated config.

    Raises:
        ValueError: A setting is invalid.
    """
    args = build_parser().parse_args(argv)
    config = ServerConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.log_level:
        config.log_level = args.log_level
    if args.no_cors:
        config.cors = False

    config.validate()
    return config


def main(argv: Optional[List[str]] = None):
    try:
        config = load_config(argv)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    app = create_app(config)

    try:
        app.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
