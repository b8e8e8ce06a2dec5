"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One dataclass holds every setting. Values come from, highest first:

    1. Command-line flags         python -m simplecrud --port 8000
    2. Environment variables      PORT=8000 python -m simplecrud
    3. Defaults below

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    PORT                     Listening port                  (3000)
    HOST                     Bind address                    (0.0.0.0)
    REQUEST_TIMEOUT          First-request read timeout, s   (30)
    WORKERS                  Max worker threads              (16)
    LOG_LEVEL                DEBUG/INFO/WARNING/ERROR        (INFO)
    LOG_FORMAT               text or json access log         (text)
    CORS                     0/false/no/off disables CORS    (on)
    UNIQUE_EMAIL_ON_UPDATE   1/true/yes/on rejects an update
                             that reuses another email       (off)

An empty variable counts as unset.

Configuration is validated at startup, so a typo in PORT stops the
process immediately instead of surfacing on the first request.
=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = _env(environ, name)
    if value is None:
        return default
    if value.lower() in _TRUE_VALUES:
        return True
    if value.lower() in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid {name}: {value!r}. Use one of {_TRUE_VALUES + _FALSE_VALUES}.")


@dataclass
class ServerConfig:
    """
    Settings for the Simple CRUD API server.

    Development:
        ServerConfig(host="127.0.0.1", log_level="DEBUG")

    Production:
        ServerConfig.from_env()
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    port: int = 3000
    """Listening port. 0 lets the OS pick one (see SocketServer.bound_port)."""

    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Seconds to wait for the first request on a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    cors: bool = True
    """Answer preflights and add Access-Control-Allow-Origin to responses."""

    unique_email_on_update: bool = False
    """Reject PUT bodies whose email belongs to a different user."""

    server_name: str = "SimpleCRUD/1.0"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests).

        Raises:
            ValueError: A numeric or boolean variable does not parse.
        """
        environ = os.environ if environ is None else environ
        config = cls()

        host = _env(environ, "HOST")
        if host is not None:
            config.host = host

        port = _env(environ, "PORT")
        if port is not None:
            try:
                config.port = int(port)
            except ValueError:
                raise ValueError(f"Invalid PORT: {port!r}. Must be an integer.")

        timeout = _env(environ, "REQUEST_TIMEOUT")
        if timeout is not None:
            config.timeout = float(timeout)

        workers = _env(environ, "WORKERS")
        if workers is not None:
            config.max_workers = int(workers)
            config.min_workers = min(config.min_workers, config.max_workers)

        log_level = _env(environ, "LOG_LEVEL")
        if log_level is not None:
            config.log_level = log_level.upper()

        log_format = _env(environ, "LOG_FORMAT")
        if log_format is not None:
            config.log_format = log_format.lower()

        config.cors = _env_bool(environ, "CORS", config.cors)
        config.unique_email_on_update = _env_bool(
            environ, "UNIQUE_EMAIL_ON_UPDATE", config.unique_email_on_update
        )
        return config

    def validate(self) -> None:
        """
        Fail fast on impossible settings.

        Raises:
            ValueError: Describes the first bad value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")
        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Use one of {', '.join(LOG_LEVELS)}.")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log format: {self.log_format}. Use 'text' or 'json'.")
