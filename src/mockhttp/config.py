"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All runtime options of the mock server in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments      mockhttp --port 3000               │
    │   2. Environment variables       PORT=3000 mockhttp                 │
    │                                  MOCKHTTP_WORKERS=64 mockhttp       │
    │   3. Defaults (this dataclass)   port 8080                          │
    └─────────────────────────────────────────────────────────────────────┘

The port keeps the conventional bare ``PORT`` variable (container
platforms set it); the other settings use a ``MOCKHTTP_`` prefix.

Configuration is validated once at startup. Bad values raise ValueError
before the socket is bound, never hours later on first use.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_PORT = 8080

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def resolve_port(flag: Optional[int] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Pick the listening port: ``--port`` flag > ``PORT`` variable > 8080.

    Args:
        flag: Value of the command-line flag, None when not given.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        ValueError: If ``PORT`` is set but not an integer.
    """
    if flag is not None:
        return flag

    environ = os.environ if environ is None else environ
    value = environ.get("PORT", "").strip()
    if not value:
        return DEFAULT_PORT

    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid PORT environment variable: {value!r}") from None


def _env_int(environ: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    value = environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid {name} environment variable: {value!r}") from None


@dataclass
class ServerConfig:
    """
    Configuration for the mock server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK      host, port, backlog, buffer_size, timeout
    HTTP         keep_alive, keep_alive_timeout, max_request_size
    THREADING    min_workers, workers, queue_size
    ENDPOINTS    max_delay
    LOGGING      log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" exposes the server on all interfaces."""

    port: int = DEFAULT_PORT
    """Port to listen on. 0 lets the OS pick a free one (tests)."""

    backlog: int = 128
    """Queued connections before the OS refuses new ones."""

    buffer_size: int = 8192
    """recv() chunk size in bytes."""

    timeout: Optional[float] = 30.0
    """Seconds to wait for the first request on a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Serve several requests per TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest accepted request (headers plus body); larger gets 413."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started up front."""

    workers: int = 32
    """
    Upper bound on worker threads.

    Each open connection holds a worker, and so does every running
    /delay, so this caps concurrent slow requests.
    """

    queue_size: int = 100
    """Connections waiting for a worker before 503 Server overloaded."""

    # ─────────────────────────────────────────────────────────────────────
    # ENDPOINT POLICY
    # ─────────────────────────────────────────────────────────────────────

    max_delay: Optional[int] = None
    """Largest accepted /delay/{seconds}; None leaves it unbounded."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json' (one object per line)."""

    server_name: str = "mockhttp/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PORT                  Listening port (default: 8080)
        MOCKHTTP_HOST         Bind address (default: 127.0.0.1)
        MOCKHTTP_WORKERS      Max worker threads (default: 32)
        MOCKHTTP_LOG_LEVEL    Logging level (default: INFO)
        MOCKHTTP_MAX_DELAY    Upper bound for /delay (default: unbounded)

        =====================================================================
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        workers = _env_int(environ, "MOCKHTTP_WORKERS", defaults.workers)

        return cls(
            host=environ.get("MOCKHTTP_HOST", "").strip() or defaults.host,
            port=resolve_port(None, environ),
            min_workers=min(defaults.min_workers, workers),
            workers=workers,
            log_level=(environ.get("MOCKHTTP_LOG_LEVEL", "").strip() or defaults.log_level).upper(),
            max_delay=_env_int(environ, "MOCKHTTP_MAX_DELAY", defaults.max_delay),
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.workers < self.min_workers:
            raise ValueError(f"workers must be >= min_workers ({self.min_workers})")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.max_delay is not None and self.max_delay < 0:
            raise ValueError("max_delay must be >= 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
