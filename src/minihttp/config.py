"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── minihttp --port 3000 --root ./public                       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 HTTP_ROOT=./public minihttp                 │
    │                                                                      │
    │   3. Defaults (this file)                                           │
    │      └── port 8080, document root = working directory              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout, linger_timeout

    FILE SERVING
    - document_root, index_file, follow_symlinks

    LIFECYCLE / LOGGING
    - shutdown_timeout, log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All IPv4 interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 10
    """
    Maximum number of queued, not-yet-accepted connections.
    This is the only backpressure the server has.
    """

    buffer_size: int = 8192
    """
    Bytes read for the request, and bytes per chunk when streaming files.
    """

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = block forever (a stalled client keeps its worker busy).
    """

    linger_timeout: float = 0.5
    """
    How long close() keeps draining unread client input before giving up.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILE SERVING
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = field(default_factory=os.getcwd)
    """
    Directory files are served from. Defaults to the working directory
    at the time the config is created.
    """

    index_file: str = "index.html"
    """
    Default document served for "/".
    """

    follow_symlinks: bool = True
    """
    Follow symlinks inside the document root even if they point outside.
    False canonicalizes every path and refuses escapes with 403.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    shutdown_timeout: float = 10.0
    """
    Seconds to wait for in-flight connections on shutdown.
    """

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    INFO logs one line per request.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST         Server host (default: 0.0.0.0)
        HTTP_PORT         Server port (default: 8080)
        HTTP_ROOT         Document root (default: working directory)
        HTTP_BUFFER_SIZE  Read/stream buffer in bytes (default: 8192)
        HTTP_BACKLOG      Listen backlog (default: 10)
        HTTP_TIMEOUT      Socket timeout in seconds (default: none)
        HTTP_LOG_LEVEL    Logging level (default: INFO)

        =====================================================================
        """
        timeout = os.getenv("HTTP_TIMEOUT")

        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            document_root=os.getenv("HTTP_ROOT") or os.getcwd(),
            buffer_size=int(os.getenv("HTTP_BUFFER_SIZE", "8192")),
            backlog=int(os.getenv("HTTP_BACKLOG", "10")),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup rather than on the first request.

        Raises:
            ValueError: If any value is out of range.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.linger_timeout < 0:
            raise ValueError("linger_timeout must be >= 0")

        if not self.index_file or "/" in self.index_file or ".." in self.index_file:
            raise ValueError(f"Invalid index_file: {self.index_file!r}")

        if not os.path.isdir(self.document_root):
            raise ValueError(f"Document root does not exist: {self.document_root}")
