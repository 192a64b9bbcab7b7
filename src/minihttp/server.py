"""
=============================================================================
FILE SERVER: CONNECTION PIPELINE AND SERVER WIRING
=============================================================================

This module holds the per-connection pipeline and the object that wires it
to a listening socket.

=============================================================================
THE PIPELINE
=============================================================================

    accept ──► read ──► parse ──► route ──► respond ──► close
               │        │         │
               │        │         ├── GET   → StaticFileHandler.serve()
               │        │         └── other → 501 Not Implemented
               │        │
               │        └── < 3 tokens → 400 Bad Request
               │
               └── nothing read → close, no response

Every branch ends in close(), exactly once.

=============================================================================
ISOLATION
=============================================================================

    ┌──────────────┐        ┌─────────────────────────────────────────┐
    │ SocketServer │ conn ► │ WorkerGroup.spawn(handler.handle, conn) │
    └──────────────┘        └──────────────────┬──────────────────────┘
                                               │ own thread
                                               ▼
                                  ConnectionHandler.handle(conn)

ConnectionHandler holds only configuration that never changes after
construction, so one instance is safely shared by all workers. Any fault
inside a worker is caught there and never reaches the listener.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, WorkerGroup
from .handlers import StaticFileHandler, send_http_error
from .http import (
    HTTPStatus,
    ProtocolError,
    RequestParser,
    TransportFault,
    UnsupportedOperation,
)


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Handles one connection: read one request, answer it, close.

    Usage:
        handler = ConnectionHandler(StaticFileHandler("/var/www"))
        status = handler.handle(conn)   # conn is closed afterwards
    """

    def __init__(
        self,
        static: StaticFileHandler,
        parser: Optional[RequestParser] = None,
    ):
        self.static = static
        self.parser = parser or RequestParser()

    @classmethod
    def from_config(cls, config: ServerConfig) -> "ConnectionHandler":
        """Build a handler (and its file server) from a ServerConfig."""
        static = StaticFileHandler(
            config.document_root,
            index_file=config.index_file,
            chunk_size=config.buffer_size,
            follow_symlinks=config.follow_symlinks,
        )
        return cls(static)

    def handle(self, conn: Connection) -> Optional[HTTPStatus]:
        """
        Run the pipeline for one connection.

        Returns:
            The status code sent, or None if nothing (complete) was sent:
            the client sent no data, the transport failed, or the handler
            hit an internal fault.
        """
        with conn:  # Context manager ensures connection is closed
            try:
                return self._process(conn)
            except TransportFault as e:
                # Headers may already be out; nothing left to tell the client
                logger.warning(f"[{conn.id}] Transport fault for {conn.client_ip}: {e}")
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
        return None

    def _process(self, conn: Connection) -> Optional[HTTPStatus]:
        # ─────────────────────────────────────────────────────────────────
        # AWAITING_REQUEST: one bounded read
        # ─────────────────────────────────────────────────────────────────
        data = conn.read()
        if not data:
            logger.debug(f"[{conn.id}] No data from {conn.client_ip}, closing")
            return None

        # ─────────────────────────────────────────────────────────────────
        # PARSE
        # ─────────────────────────────────────────────────────────────────
        try:
            request = self.parser.parse(data, conn.address)
        except ProtocolError as e:
            logger.debug(f"[{conn.id}] Malformed request line from {conn.client_ip}")
            send_http_error(conn, e)
            return e.status_code

        conn.state = ConnectionState.PARSED
        logger.info(f"[{request.client_ip}] {request.method} {request.path}")

        # ─────────────────────────────────────────────────────────────────
        # DISPATCH
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.DISPATCHED

        if request.method == "GET":
            return self.static.serve(conn, request.path)

        error = UnsupportedOperation("Not Implemented")
        send_http_error(conn, error)
        return error.status_code


class HTTPServer:
    """
    Minimal HTTP/1.1 file server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080, document_root="./public"))
        server.run()   # blocks until Ctrl+C / SIGTERM / server.shutdown()

    =========================================================================
    ARCHITECTURE
    =========================================================================

    - ServerConfig: Configuration management
    - SocketServer: Listening socket and accept loop
    - WorkerGroup: One thread per connection, reaped when finished
    - ConnectionHandler: read → parse → route → respond → close

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the server.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self._workers = WorkerGroup()
        self._handler = ConnectionHandler.from_config(self.config)

        self._running = False

    @property
    def address(self):
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def workers(self) -> WorkerGroup:
        return self._workers

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._socket_server.bind()
        self._running = True

        self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection, on_tick=self._workers.reap)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Stop accepting connections. run() returns once workers finish."""
        self._socket_server.shutdown()

    def _print_startup_banner(self):
        """Print server startup information."""
        host, port = self.address
        display_host = "localhost" if host in ("0.0.0.0", "127.0.0.1") else host

        print(f"Mini HTTP Server running on http://{display_host}:{port}")
        print(f"Serving files from: {self._handler.static.root_dir}")
        print("Press Ctrl+C to stop")
        print()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("minihttp").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown: stop accepting (already done by the socket
        server), then give in-flight connections shutdown_timeout seconds.
        """
        logger.info("Shutting down server...")
        self._running = False

        self._workers.join_all(timeout=self.config.shutdown_timeout)

        logger.info(f"Server stopped ({self._workers.stats})")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to its own worker.

        Runs on the listener thread, so it only reaps and spawns.
        """
        self._workers.reap()
        self._workers.spawn(self._handler.handle, conn)


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a file server.

    Example:
        app = create_app(ServerConfig(port=3000, document_root="./site"))
        app.run()
    """
    return HTTPServer(config)
