"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Creates the listening socket and accepts connections. It knows nothing
about HTTP: every accepted socket is wrapped in a Connection and handed to
a callback.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Associate it with HOST:PORT
    3. listen()    Start queueing incoming connections (backlog)
    4. accept()    Wait for a client; returns a NEW socket for it
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) flip the running flag.
accept() has a 1 second timeout, so the loop notices within a second,
stops accepting, and the HTTP server waits for in-flight workers.

Python only allows installing signal handlers from the main thread, so
when the server runs in a background thread (tests), handlers are skipped
and shutdown() must be called directly.

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


ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()            Create socket, SO_REUSEADDR, bind, listen       │
    │        │                                                             │
    │    start()           bind() if needed, install signals, then         │
    │        │                                                             │
    │        └──► _accept_loop()    Main loop (blocks here!)              │
    │                 │                                                    │
    │                 └──► while running:                                  │
    │                         accept()      Wait for connection            │
    │                         Connection()  Wrap client socket             │
    │                         callback(conn)                               │
    │                      on timeout: on_tick()                           │
    │                                                                      │
    │    shutdown()        Stop the loop (idempotent, any thread)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()

        # Original signal handlers, restored on cleanup
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        Get the server's bound address (IP, port).

        After bind() this is the real address, so port=0 resolves to the
        port the OS picked.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """
        Create and configure the server socket.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR: restart without "Address already in use" while old
        # sockets sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Timeout on accept() so the loop can check self._running
        sock.settimeout(ACCEPT_POLL_INTERVAL)

        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Create the socket, bind and listen.

        Returns:
            The bound (host, port).

        Raises:
            OSError: If the address can't be bound (in use, permission).
        """
        if self._socket is not None:
            return self.address

        sock = self._create_socket()

        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        return host, port

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers for graceful shutdown.

        Only possible from the main thread; elsewhere this is a no-op.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(
        self,
        connection_handler: Callable[[Connection], None],
        on_tick: Optional[Callable[[], object]] = None,
    ):
        """
        Start accepting connections. BLOCKS until shutdown() is called.

        Args:
            connection_handler: Receives each new Connection. Must not
                                block for long: it runs on the listener.
            on_tick: Called whenever accept() times out with nothing to
                     do (used for reaping finished workers).
        """
        self.bind()

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler, on_tick)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler, on_tick):
        """
        Main loop for accepting connections.

        One misbehaving connection must never stop the listener: errors
        from the callback are logged and the loop keeps going.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                if on_tick is not None:
                    on_tick()
                continue
            except OSError as e:
                # Usually means the socket was closed during shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                linger_timeout=self.config.linger_timeout,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"[{conn.id}] Failed to dispatch connection: {e}")
                conn.close()

    def shutdown(self):
        """
        Initiate graceful shutdown.

        Safe to call from a signal handler or another thread, and safe to
        call more than once.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        """Clean up resources on shutdown."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the accept loop is running.

        Returns:
            True if ready, False on timeout.
        """
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the server to shut down.

        Returns:
            True if shutdown completed, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
