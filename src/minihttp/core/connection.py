"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for exactly one request/response exchange.

=============================================================================
ONE EXCHANGE, THEN GOODBYE
=============================================================================

This server never keeps a connection open for a second request:

    ┌─────────────────────────────────────────────────────────────────┐
    │                                                                  │
    │   TCP Connect                                                    │
    │       │                                                          │
    │       ├── recv() once, up to buffer_size bytes                   │
    │       ├── send response (Connection: close)                      │
    │       │                                                          │
    │   TCP Close                                                      │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

Only the FIRST recv() is looked at. A request line is a few dozen bytes
and arrives in the first segment in practice; anything after it (headers,
a body the client sent anyway) is never parsed. close() does read it,
though, and throws it away (see Connection.close).

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    AWAITING_REQUEST ──────► PARSED ──────► DISPATCHED
           │                   │                 │
           │ no data           │                 │
           │ or 400            │                 │
           ▼                   ▼                 ▼
         CLOSED ◄──────────────┴─────────────────┘

CLOSED is terminal and reached exactly once, whatever happened before.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.errors import TransportFault


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.
    """
    AWAITING_REQUEST = "awaiting_request"  # Accepted, nothing read yet
    PARSED = "parsed"                      # Request line parsed
    DISPATCHED = "dispatched"              # Handed to file server / 501
    CLOSED = "closed"                      # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. SINGLE BOUNDED READ                                              │
    │     └── One recv() of at most buffer_size bytes                      │
    │     └── Peer closed / reset / timeout → b"" (no response)            │
    │                                                                      │
    │  2. WRITING                                                          │
    │     └── sendall(); failures become TransportFault                    │
    │                                                                      │
    │  3. CLOSE EXACTLY ONCE                                               │
    │     └── Half-close, drain, release the file descriptor               │
    │     └── Safe to call again: later calls do nothing                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
        buffer_size: Maximum bytes read for the request.
        timeout: Per-operation socket timeout; None blocks forever.
        linger_timeout: How long close() drains unread client input.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.AWAITING_REQUEST
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = None
    linger_timeout: float = 0.5

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return str(self.address)

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read(self) -> bytes:
        """
        Read the request bytes: a single recv() of up to buffer_size.

        Returns:
            The bytes received, or b"" if the peer closed, reset the
            connection, or the read timed out.
        """
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            logger.debug(f"[{self.id}] Read timed out")
            return b""
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def sendall(self, data: bytes) -> None:
        """
        Send all of `data` to the client.

        Raises:
            TransportFault: If the client went away or the write timed out.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise TransportFault(f"Send failed: {e}") from e

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection, once.

        1. shutdown(SHUT_WR): send FIN, the response is complete
        2. drain: read and discard what the client sent that we never
           parsed (headers etc.). Closing with unread data makes the
           kernel send RST, and an RST can destroy the response before
           the client has read it.
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(self.linger_timeout)
            deadline = time.monotonic() + self.linger_timeout
            while time.monotonic() < deadline and self.socket.recv(1024):
                pass
        except OSError:
            pass  # Timeout or reset, we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
