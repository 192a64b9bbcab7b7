"""
=============================================================================
CORE NETWORKING
=============================================================================

The OS glue around the request pipeline:

    socket_server.py  Listening socket, accept loop, signal handling
    connection.py     One accepted socket, one exchange, closed once
    workers.py        One thread per connection, reaped when finished

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .workers import ConnectionWorker, WorkerGroup, WorkerState

__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Wrapper for client socket
    "ConnectionState",  # Per-connection state machine
    "ConnectionWorker", # Thread running one connection
    "WorkerGroup",      # Spawns and reaps workers
    "WorkerState",
]
