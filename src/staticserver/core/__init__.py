"""
=============================================================================
CORE MODULE - Networking
=============================================================================

The socket-level half of the server:

1. SocketServer (socket_server.py)
   Binds the listening socket and runs the accept loop. Bind failures are
   fatal; per-connection accept failures are logged and skipped.

2. Connection (connection.py)
   Wraps one accepted client socket: buffered line reading with limits,
   two-part response writing, and the shutdown/drain/close sequence.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import (
    Connection,
    ConnectionState,
    RequestTooLarge,
    UNKNOWN_CLIENT,
    format_client,
)

__all__ = [
    "SocketServer",     # Accept loop
    "Connection",       # Client socket wrapper
    "ConnectionState",  # Connection lifecycle states
    "RequestTooLarge",  # Line/header limit exceeded
    "UNKNOWN_CLIENT",   # Placeholder peer identifier
    "format_client",    # (ip, port) -> "ip:port"
]
