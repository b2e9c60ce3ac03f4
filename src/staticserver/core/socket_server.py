"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

This module implements the listening side of the server: create the socket,
bind it, listen, and accept connections in a loop. Each accepted socket is
wrapped in a Connection and handed to a callback; what happens next is the
callback's business.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Associate it with IP:PORT       ← failure here is fatal
    3. listen()    Start queueing incoming connections
    4. accept()    Wait for a client, get a NEW socket for it
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Bound to 0.0.0.0:8080
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
ERROR ISOLATION
=============================================================================

Failing to bind or listen stops the server: there is nothing to serve on.

Failing to accept or dispatch ONE connection (peer reset before accept()
returned, a momentary file descriptor shortage) is logged and the loop
keeps accepting.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection, format_client


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(callback)                                                   │
    │        ├──► _create_socket()   socket() + SO_REUSEADDR               │
    │        ├──► bind() / listen()  OSError → logged and re-raised        │
    │        ├──► _setup_signals()   only on the main thread               │
    │        └──► _accept_loop()     blocks until shutdown()               │
    │                 └──► accept() → Connection → callback(conn)          │
    │                                                                      │
    │    shutdown()                                                        │
    │        └──► stop event set (loop notices within 1 second)            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    # accept() wakes up this often to check for shutdown
    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, limits).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening, so tests can wait for it
        self._ready_event = threading.Event()
        # Stop request; survives until _cleanup() so an early shutdown() wins
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        After start() this is the real port, even when config.port was 0.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR: restart without "Address already in use" while the
        # previous socket sits in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Periodic wake-up so the accept loop can notice shutdown()
        sock.settimeout(self.ACCEPT_POLL_INTERVAL)

        return sock

    def _setup_signals(self):
        """
        Turn SIGINT/SIGTERM into a clean shutdown.

        signal.signal() may only be called from the main thread; when the
        server runs in a background thread (tests, embedding) this is a no-op.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, self._on_signal)

    def _on_signal(self, signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping accept loop")
        self.shutdown()

    def _restore_signals(self):
        """Put back whatever handlers were installed before start()."""
        while self._original_handlers:
            sig, previous = self._original_handlers.popitem()
            signal.signal(sig, previous)

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each new Connection on the
                                accept thread. It must not block; the
                                HTTP layer hands the connection to its own
                                thread and returns.

        Raises:
            OSError: If the socket cannot be bound or put into listening
                     mode. This is fatal for the server.
        """
        self._socket = self._create_socket()

        try:
            # bind() errors: port in use, permission denied for ports < 1024
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server started on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown.

        ┌─────────────────────────────────────────────────────────────────┐
        │   until shutdown() sets the stop event:                          │
        │       ├──► accept()          (returns every second on timeout)   │
        │       ├──► Connection(...)   wrap socket, capture "ip:port"      │
        │       └──► connection_handler(conn)                              │
        │                                                                  │
        │   Any error for a single connection: log, close it, continue.    │
        └─────────────────────────────────────────────────────────────────┘
        """
        logger.info("Waiting for connections...")

        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Normal: lets us check the stop event
            except OSError as e:
                if self._shutdown_event.is_set():
                    break
                logger.error(f"Accept error: {e}")
                continue

            client = format_client(client_address)
            logger.info(f"Client connected: {client}")

            conn = None
            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    client=client,
                    timeout=self.config.timeout,
                    max_line_size=self.config.max_line_size,
                    max_header_lines=self.config.max_header_lines,
                )
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"Failed to dispatch connection from {client}: {e}")
                if conn is not None:
                    conn.close()
                else:
                    try:
                        client_socket.close()
                    except OSError:
                        pass

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from any thread, and more than once, including before
        start() has finished binding: the accept loop then exits at once.
        Connections already handed off keep running to completion.
        """
        logger.info("Stopping listener...")
        self._shutdown_event.set()

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        # Re-arm for a later start()
        self._shutdown_event.clear()
        logger.info("Server stopped.")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the socket is listening.

        Returns:
            True if the server is accepting connections, False on timeout.
        """
        return self._ready_event.wait(timeout)

