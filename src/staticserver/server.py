"""
=============================================================================
STATIC FILE SERVER
=============================================================================

The orchestrator that ties the listener and the request pipeline together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │  StaticServer   │                          │
    │                        │ (Orchestrator)  │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │               ┌─────────────────┴─────────────────┐                 │
    │               ▼                                   ▼                 │
    │       ┌──────────────┐                   ┌──────────────────┐       │
    │       │ SocketServer │                   │StaticFileHandler │       │
    │       │  (Listener)  │                   │  (path + files)  │       │
    │       └──────┬───────┘                   └──────────────────┘       │
    │              │ one thread per connection          ▲                  │
    │              ▼                                    │                  │
    │       ┌──────────────┐    ParsedRequest           │                  │
    │       │  Connection  │ ───────────────────────────┘                  │
    │       └──────────────┘                                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE (one per connection)
=============================================================================

    1. READ REQUEST LINE      empty / EOF              → close, no response
    2. CONSUME HEADERS        too many / too long      → 400
    3. TOKENIZE               fewer than 3 tokens      → 400
    4. METHOD CHECK           not GET (any case)       → 405
    5. DERIVE PATH            "" → index.html
    6. TRAVERSAL GUARD        normalization changed it → 403
    7. EXTENSION ALLOW-LIST   not .html/.css/.js       → 403
    8. FILE LOOKUP            missing                  → 404, else 200
    9. SEND RESPONSE          header block, then body
   10. CLOSE                  on every path, errors ignored

Steps 4-8 live in StaticFileHandler; this module owns the rest.

=============================================================================
CONCURRENCY
=============================================================================

Each accepted connection gets its own daemon thread. The accept loop only
starts the thread and goes back to accept(); it never waits for a handler.
Handlers share nothing but the read-only webroot path, so no locks are
needed.

=============================================================================
"""

import logging
import os
import threading
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, RequestTooLarge
from .handlers import StaticFileHandler
from .http import HTTPStatus, error_response, parse_request_line


logger = logging.getLogger(__name__)


class StaticServer:
    """
    Multi-threaded static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = StaticServer(ServerConfig(port=8080, webroot="public"))
        server.run()          # blocks until Ctrl+C / SIGTERM

    From another thread:

        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._handler = StaticFileHandler(self.config.webroot_path)

    @property
    def webroot(self) -> str:
        """Absolute path of the served directory."""
        return self._handler.webroot

    @property
    def address(self):
        """The bound (host, port), real port included once running."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: If the webroot cannot be created or the port cannot be
                     bound. Both are fatal.
        """
        self._setup_logging()
        self.ensure_webroot()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    def shutdown(self):
        """Stop accepting connections; run() returns shortly after."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up (or timeout)."""
        return self._socket_server.wait_until_ready(timeout)

    def ensure_webroot(self):
        """Create the webroot directory if it does not exist yet."""
        if not os.path.isdir(self.webroot):
            os.makedirs(self.webroot, exist_ok=True)
            logger.info(f"Created webroot directory at: {self.webroot}")
        else:
            logger.info(f"Serving files from: {self.webroot}")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = self.config.log_level_value

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("staticserver").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a fresh connection to its own thread.

        Called by SocketServer on the accept thread; returns immediately.
        """
        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"client-{conn.client}",
            daemon=True,
        )

        try:
            thread.start()
        except RuntimeError as e:
            # "can't start new thread": drop this client, keep the server up
            logger.error(f"Client {conn.client}: Could not start handler thread: {e}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Run the full request pipeline for one connection (handler thread).

        Every outcome ends in conn.close() via the context manager.
        Nothing raised here escapes the thread.
        """
        logger.debug(f"Handling client: {conn.client} on thread {threading.current_thread().name}")

        with conn:
            try:
                self._serve(conn)

            except TimeoutError:
                logger.warning(f"Client {conn.client}: Timed out waiting for request")

            except OSError as e:
                logger.warning(f"IO error with client {conn.client}: {e}")

            except Exception as e:
                logger.exception(f"Error handling client {conn.client}: {e}")

    def _serve(self, conn: Connection):
        """Read, parse, dispatch and answer a single request."""
        try:
            line = conn.read_request_line()
            if line is None:
                logger.info(f"Client {conn.client}: Empty request line.")
                return

            conn.consume_headers()

        except RequestTooLarge as e:
            logger.warning(f"Client {conn.client}: Request rejected: {e}")
            conn.send_response(error_response(HTTPStatus.BAD_REQUEST))
            return

        logger.debug(f"Client {conn.client} Request: {line}")

        request = parse_request_line(line)
        if request is None:
            logger.info(f"Client {conn.client}: Invalid request line format.")
            conn.send_response(error_response(HTTPStatus.BAD_REQUEST))
            return

        conn.state = ConnectionState.PROCESSING
        response = self._handler.handle(request, conn.client)
        conn.send_response(response)

