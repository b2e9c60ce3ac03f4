"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the few operations the
request pipeline needs: read a line, skip the headers, write a response,
close properly.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. The request line may arrive in
several recv() chunks, or together with all the headers in one. We never
call recv() directly for that reason; the socket is wrapped in a buffered
binary file (socket.makefile) and read with readline(), which accumulates
chunks until it sees "\n".

    Client sends:  "GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n"

    recv() might return:  "GET /ind"  "ex.html HTTP/1.1\r\nHo"  "st: x\r\n\r\n"

    readline() returns:   "GET /index.html HTTP/1.1\r\n"
                          "Host: x\r\n"
                          "\r\n"

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

There is no keep-alive. Every connection goes through the same states once:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
             │              │                         ▲
             └──────────────┴─────────────────────────┘
                (empty request, transport error, rejection)

=============================================================================
BOUNDED READS
=============================================================================

A client that connects and never sends anything would hold its handler
thread forever. Two limits prevent that:

- a socket timeout (ServerConfig.timeout) on every read
- a maximum line length and header-line count; a client exceeding them
  gets 400 Bad Request

=============================================================================
"""

import socket
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, BinaryIO

from ..http.request import decode_line
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


UNKNOWN_CLIENT = "Unknown Client"

# Upper bound on bytes discarded while closing
DRAIN_LIMIT = 64 * 1024


class RequestTooLarge(Exception):
    """Raised when the request line or header section exceeds its limits."""


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Tracked for logging and to make close() idempotent.
    """
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Reading request line / headers
    PROCESSING = "processing"  # Request parsed, handler is running
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


def format_client(address) -> str:
    """
    Build the "ip:port" identifier used in log messages.

    Falls back to a placeholder when the peer address is not an (ip, port)
    pair, e.g. for sockets that are not AF_INET/AF_INET6.

        >>> format_client(("10.0.0.7", 53012))
        '10.0.0.7:53012'
        >>> format_client("")
        'Unknown Client'
    """
    if isinstance(address, tuple) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return UNKNOWN_CLIENT


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The accepted client socket.
        address: Peer address as returned by accept().
        client: Printable "ip:port" identifier (diagnostics only).
        state: Current connection state.
        timeout: Socket timeout in seconds, None for blocking reads.
        max_line_size: Longest accepted line in bytes.
        max_header_lines: Most header lines consumed before giving up.
    """

    socket: socket.socket
    address: tuple
    client: str = UNKNOWN_CLIENT
    state: ConnectionState = ConnectionState.NEW

    timeout: Optional[float] = 30.0
    max_line_size: int = 8192
    max_header_lines: int = 100

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Blocking mode with an optional timeout; makefile() requires it
        self.socket.settimeout(self.timeout)
        self._reader = self.socket.makefile("rb")

    # =========================================================================
    # READING
    # =========================================================================

    def _read_line(self) -> bytes:
        """
        Read one raw line, terminator included.

        Returns:
            The line, or b"" if the peer closed the stream (or reset it).

        Raises:
            RequestTooLarge: If no line terminator within max_line_size bytes.
            TimeoutError: If the socket timeout expires.
        """
        try:
            raw = self._reader.readline(self.max_line_size + 1)
        except (ConnectionResetError, BrokenPipeError):
            return b""

        if len(raw) > self.max_line_size:
            raise RequestTooLarge(f"Line exceeds {self.max_line_size} bytes")
        return raw

    def read_request_line(self) -> Optional[str]:
        """
        Read the request line.

        Returns:
            The decoded line without terminator, or None if the client sent
            nothing (EOF before any data, or an empty first line).
        """
        self.state = ConnectionState.READING

        raw = self._read_line()
        if not raw:
            return None

        return decode_line(raw) or None

    def consume_headers(self) -> int:
        """
        Read and discard header lines up to the blank line or EOF.

        Headers are not interpreted; only their termination matters.

        Returns:
            Number of header lines discarded.

        Raises:
            RequestTooLarge: If there are more than max_header_lines lines.
        """
        count = 0
        while True:
            raw = self._read_line()
            if not raw or not raw.strip(b"\r\n"):
                return count

            count += 1
            if count > self.max_header_lines:
                raise RequestTooLarge(f"More than {self.max_header_lines} header lines")

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, response: HTTPResponse) -> bool:
        """
        Write a response: header block first, then the body.

        The two parts go out in separate sendall() calls. sendall() blocks
        until everything is handed to the kernel, so the response is fully
        written before close() can run.

        Returns:
            True if sent, False if the peer went away (already logged).
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(response.header_bytes())
            if response.body:
                self.socket.sendall(response.body)
        except OSError as e:
            logger.warning(
                f"Client {self.client}: Error sending HTTP response "
                f"({response.status.value}): {e}"
            )
            return False

        logger.info(f"Client {self.client}: Sent {response.status.value} {response.status.phrase}")
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the client sees end of response
        2. drain up to DRAIN_LIMIT bytes the client still sends, so close() does not
           answer unread data with a RST that could discard our response
        3. close(): release the file descriptor

        Errors at any step are ignored; the peer may already be gone.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING
        logger.debug(f"Closing connection for: {self.client}")

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            drained = 0
            while drained < DRAIN_LIMIT:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Includes socket.timeout

        try:
            if self._reader is not None:
                self._reader.close()
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Ensure the connection is closed on every exit path."""
        self.close()
        return False
