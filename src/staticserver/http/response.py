"""
=============================================================================
HTTP RESPONSE FRAMING
=============================================================================

Every response this server sends, success or error, has exactly the same
shape:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                        ← status line          │
    │    Content-Type: text/html; charset=UTF-8\r\n                       │
    │    Content-Length: 1234\r\n                   ← len(body) in bytes   │
    │    Connection: close\r\n                      ← always               │
    │    \r\n                                       ← end of headers       │
    │    <body bytes>                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

No Date, no Server, no caching headers. The connection is one-shot, so
"Connection: close" is unconditional.

Header and body are kept apart (header_bytes() / body) because the
connection writes them separately: the header block is flushed first, then
the raw body.

=============================================================================
ERROR PAGES
=============================================================================

Error bodies are small fixed HTML documents. They are module-level
constants, encoded once at import time, and never contain request data or
filesystem paths.

=============================================================================
"""

from dataclasses import dataclass

from .status_codes import HTTPStatus


HTML_CONTENT_TYPE = "text/html; charset=UTF-8"


def _error_page(status: HTTPStatus, heading: str) -> bytes:
    return (
        f"<!DOCTYPE html><html><head><title>{status.value} {status.phrase}</title></head>\n"
        f"<body><h1>Error {status.value}: {heading}</h1></body></html>"
    ).encode("utf-8")


ERROR_PAGES = {
    HTTPStatus.BAD_REQUEST: _error_page(HTTPStatus.BAD_REQUEST, "Bad Request"),
    HTTPStatus.FORBIDDEN: _error_page(HTTPStatus.FORBIDDEN, "Forbidden"),
    HTTPStatus.NOT_FOUND: _error_page(HTTPStatus.NOT_FOUND, "Page Not Found"),
    HTTPStatus.METHOD_NOT_ALLOWED: _error_page(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed"),
}


@dataclass(frozen=True)
class HTTPResponse:
    """
    A response ready to be written to a client socket.

    Built once by the handler, written once by the connection, then dropped.

    Attributes:
        status: HTTP status code (enum)
        content_type: Value of the Content-Type header
        body: Raw body bytes; Content-Length is derived from it
        version: Protocol version for the status line
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = HTML_CONTENT_TYPE
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        """Exact body length in bytes."""
        return len(self.body)

    def header_bytes(self) -> bytes:
        """
        Serialize the status line and headers, including the blank line.

        Returns:
            Everything that precedes the body on the wire.
        """
        lines = [
            self.status_line,
            f"Content-Type: {self.content_type}",
            f"Content-Length: {self.content_length}",
            "Connection: close",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("latin-1")

    def to_bytes(self) -> bytes:
        """Header block followed by the body, as one byte string."""
        return self.header_bytes() + self.body


def error_response(status: HTTPStatus) -> HTTPResponse:
    """
    Build the fixed HTML error response for a status.

    Args:
        status: One of the error statuses in ERROR_PAGES.

    Returns:
        HTTPResponse with the matching error page as body.
    """
    return HTTPResponse(status=status, content_type=HTML_CONTENT_TYPE, body=ERROR_PAGES[status])


def file_response(content: bytes, content_type: str) -> HTTPResponse:
    """Build a 200 OK response carrying a file's bytes."""
    return HTTPResponse(status=HTTPStatus.OK, content_type=content_type, body=content)
