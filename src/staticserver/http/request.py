"""
=============================================================================
REQUEST LINE PARSING
=============================================================================

The server only ever looks at the first line of a request. Headers are read
off the socket and thrown away (see core/connection.py), and there is never a
body, so "parsing a request" means tokenizing one line:

    GET /css/site.css HTTP/1.1\r\n
    ─┬─ ──────┬────── ────┬───
     │        │           │
   Method   Target     Version

=============================================================================
TOKENIZING RULES
=============================================================================

- The line is split on SINGLE spaces, so "GET  / HTTP/1.1" (two spaces)
  yields four tokens, one of them empty; the empty target then maps to
  the default document.
- Fewer than three tokens is a malformed request (400 Bad Request).
- Extra tokens after the version are ignored.
- Method and target are kept exactly as received. The method check is done
  case-insensitively by the handler, the target is never URL-decoded.

Parsing does not raise. A malformed line simply produces no ParsedRequest
and the caller turns that into a 400.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional


# Encoding used to turn request-line bytes into text.
# Invalid sequences are replaced rather than rejected.
REQUEST_ENCODING = "utf-8"


@dataclass(frozen=True)
class ParsedRequest:
    """
    The useful part of an HTTP request line.

    Attributes:
        method: Method token as sent by the client ("GET", "get", "POST", ...)
        target: Raw request-URI ("/", "/index.html", "/../secret", ...)
        version: Protocol token ("HTTP/1.1"); informational only
    """

    method: str
    target: str
    version: str

    @property
    def is_get(self) -> bool:
        """True if the method is GET in any letter case."""
        return self.method.upper() == "GET"


def decode_line(raw: bytes) -> str:
    """
    Decode one line read from the socket and strip its terminator.

    Accepts CRLF and bare LF endings:

        >>> decode_line(b"GET / HTTP/1.1\\r\\n")
        'GET / HTTP/1.1'
        >>> decode_line(b"GET / HTTP/1.1\\n")
        'GET / HTTP/1.1'
    """
    line = raw.decode(REQUEST_ENCODING, errors="replace")
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def parse_request_line(line: str) -> Optional[ParsedRequest]:
    """
    Tokenize a request line.

    Args:
        line: The request line without its line terminator.

    Returns:
        ParsedRequest, or None if the line has fewer than three tokens.

    Examples:
        >>> parse_request_line("GET /index.html HTTP/1.1")
        ParsedRequest(method='GET', target='/index.html', version='HTTP/1.1')

        >>> parse_request_line("GET /") is None
        True
    """
    parts = line.split(" ")
    if len(parts) < 3:
        return None

    method, target, version = parts[0], parts[1], parts[2]
    return ParsedRequest(method=method, target=target, version=version)
