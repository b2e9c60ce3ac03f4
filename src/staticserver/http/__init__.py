"""
=============================================================================
HTTP MODULE
=============================================================================

The protocol pieces of the server, free of any socket code:

- status_codes.py: HTTPStatus enum with reason phrases
- request.py: request-line decoding and tokenizing
- response.py: response framing and fixed error pages
- mime_types.py: extension allow-list and Content-Type mapping

Everything here is pure and can be unit tested without opening a socket.

=============================================================================
"""

from .status_codes import HTTPStatus
from .request import ParsedRequest, decode_line, parse_request_line
from .response import (
    HTTPResponse,
    ERROR_PAGES,
    HTML_CONTENT_TYPE,
    error_response,
    file_response,
)
from .mime_types import (
    ALLOWED_EXTENSIONS,
    DEFAULT_MIME_TYPE,
    get_extension,
    get_content_type,
    is_allowed_extension,
)

__all__ = [
    # Status codes
    "HTTPStatus",

    # Request parsing
    "ParsedRequest",
    "decode_line",
    "parse_request_line",

    # Response framing
    "HTTPResponse",
    "ERROR_PAGES",
    "HTML_CONTENT_TYPE",
    "error_response",
    "file_response",

    # MIME types
    "ALLOWED_EXTENSIONS",
    "DEFAULT_MIME_TYPE",
    "get_extension",
    "get_content_type",
    "is_allowed_extension",
]
