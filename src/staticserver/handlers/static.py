"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a parsed request line into a response: method check, path
derivation, traversal protection, extension allow-list, file lookup.

=============================================================================
PATH TRAVERSAL ATTACKS
=============================================================================

Path traversal is an attack where a client tries to read files outside the
served directory:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    PATH TRAVERSAL ATTACK                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Webroot: /srv/site/webroot                                        │
    │                                                                      │
    │   Request: GET /../../../etc/passwd                                 │
    │                                                                      │
    │   Naive:   /srv/site/webroot/../../../etc/passwd                    │
    │            = /etc/passwd  ← secrets leaked!                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE TWO-PART GUARD
=============================================================================

We never ask "where does this path end up?" alone. We ask "does
normalizing this path change it?":

    relative  = target.lstrip("/")                 "css/../../x.html"
    candidate = normpath(webroot + "/" + relative) "/srv/site/x.html"
    safe      = candidate minus the webroot prefix  (outside → reject)

    reject if safe != relative      (case-insensitive)
    reject if ".." is a segment of safe

Any target that contains ".", "..", a doubled or trailing separator is
rewritten by normalization, so it fails the first check even when it would
have stayed inside the webroot. Well-formed paths pass unchanged. The
comparison ignores case so that case-remapping tricks on case-insensitive
filesystems are caught by the same rule.

The check is purely lexical (os.path.normpath); symlinks inside the
webroot are not resolved.

=============================================================================
"""

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..http.request import ParsedRequest
from ..http.response import HTTPResponse, error_response, file_response
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_extension, get_content_type, is_allowed_extension


logger = logging.getLogger(__name__)


DEFAULT_DOCUMENT = "index.html"

_SEGMENT_SEPARATORS = re.compile(r"[\\/]")


class Rejection(Enum):
    """Which rule turned a request target down."""
    TRAVERSAL = "traversal"  # normalization changed or escaped the path
    EXTENSION = "extension"  # extension not on the allow-list


@dataclass(frozen=True)
class PathCheck:
    """
    Outcome of validating a request target.

    Either path is the safe webroot-relative path, or reason names the rule
    that rejected it and rejection the status to answer with. normalized
    is what normalization produced (None if it escaped the webroot) and is
    kept for logging.
    """

    path: Optional[str] = None
    rejection: Optional[HTTPStatus] = None
    reason: Optional[Rejection] = None
    normalized: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None


def derive_relative_path(target: str) -> str:
    """
    Strip leading slashes from a request target.

    An empty result maps to the default document:

        >>> derive_relative_path("/css/site.css")
        'css/site.css'
        >>> derive_relative_path("///")
        'index.html'
    """
    relative = target.lstrip("/")
    return relative or DEFAULT_DOCUMENT


def normalize_within(webroot: str, relative: str) -> Optional[str]:
    """
    Lexically resolve a relative path against the webroot.

    Args:
        webroot: Absolute, normalized webroot path.
        relative: Path derived from the request target.

    Returns:
        The normalized path relative to the webroot, or None if
        normalization lands outside the webroot.
    """
    candidate = os.path.normpath(os.path.join(webroot, relative))

    if candidate == webroot:
        return ""

    prefix = webroot if webroot.endswith(os.sep) else webroot + os.sep
    if not candidate.startswith(prefix):
        return None

    return candidate[len(webroot):].lstrip("/\\")


def has_parent_segment(path: str) -> bool:
    """True if any segment of the path is exactly '..'."""
    return ".." in _SEGMENT_SEPARATORS.split(path)


def check_path(webroot: str, relative: str) -> PathCheck:
    """
    Apply the traversal guard and the extension allow-list.

    Args:
        webroot: Absolute, normalized webroot path.
        relative: Path derived from the request target.

    Returns:
        PathCheck carrying either the safe relative path or a 403.
    """
    safe = normalize_within(webroot, relative)

    if safe is None or safe.lower() != relative.lower() or has_parent_segment(safe):
        return PathCheck(rejection=HTTPStatus.FORBIDDEN, reason=Rejection.TRAVERSAL, normalized=safe)

    if not is_allowed_extension(get_extension(safe)):
        return PathCheck(rejection=HTTPStatus.FORBIDDEN, reason=Rejection.EXTENSION, normalized=safe)

    return PathCheck(path=safe, normalized=safe)


class StaticFileHandler:
    """
    Serves allow-listed files from a single webroot directory.

    =========================================================================
    FLOW
    =========================================================================

        Request: GET /css/site.css HTTP/1.1

        1. Method is GET (any case)?            no  → 405
        2. Strip "/" → "css/site.css"           ""  → "index.html"
        3. Normalization leaves it unchanged?   no  → 403
        4. Extension allow-listed or empty?     no  → 403
        5. Regular file under the webroot?      no  → 404
        6. Read it, map extension → type            → 200

    =========================================================================

    The handler holds no per-request state; one instance is shared by all
    connection threads.
    """

    def __init__(self, webroot: str):
        """
        Args:
            webroot: Directory to serve. Resolved to an absolute path once.
        """
        self.webroot = os.path.abspath(webroot)

    def handle(self, request: ParsedRequest, client: str = "Unknown Client") -> HTTPResponse:
        """
        Produce the response for a parsed request.

        Args:
            request: The tokenized request line.
            client: Peer identifier, used only in log messages.

        Returns:
            The response to send. Never raises for a bad request; only
            unexpected I/O errors while reading the file propagate.
        """
        if not request.is_get:
            logger.info(f"Client {client}: Method '{request.method.upper()}' not allowed.")
            return error_response(HTTPStatus.METHOD_NOT_ALLOWED)

        relative = derive_relative_path(request.target)
        check = check_path(self.webroot, relative)

        if check.reason is Rejection.TRAVERSAL:
            logger.warning(
                f"Client {client}: Directory traversal attempt or invalid path: "
                f"'{request.target}' -> '{check.normalized}'"
            )
            return error_response(check.rejection)

        if check.reason is Rejection.EXTENSION:
            logger.warning(
                f"Client {client}: Invalid file extension '{get_extension(relative)}' "
                f"for URL '{request.target}'."
            )
            return error_response(check.rejection)

        return self._serve_file(check.path, client)

    def _serve_file(self, relative: str, client: str) -> HTTPResponse:
        """
        Read a validated path and wrap it in a 200 response.

        Args:
            relative: Safe webroot-relative path from check_path().
            client: Peer identifier for logging.
        """
        full_path = Path(self.webroot, relative)

        # os.path.isfile swallows OSError/ValueError (over-long names, NUL bytes)
        if not os.path.isfile(full_path):
            logger.info(f"Client {client}: File not found at path: {full_path}")
            return error_response(HTTPStatus.NOT_FOUND)

        content_type = get_content_type(get_extension(relative))
        logger.info(f"Client {client}: Serving file: {full_path} as {content_type}")

        try:
            content = full_path.read_bytes()
        except FileNotFoundError:
            # Deleted between the existence check and the read
            logger.info(f"Client {client}: File vanished before read: {full_path}")
            return error_response(HTTPStatus.NOT_FOUND)

        return file_response(content, content_type)
