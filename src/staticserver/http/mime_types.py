"""
=============================================================================
MIME TYPES AND THE EXTENSION ALLOW-LIST
=============================================================================

Only three kinds of file may be served: HTML documents, stylesheets and
scripts. Everything else with an extension is refused before the filesystem
is consulted.

    ┌────────────────────────────────────────────────────────────────────┐
    │  Extension   Content-Type                                          │
    │  ────────────────────────────────────────────────────────────────  │
    │  .html       text/html; charset=UTF-8                              │
    │  .css        text/css; charset=UTF-8                               │
    │  .js         application/javascript; charset=UTF-8                │
    │  (none)      application/octet-stream                              │
    └────────────────────────────────────────────────────────────────────┘

An extensionless request is allowed through the allow-list so that it can
be looked up (and will usually 404). If such a file does exist it is sent
as application/octet-stream.

=============================================================================
"""

import os


MIME_TYPES = {
    ".html": "text/html; charset=UTF-8",
    ".css": "text/css; charset=UTF-8",
    ".js": "application/javascript; charset=UTF-8",
}

# Extensions that may be requested at all
ALLOWED_EXTENSIONS = frozenset(MIME_TYPES)

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_extension(path: str) -> str:
    """
    Return the lowercased extension of a path, including the dot.

    Examples:
        >>> get_extension("css/Site.CSS")
        '.css'

        >>> get_extension("README")
        ''

        >>> get_extension(".hidden")
        ''
    """
    return os.path.splitext(path)[1].lower()


def is_allowed_extension(extension: str) -> bool:
    """
    Check an extension (as returned by get_extension) against the allow-list.

    The empty extension is allowed; the existence check decides its fate.
    """
    return not extension or extension in ALLOWED_EXTENSIONS


def get_content_type(extension: str) -> str:
    """
    Map an extension to the Content-Type header value.

    Examples:
        >>> get_content_type(".html")
        'text/html; charset=UTF-8'

        >>> get_content_type("")
        'application/octet-stream'
    """
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
