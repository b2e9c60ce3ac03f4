"""
=============================================================================
HANDLERS MODULE
=============================================================================

A handler turns a parsed request into a response. This server has exactly
one: StaticFileHandler, which maps request targets onto files in the
webroot after checking them against the traversal guard and the extension
allow-list.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 REQUEST LINE → HANDLER → RESPONSE                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /site.css HTTP/1.1  ──▶  StaticFileHandler  ──▶  200 OK       │
    │   GET /../etc/passwd      ──▶  StaticFileHandler  ──▶  403          │
    │   POST / HTTP/1.1         ──▶  StaticFileHandler  ──▶  405          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .static import (
    StaticFileHandler,
    PathCheck,
    Rejection,
    DEFAULT_DOCUMENT,
    check_path,
    derive_relative_path,
    normalize_within,
)

__all__ = [
    "StaticFileHandler",
    "PathCheck",
    "Rejection",
    "DEFAULT_DOCUMENT",
    "check_path",
    "derive_relative_path",
    "normalize_within",
]
