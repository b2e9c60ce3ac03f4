"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the static file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m staticserver --port 3000                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m staticserver                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The defaults reproduce the classic behaviour of the server: listen on every
interface on port 8080 and serve ./webroot.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, timeout

    REQUEST LIMITS
    - max_line_size, max_header_lines

    CONTENT
    - webroot

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on.
    0 asks the OS for a free port (handy in tests).
    """

    backlog: int = 100
    """
    Maximum number of queued connections before new ones are refused.
    """

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.
    Bounds how long a handler waits for the request line and headers.
    None = blocking (a silent client holds its handler thread forever).
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 8192
    """
    Maximum length in bytes of the request line or of one header line.
    Longer lines are answered with 400 Bad Request.
    """

    max_header_lines: int = 100
    """
    Maximum number of header lines read before the blank line.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    webroot: str = "webroot"
    """
    Directory files are served from. Created on startup if missing.
    Relative paths are resolved against the working directory.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    @property
    def webroot_path(self) -> str:
        """Absolute, normalized webroot path."""
        return os.path.abspath(self.webroot)

    @property
    def log_level_value(self) -> int:
        """Numeric logging level for logging.basicConfig()."""
        return getattr(logging, self.log_level.upper(), logging.INFO)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST       Server host (default: 0.0.0.0)
        HTTP_PORT       Server port (default: 8080)
        HTTP_WEBROOT    Directory to serve (default: webroot)
        HTTP_TIMEOUT    Socket timeout in seconds, "none" disables (default: 30)
        HTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        timeout_env = os.getenv("HTTP_TIMEOUT", "30")
        timeout = None if timeout_env.lower() == "none" else float(timeout_env)

        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            webroot=os.getenv("HTTP_WEBROOT", "webroot"),
            timeout=timeout,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails before the socket is bound.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_line_size < 64:
            raise ValueError("max_line_size must be >= 64")

        if self.max_header_lines < 0:
            raise ValueError("max_header_lines must be >= 0")

        if not self.webroot:
            raise ValueError("webroot must not be empty")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
