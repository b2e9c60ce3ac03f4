"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

    # Defaults: 0.0.0.0:8080, serving ./webroot
    python -m staticserver

    # Custom port and directory
    python -m staticserver --port 3000 --webroot ./public

    # Localhost only, verbose
    python -m staticserver --host 127.0.0.1 --log-level DEBUG

Flags override HTTP_* environment variables, which override the defaults
in ServerConfig.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .server import StaticServer
from .config import ServerConfig


def _parse_timeout(value: str) -> Optional[float]:
    if value.lower() == "none":
        return None
    try:
        return float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timeout: {value!r}")


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser; defaults come from the environment."""
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Minimal static file HTTP server (HTML, CSS, JavaScript)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver                        # 0.0.0.0:8080, ./webroot
  python -m staticserver --port 3000            # Custom port
  python -m staticserver --webroot ./public     # Custom directory
  python -m staticserver --host 127.0.0.1       # Localhost only
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=_parse_timeout,
        default=defaults.timeout,
        help=f"Per-connection socket timeout in seconds, 'none' to disable "
             f"(default: {defaults.timeout})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--webroot", "-r",
        default=defaults.webroot,
        help=f"Directory to serve files from (default: {defaults.webroot})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def config_from_args(argv: Optional[List[str]] = None) -> ServerConfig:
    """
    Resolve the final configuration: flags > environment > defaults.

    Exits with status 2 (argparse convention) on unusable input.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        sys.exit(2)

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        webroot=args.webroot,
        timeout=args.timeout,
        log_level=args.log_level,
    )

    try:
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    return config


def main(argv: Optional[List[str]] = None):
    """Parse arguments, build the server and run it until interrupted."""
    config = config_from_args(argv)
    server = StaticServer(config)

    # Bind failures are already logged by the socket server
    try:
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
