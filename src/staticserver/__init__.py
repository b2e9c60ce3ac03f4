"""
=============================================================================
STATICSERVER - Minimal Static File HTTP Server on Raw Sockets
=============================================================================

Serves HTML, CSS and JavaScript files from one directory over plain
HTTP/1.1, one request per connection, one thread per connection.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # StaticServer: listener + request pipeline
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Socket-level components
    │   ├── socket_server.py # Bind, listen, accept loop
    │   └── connection.py    # Line reading, response writing, close
    ├── http/                # Protocol components (no sockets)
    │   ├── request.py       # Request-line tokenizing
    │   ├── response.py      # Response framing, error pages
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # Extension allow-list, Content-Type
    └── handlers/
        └── static.py        # Traversal guard and file lookup

=============================================================================
QUICK START
=============================================================================

    from staticserver import StaticServer, ServerConfig

    server = StaticServer(ServerConfig(port=8080, webroot="public"))
    server.run()

or from a shell:

    python -m staticserver --port 8080 --webroot public

=============================================================================
"""

__version__ = "1.0.0"

from .server import StaticServer
from .config import ServerConfig

__all__ = ["StaticServer", "ServerConfig", "__version__"]
