"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Dict, Generator, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import StaticServer, ServerConfig


INDEX_HTML = b"<!DOCTYPE html><html><body><h1>Home</h1></body></html>"
ABOUT_HTML = b"<html><body>About</body></html>"
STYLE_CSS = b"body { color: #333; }\n"
APP_JS = b"console.log('hello');\n"
README = b"plain file without extension\n"
SECRET = b"top secret"


@pytest.fixture
def webroot(tmp_path: Path) -> Path:
    """
    A populated webroot inside tmp_path.

        tmp_path/
        ├── secret.html          # outside the webroot
        └── www/
            ├── index.html
            ├── about.html
            ├── README           # no extension
            ├── notes.txt        # disallowed extension
            ├── css/style.css
            └── js/app.js
    """
    (tmp_path / "secret.html").write_bytes(SECRET)

    root = tmp_path / "www"
    (root / "css").mkdir(parents=True)
    (root / "js").mkdir()

    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "about.html").write_bytes(ABOUT_HTML)
    (root / "README").write_bytes(README)
    (root / "notes.txt").write_bytes(b"not served")
    (root / "css" / "style.css").write_bytes(STYLE_CSS)
    (root / "js" / "app.js").write_bytes(APP_JS)

    return root


class RunningServer:
    """Runs a StaticServer in a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def running_server(webroot: Path) -> Generator[RunningServer, None, None]:
    """A server on an OS-assigned port serving the webroot fixture."""
    server = StaticServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        webroot=str(webroot),
        timeout=2.0,
        log_level="WARNING",
    ))

    srv = RunningServer(server)
    srv.start()

    yield srv

    srv.stop()


# =============================================================================
# RAW CLIENT HELPERS
# =============================================================================

def send_raw(port: int, data: bytes, half_close: bool = True, timeout: float = 5.0) -> bytes:
    """
    Send raw bytes to the server and return everything it sends back.

    With half_close the write side is shut down after sending, so a
    request missing its blank line still reaches end of headers.
    """
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        if data:
            sock.sendall(data)
        if half_close:
            sock.shutdown(socket.SHUT_WR)

        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)

    return b"".join(chunks)


def get(port: int, path: str, headers: bytes = b"Host: localhost\r\n") -> bytes:
    """Send a well-formed GET request."""
    return send_raw(port, f"GET {path} HTTP/1.1\r\n".encode() + headers + b"\r\n")


def parse_response(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split a raw response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")

    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value

    return lines[0], headers, body
