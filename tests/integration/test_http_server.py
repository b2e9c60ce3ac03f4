"""
Integration tests: a real server on a loopback port, spoken to over raw
sockets.
"""

import errno
import logging
import socket
import struct
import threading
import time

import pytest

from staticserver import StaticServer, ServerConfig

from conftest import (
    ABOUT_HTML,
    APP_JS,
    INDEX_HTML,
    README,
    STYLE_CSS,
    RunningServer,
    get,
    parse_response,
    send_raw,
)


class TestSuccessfulRequests:

    @pytest.mark.parametrize("path, body, content_type", [
        ("/index.html", INDEX_HTML, "text/html; charset=UTF-8"),
        ("/about.html", ABOUT_HTML, "text/html; charset=UTF-8"),
        ("/css/style.css", STYLE_CSS, "text/css; charset=UTF-8"),
        ("/js/app.js", APP_JS, "application/javascript; charset=UTF-8"),
        ("/README", README, "application/octet-stream"),
    ])
    def test_get_file(self, running_server, path, body, content_type):
        status, headers, received = parse_response(get(running_server.port, path))

        assert status == "HTTP/1.1 200 OK"
        assert headers == {
            "Content-Type": content_type,
            "Content-Length": str(len(body)),
            "Connection": "close",
        }
        assert received == body

    @pytest.mark.parametrize("path", ["/", "//", "///"])
    def test_default_document(self, running_server, path):
        status, _, body = parse_response(get(running_server.port, path))

        assert status == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML

    def test_lowercase_method(self, running_server):
        raw = send_raw(running_server.port, b"get /index.html HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")

    def test_many_headers_are_consumed(self, running_server):
        headers = b"".join(f"X-Header-{i}: {i}\r\n".encode() for i in range(50))
        status, _, body = parse_response(get(running_server.port, "/about.html", headers=headers))

        assert status == "HTTP/1.1 200 OK"
        assert body == ABOUT_HTML

    def test_request_without_blank_line(self, running_server):
        """Half-closing after the request line still gets an answer."""
        raw = send_raw(running_server.port, b"GET /index.html HTTP/1.1\r\n")

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")

    def test_connection_closed_after_response(self, running_server):
        """One request per connection; the server closes without waiting."""
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5) as sock:
            sock.sendall(b"GET /index.html HTTP/1.1\r\n\r\n")

            data = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                data += chunk

        assert data.endswith(INDEX_HTML)


class TestErrorResponses:

    def test_not_found(self, running_server):
        status, headers, body = parse_response(get(running_server.port, "/missing.html"))

        assert status == "HTTP/1.1 404 Not Found"
        assert headers["Content-Type"] == "text/html; charset=UTF-8"
        assert headers["Content-Length"] == str(len(body))
        assert b"Error 404: Page Not Found" in body

    @pytest.mark.parametrize("path", [
        "/../secret.html",
        "/css/../../secret.html",
        "/css/../index.html",
        "/./index.html",
        "/css//style.css",
    ])
    def test_traversal_forbidden(self, running_server, path):
        """Any target that normalization rewrites is refused."""
        status, _, body = parse_response(get(running_server.port, path))

        assert status == "HTTP/1.1 403 Forbidden"
        assert b"top secret" not in body

    def test_percent_encoded_dots_are_literal(self, running_server):
        """Targets are not URL-decoded, so %2e%2e is just a missing name."""
        status, _, body = parse_response(get(running_server.port, "/%2e%2e/secret.html"))

        assert status in ("HTTP/1.1 403 Forbidden", "HTTP/1.1 404 Not Found")
        assert b"top secret" not in body

    @pytest.mark.parametrize("path", ["/notes.txt", "/image.png", "/index.html?v=1"])
    def test_extension_forbidden(self, running_server, path):
        status, _, body = parse_response(get(running_server.port, path))

        assert status == "HTTP/1.1 403 Forbidden"
        assert b"Error 403" in body

    @pytest.mark.parametrize("method", [b"POST", b"HEAD", b"PUT", b"DELETE"])
    def test_method_not_allowed(self, running_server, method):
        raw = send_raw(running_server.port, method + b" /index.html HTTP/1.1\r\n\r\n")
        status, _, body = parse_response(raw)

        assert status == "HTTP/1.1 405 Method Not Allowed"
        assert b"Error 405" in body

    def test_malformed_request_line(self, running_server):
        status, _, body = parse_response(send_raw(running_server.port, b"GET /\r\n\r\n"))

        assert status == "HTTP/1.1 400 Bad Request"
        assert b"Error 400" in body

    def test_oversized_request_line(self, running_server):
        raw = send_raw(running_server.port, b"GET /" + b"a" * 9000 + b".html HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_too_many_headers(self, running_server):
        headers = b"X-A: 1\r\n" * 150
        raw = send_raw(running_server.port, b"GET / HTTP/1.1\r\n" + headers + b"\r\n")

        assert raw.startswith(b"HTTP/1.1 400 Bad Request\r\n")


class TestSilentClose:

    def test_empty_request(self, running_server):
        assert send_raw(running_server.port, b"") == b""

    def test_blank_request_line(self, running_server):
        assert send_raw(running_server.port, b"\r\n") == b""

    def test_idle_client_times_out(self, running_server):
        """A client that never sends anything is dropped after the timeout."""
        start = time.monotonic()
        raw = send_raw(running_server.port, b"", half_close=False, timeout=10.0)

        assert raw == b""
        assert time.monotonic() - start < 8.0


class TestRobustness:

    def test_concurrent_requests(self, running_server):
        """Parallel clients each get their own, complete response."""
        expected = {
            "/index.html": INDEX_HTML,
            "/about.html": ABOUT_HTML,
            "/css/style.css": STYLE_CSS,
            "/js/app.js": APP_JS,
        }
        results = {}
        errors = []

        def worker(i, path):
            try:
                results[i] = (path, parse_response(get(running_server.port, path)))
            except Exception as e:
                errors.append(e)

        paths = list(expected) * 5
        threads = [threading.Thread(target=worker, args=(i, p)) for i, p in enumerate(paths)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert not errors
        assert len(results) == len(paths)
        for path, (status, headers, body) in results.values():
            assert status == "HTTP/1.1 200 OK"
            assert body == expected[path]
            assert headers["Content-Length"] == str(len(body))

    def test_slow_client_does_not_block_others(self, running_server):
        with socket.create_connection(("127.0.0.1", running_server.port)) as idle:
            idle.sendall(b"GET /index")  # incomplete line, handler waits

            raw = get(running_server.port, "/about.html")

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")

    def test_survives_reset_connection(self, running_server):
        sock = socket.create_connection(("127.0.0.1", running_server.port))
        # SO_LINGER with zero timeout: close() sends RST
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
        sock.close()

        assert get(running_server.port, "/index.html").startswith(b"HTTP/1.1 200 OK\r\n")

    def test_survives_client_vanishing_mid_request(self, running_server):
        with socket.create_connection(("127.0.0.1", running_server.port)) as sock:
            sock.sendall(b"GET /index.html HTTP/1.1\r\nHost: x\r\n")

        assert get(running_server.port, "/index.html").startswith(b"HTTP/1.1 200 OK\r\n")

    def test_file_added_while_running(self, running_server, webroot):
        assert get(running_server.port, "/late.js").startswith(b"HTTP/1.1 404")

        (webroot / "late.js").write_bytes(b"let x = 1;")

        status, _, body = parse_response(get(running_server.port, "/late.js"))
        assert status == "HTTP/1.1 200 OK"
        assert body == b"let x = 1;"


class TestLifecycle:

    def test_creates_missing_webroot(self, tmp_path):
        root = tmp_path / "fresh"
        server = StaticServer(ServerConfig(host="127.0.0.1", port=0, webroot=str(root), log_level="WARNING"))

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        try:
            assert server.wait_until_ready(timeout=5.0)
            assert root.is_dir()
            assert get(server.address[1], "/").startswith(b"HTTP/1.1 404 Not Found\r\n")
        finally:
            server.shutdown()
            thread.join(timeout=5.0)

        assert not thread.is_alive()

    def test_shutdown_stops_accepting(self, webroot):
        server = StaticServer(ServerConfig(host="127.0.0.1", port=0, webroot=str(webroot), log_level="WARNING"))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        assert server.wait_until_ready(timeout=5.0)
        port = server.address[1]

        server.shutdown()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0)

    def test_port_in_use_is_fatal(self, webroot):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            server = StaticServer(ServerConfig(host="127.0.0.1", port=port, webroot=str(webroot), log_level="WARNING"))

            with pytest.raises(OSError):
                server.run()

    def test_shutdown_right_after_start(self, webroot):
        """A stop request racing the bind still ends run()."""
        server = StaticServer(ServerConfig(host="127.0.0.1", port=0, webroot=str(webroot), log_level="WARNING"))
        thread = threading.Thread(target=server.run, daemon=True)

        thread.start()
        server.shutdown()
        thread.join(timeout=4.0)

        assert not thread.is_alive()

    def test_shutdown_before_run(self, webroot):
        """A stop requested before run() makes run() return at once."""
        server = StaticServer(ServerConfig(host="127.0.0.1", port=0, webroot=str(webroot), log_level="WARNING"))
        server.shutdown()

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        thread.join(timeout=4.0)

        assert not thread.is_alive()
        assert not server.is_running

    def test_restart_after_shutdown(self, webroot):
        """The stop request is consumed, so the same server can run again."""
        srv = RunningServer(StaticServer(ServerConfig(
            host="127.0.0.1", port=0, webroot=str(webroot), log_level="WARNING",
        )))

        srv.start()
        srv.stop()
        srv.start()
        try:
            assert get(srv.port, "/index.html").startswith(b"HTTP/1.1 200 OK\r\n")
        finally:
            srv.stop()


class FlakyListener(socket.socket):
    """Listening socket whose first accept() loses the client to EMFILE."""

    def __init__(self, *args, failures: int = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures

    def accept(self):
        client, address = super().accept()
        if self.failures:
            self.failures -= 1
            client.close()
            raise OSError(errno.EMFILE, "Too many open files")
        return client, address


class TestAcceptRecovery:
    """A failure on one connection never stops the accept loop."""

    @pytest.fixture
    def server(self, webroot):
        return StaticServer(ServerConfig(host="127.0.0.1", port=0, webroot=str(webroot), log_level="WARNING"))

    def test_accept_error_is_skipped(self, server, monkeypatch, caplog):
        socket_server = server._socket_server

        def create_flaky_socket():
            sock = FlakyListener(socket.AF_INET, socket.SOCK_STREAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.settimeout(socket_server.ACCEPT_POLL_INTERVAL)
            return sock

        monkeypatch.setattr(socket_server, "_create_socket", create_flaky_socket)

        srv = RunningServer(server)
        srv.start()
        try:
            with caplog.at_level(logging.ERROR, logger="staticserver"):
                # Lost to the failing accept()
                socket.create_connection(("127.0.0.1", srv.port), timeout=5.0).close()

                raw = get(srv.port, "/index.html")
        finally:
            srv.stop()

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert "Accept error" in caplog.text

    def test_dispatch_error_is_skipped(self, server, monkeypatch, caplog):
        dispatch = server._handle_connection
        seen = []

        def flaky_dispatch(conn):
            seen.append(conn.client)
            if len(seen) == 1:
                raise RuntimeError("dispatch failed")
            dispatch(conn)

        monkeypatch.setattr(server, "_handle_connection", flaky_dispatch)

        srv = RunningServer(server)
        srv.start()
        try:
            with caplog.at_level(logging.ERROR, logger="staticserver"):
                first = get(srv.port, "/index.html")
                second = get(srv.port, "/index.html")
        finally:
            srv.stop()

        assert first == b""
        assert second.startswith(b"HTTP/1.1 200 OK\r\n")
        assert len(seen) == 2
        assert "Failed to dispatch connection" in caplog.text
