"""
End-to-end tests against a live server on an ephemeral port.
"""

import gzip
import logging
import socket
import zlib

import pytest

from staticserver import HTTPServer, ServerConfig
from staticserver.middleware import Middleware

from conftest import BINARY_CONTENT, CSS_CONTENT, INDEX_CONTENT, LiveServer


def raw_exchange(port: int, payload: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes, read until the server closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(payload)
        chunks = []
        while True:
            data = sock.recv(65536)
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks)


class TestWholeFiles:

    def test_get_file(self, live_server: LiveServer):
        status, headers, body = live_server.request("/data.bin")

        assert status == 200
        assert body == BINARY_CONTENT
        assert headers["Content-Length"] == "500"
        assert headers["Accept-Range"] == "bytes"
        assert headers["Content-Type"] == "application/octet-stream"
        assert headers["Last-Modified"].endswith(" GMT")
        assert headers["Server"] == "StaticServer/1.0"
        assert headers["Date"]

    def test_root_serves_index(self, live_server: LiveServer):
        status, headers, body = live_server.request("/")

        assert status == 200
        assert headers["Content-Type"] == "text/html"
        assert body == INDEX_CONTENT

    def test_percent_encoded_name(self, live_server: LiveServer):
        status, _, body = live_server.request("/My%20Files/report.txt")

        assert status == 200
        assert body == b"quarterly\n"

    def test_idempotent(self, live_server: LiveServer):
        first = live_server.request("/data.bin")
        second = live_server.request("/data.bin")

        assert first[0] == second[0] == 200
        assert first[2] == second[2]
        assert first[1]["Last-Modified"] == second[1]["Last-Modified"]

    def test_head(self, live_server: LiveServer):
        status, headers, body = live_server.request("/data.bin", method="HEAD")

        assert status == 200
        assert headers["Content-Length"] == "500"
        assert body == b""

    def test_cache_headers_for_images(self, live_server: LiveServer):
        _, headers, _ = live_server.request("/logo.png")

        assert headers["Cache-Control"] == "max-age=86400"
        assert headers["Expires"].endswith(" GMT")

    def test_no_cache_headers_for_text(self, live_server: LiveServer):
        _, headers, _ = live_server.request("/notes.txt")

        assert "Expires" not in headers
        assert "Cache-Control" not in headers


class TestRangesAndConditional:

    def test_partial_content(self, live_server: LiveServer):
        status, headers, body = live_server.request("/data.bin", headers={"Range": "bytes=0-99"})

        assert status == 206
        assert headers["Content-Range"] == "bytes 0-99/500"
        assert headers["Content-Length"] == "100"
        assert body == BINARY_CONTENT[:100]

    def test_suffix_range(self, live_server: LiveServer):
        status, headers, body = live_server.request("/data.bin", headers={"Range": "bytes=-50"})

        assert status == 206
        assert headers["Content-Range"] == "bytes 450-499/500"
        assert body == BINARY_CONTENT[450:]

    def test_unsatisfiable(self, live_server: LiveServer):
        status, headers, body = live_server.request("/data.bin", headers={"Range": "bytes=0-500"})

        assert status == 416
        assert headers["Content-Range"] == "bytes */500"
        assert body == b""

    def test_multi_range_unsatisfiable(self, live_server: LiveServer):
        status, _, _ = live_server.request("/data.bin", headers={"Range": "bytes=0-1,4-5"})
        assert status == 416

    def test_not_modified(self, live_server: LiveServer):
        _, headers, _ = live_server.request("/logo.png")
        last_modified = headers["Last-Modified"]

        status, headers, body = live_server.request(
            "/logo.png", headers={"If-Modified-Since": last_modified}
        )

        assert status == 304
        assert body == b""
        assert "Content-Type" not in headers
        assert headers["Last-Modified"] == last_modified

    def test_different_date_gets_full_file(self, live_server: LiveServer):
        status, _, body = live_server.request(
            "/data.bin", headers={"If-Modified-Since": "Thu, 01 Jan 2099 00:00:00 GMT"}
        )

        assert status == 200
        assert body == BINARY_CONTENT


class TestNotFoundAndRedirects:

    def test_missing(self, live_server: LiveServer):
        status, headers, body = live_server.request("/missing.txt")

        assert status == 404
        assert headers["Content-Type"] == "text/plain"
        assert headers["Accept-Range"] == "bytes"
        assert body == b"404 Not Found!"

    def test_directory_redirect(self, live_server: LiveServer):
        status, headers, _ = live_server.request("/docs")

        assert status == 301
        assert headers["Location"] == "/docs/"

    def test_redirect_target_serves_index(self, live_server: LiveServer):
        status, _, body = live_server.request("/docs/")

        assert status == 200
        assert body == b"<h1>Docs</h1>\n"

    def test_double_slash_path(self, live_server: LiveServer):
        status, _, body = live_server.request("//docs/index.html")

        assert status == 200
        assert body == b"<h1>Docs</h1>\n"

    def test_directory_without_index(self, live_server: LiveServer):
        status, _, _ = live_server.request("/nested/")
        assert status == 404

    @pytest.mark.parametrize("path", [
        "/../secret.txt",
        "/%2e%2e/secret.txt",
        "/docs/..%2f..%2fsecret.txt",
    ])
    def test_traversal(self, live_server: LiveServer, path: str):
        status, _, body = live_server.request(path)

        assert status == 404
        assert b"top secret" not in body

    def test_symlink_escape(self, live_server: LiveServer, outside_link: str):
        status, _, body = live_server.request(outside_link)

        assert status == 404
        assert b"top secret" not in body


class TestCompression:

    def test_gzip(self, live_server: LiveServer):
        status, headers, body = live_server.request(
            "/style.css", headers={"Accept-Encoding": "gzip, deflate"}
        )

        assert status == 200
        assert headers["Content-Encoding"] == "gzip"
        assert headers["Transfer-Encoding"] == "chunked"
        assert "Content-Length" not in headers
        assert gzip.decompress(body) == CSS_CONTENT

    def test_deflate(self, live_server: LiveServer):
        _, headers, body = live_server.request("/style.css", headers={"Accept-Encoding": "deflate"})

        assert headers["Content-Encoding"] == "deflate"
        assert zlib.decompress(body) == CSS_CONTENT

    def test_identity(self, live_server: LiveServer):
        _, headers, body = live_server.request("/style.css", headers={"Accept-Encoding": "identity"})

        assert "Content-Encoding" not in headers
        assert headers["Content-Length"] == str(len(CSS_CONTENT))
        assert body == CSS_CONTENT

    def test_binary_not_compressed(self, live_server: LiveServer):
        _, headers, _ = live_server.request("/logo.png", headers={"Accept-Encoding": "gzip"})
        assert "Content-Encoding" not in headers

    def test_http10_compressed_body_is_close_delimited(self, live_server: LiveServer):
        raw = raw_exchange(
            live_server.port,
            b"GET /style.css HTTP/1.0\r\nAccept-Encoding: gzip\r\n\r\n",
        )
        head, _, body = raw.partition(b"\r\n\r\n")

        assert head.startswith(b"HTTP/1.0 200 OK")
        assert b"Connection: close" in head
        assert b"Content-Length" not in head
        assert b"Transfer-Encoding" not in head
        assert gzip.decompress(body) == CSS_CONTENT


class TestConnections:

    def test_keep_alive(self, live_server: LiveServer):
        conn = live_server.connection()
        try:
            conn.request("GET", "/notes.txt")
            first = conn.getresponse()
            assert first.read() == b"plain notes\n"
            sock = conn.sock

            conn.request("GET", "/data.bin", headers={"Range": "bytes=10-19"})
            second = conn.getresponse()
            assert second.status == 206
            assert second.read() == BINARY_CONTENT[10:20]
            assert conn.sock is sock

            conn.request("GET", "/style.css", headers={"Accept-Encoding": "gzip"})
            third = conn.getresponse()
            assert gzip.decompress(third.read()) == CSS_CONTENT
            assert conn.sock is sock
        finally:
            conn.close()

    def test_connection_close_honoured(self, live_server: LiveServer):
        raw = raw_exchange(
            live_server.port,
            b"GET /notes.txt HTTP/1.1\r\nConnection: close\r\n\r\n",
        )
        assert b"Connection: close" in raw
        assert raw.endswith(b"plain notes\n")

    def test_request_body_is_discarded(self, live_server: LiveServer):
        raw = raw_exchange(
            live_server.port,
            b"POST /notes.txt HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
            b"GET /notes.txt HTTP/1.1\r\nConnection: close\r\n\r\n",
        )
        assert raw.count(b"HTTP/1.1 200 OK") == 2

    def test_chunked_request_body_is_discarded(self, live_server: LiveServer):
        raw = raw_exchange(
            live_server.port,
            b"POST /notes.txt HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"5\r\nhello\r\n0\r\n\r\n"
            b"GET /notes.txt HTTP/1.1\r\nConnection: close\r\n\r\n",
        )
        assert raw.count(b"HTTP/1.1 200 OK") == 2
        assert b"400 Bad Request" not in raw

    def test_malformed_chunked_body(self, live_server: LiveServer):
        raw = raw_exchange(
            live_server.port,
            b"POST /notes.txt HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"nothex\r\n",
        )
        assert raw.startswith(b"HTTP/1.1 400 Bad Request")
        assert b"Connection: close" in raw

    def test_slow_client_does_not_block_others(self, live_server: LiveServer):
        with socket.create_connection(("127.0.0.1", live_server.port), timeout=5.0) as slow:
            slow.sendall(b"GET /notes.txt HTTP/1.1\r\nHost: x")  # incomplete head

            status, _, body = live_server.request("/data.bin")
            assert status == 200
            assert body == BINARY_CONTENT

            slow.sendall(b"\r\nConnection: close\r\n\r\n")
            data = b""
            while True:
                chunk = slow.recv(65536)
                if not chunk:
                    break
                data += chunk
            assert data.endswith(b"plain notes\n")


class TestProtocolErrors:

    def test_malformed_request_line(self, live_server: LiveServer):
        raw = raw_exchange(live_server.port, b"NOT A REQUEST\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 400 Bad Request")

    def test_unsupported_version(self, live_server: LiveServer):
        raw = raw_exchange(live_server.port, b"GET / HTTP/2.0\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 505 HTTP Version Not Supported")

    def test_first_request_timeout(self, site):
        config = ServerConfig(host="127.0.0.1", port=0, root_dir=str(site), timeout=0.3)
        server = LiveServer(HTTPServer(config))
        server.start()
        try:
            raw = raw_exchange(server.port, b"GET / HTTP/1.1\r\n")
            assert raw.startswith(b"HTTP/1.1 408 Request Timeout")
        finally:
            server.stop()


class TestServerWiring:

    def test_access_log(self, live_server: LiveServer, caplog):
        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            live_server.request("/data.bin", headers={"Range": "bytes=0-9"})
            live_server.request("/missing.txt")

        messages = [r.getMessage() for r in caplog.records if r.name == "staticserver.access"]
        assert "[206] /data.bin" in messages
        assert "[404] /missing.txt" in messages

    def test_handler_crash_becomes_500(self, config: ServerConfig, caplog):
        class Exploding(Middleware):
            async def __call__(self, request, next):
                if request.path == "/boom":
                    raise RuntimeError("boom")
                return await next(request)

        server = LiveServer(HTTPServer(config).use(Exploding()))
        server.start()
        try:
            with caplog.at_level(logging.INFO, logger="staticserver.access"):
                status, _, body = server.request("/boom")
            assert status == 500
            assert body == b"500 Internal Server Error"

            messages = [r.getMessage() for r in caplog.records if r.name == "staticserver.access"]
            assert "[500] /boom" in messages

            status, _, _ = server.request("/notes.txt")
            assert status == 200
        finally:
            server.stop()

    def test_invalid_config_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(root_dir=str(tmp_path / "missing")))
