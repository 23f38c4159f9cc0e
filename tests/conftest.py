"""
pytest configuration and fixtures.
"""

import asyncio
import http.client
import os
import threading
from pathlib import Path
from typing import Dict, Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import HTTPServer, ServerConfig
from staticserver.http import HTTPRequest


# 500 bytes with a recognisable pattern, so a slice can be checked by value
BINARY_CONTENT = bytes(i % 256 for i in range(500))
CSS_CONTENT = b"body { color: #333; margin: 0 auto; }\n" * 100
INDEX_CONTENT = b"<!DOCTYPE html><title>home</title><h1>Home</h1>\n"
DOCS_INDEX_CONTENT = b"<h1>Docs</h1>\n"


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small site tree under tmp_path/site:

        site/
        ├── index.html
        ├── data.bin          500 bytes
        ├── style.css         compressible, long-lived
        ├── app.js
        ├── logo.png
        ├── notes.txt
        ├── empty.txt         0 bytes
        ├── My Files/report.txt
        ├── docs/index.html
        └── nested/           no index

    plus tmp_path/secret.txt OUTSIDE the root.
    """
    root = tmp_path / "site"
    root.mkdir()

    (root / "index.html").write_bytes(INDEX_CONTENT)
    (root / "data.bin").write_bytes(BINARY_CONTENT)
    (root / "style.css").write_bytes(CSS_CONTENT)
    (root / "app.js").write_bytes(b"console.log('hi');\n")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
    (root / "notes.txt").write_bytes(b"plain notes\n")
    (root / "empty.txt").write_bytes(b"")

    (root / "My Files").mkdir()
    (root / "My Files" / "report.txt").write_bytes(b"quarterly\n")

    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_bytes(DOCS_INDEX_CONTENT)

    (root / "nested").mkdir()

    (tmp_path / "secret.txt").write_bytes(b"top secret\n")

    return root


@pytest.fixture
def config(site: Path) -> ServerConfig:
    """Test server configuration serving the site fixture."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(site),
        timeout=5.0,
        keep_alive_timeout=2.0,
        log_level="WARNING",
    )


def make_request(
    path: str = "/",
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    version: str = "HTTP/1.1",
) -> HTTPRequest:
    """Build an HTTPRequest directly, lowercasing header names like the parser."""
    return HTTPRequest(
        method=method,
        path=path,
        target=path,
        version=version,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        client_address=("127.0.0.1", 50000),
    )


async def read_body(response) -> bytes:
    """Drain a response plan's stream (or inline body) and release it."""
    if response.stream is None:
        return response.body
    chunks = []
    try:
        async for chunk in response.stream:
            chunks.append(chunk)
    finally:
        await response.aclose()
    return b"".join(chunks)


class LiveServer:
    """Runs an HTTPServer on its own event loop in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self.port: int = 0
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._error: Optional[BaseException] = None

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(
            target=lambda: asyncio.run(self._main()),
            daemon=True,
        )
        self._thread.start()

        if not self._ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")
        if self._error is not None:
            raise RuntimeError("Server failed to start") from self._error

    async def _main(self):
        self._loop = asyncio.get_running_loop()
        self._stopped = asyncio.Event()
        try:
            handle = await self.server.start()
        except BaseException as e:
            self._error = e
            self._ready.set()
            return

        self.port = handle.port
        self._ready.set()
        try:
            await self._stopped.wait()
        finally:
            await handle.stop()

    def stop(self):
        """Stop the server and wait for the thread to exit."""
        if self._loop is not None and self._stopped is not None:
            self._loop.call_soon_threadsafe(self._stopped.set)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connection(self, timeout: float = 5.0) -> http.client.HTTPConnection:
        return http.client.HTTPConnection("127.0.0.1", self.port, timeout=timeout)

    def request(
        self,
        path: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, http.client.HTTPMessage, bytes]:
        """One request on a fresh connection: (status, headers, body)."""
        conn = self.connection()
        try:
            conn.request(method, path, headers=headers or {})
            response = conn.getresponse()
            body = response.read()
            return response.status, response.headers, body
        finally:
            conn.close()


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[LiveServer, None, None]:
    """A running server over the site fixture."""
    server = LiveServer(HTTPServer(config))
    server.start()

    yield server

    server.stop()


@pytest.fixture
def outside_link(site: Path, tmp_path: Path) -> str:
    """A symlink inside the root pointing at a file outside it."""
    link = site / "escape.txt"
    try:
        os.symlink(tmp_path / "secret.txt", link)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported here")
    return "/escape.txt"
