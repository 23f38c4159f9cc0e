"""
=============================================================================
STATIC FILE SERVER
=============================================================================

The orchestrator that ties the components together: an asyncio listener,
one task per connection, and a middleware pipeline wrapped around the
static file handler.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STATIC SERVER ARCHITECTURE                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        │  (Orchestrator) │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │ asyncio      │    │  Connection  │    │ StaticFileHandler│    │
    │    │ start_server │    │ (per client) │    │  (files → plans) │    │
    │    └──────────────┘    └──────────────┘    └──────────────────┘    │
    │                                                                      │
    │           ┌──────────────────────────────────────────────────┐      │
    │           │         Middleware Pipeline                      │      │
    │           │   Logging → Errors → Compression → Handler       │      │
    │           └──────────────────────────────────────────────────┘      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── the event loop accepts and spawns a connection task

    2. READ HEAD
       └── Connection reads up to the blank line (bounded, with timeout)

    3. PARSE REQUEST
       └── RequestParser extracts method, path, version, headers

    4. MIDDLEWARE PIPELINE
       └── Logging → Errors → Compression → StaticFileHandler

    5. SEND RESPONSE
       └── headers, then the body streamed chunk by chunk

    6. KEEP-ALIVE OR CLOSE
       └── loop for the next request, or close the connection

=============================================================================
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

from .config import ServerConfig
from .core.connection import Connection, ConnectionState
from .handlers.static import StaticFileHandler
from .http.request import HTTPParseError, RequestParser
from .http.response import HTTPStatus
from .middleware import (
    CompressionMiddleware,
    ErrorMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
)


logger = logging.getLogger(__name__)


@dataclass
class ServerHandle:
    """
    A running server: where it listens and how to stop it.

    Returned by HTTPServer.start(). The port is the one actually bound,
    so a config with port 0 reports the ephemeral port chosen by the OS.
    """

    host: str
    port: int
    _server: asyncio.AbstractServer = field(repr=False)
    _connections: Set[asyncio.Task] = field(repr=False, default_factory=set)
    running: bool = True

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def serve_forever(self) -> None:
        """Block until the server is stopped or the calling task is cancelled."""
        await self._server.serve_forever()

    async def stop(self) -> None:
        """
        Stop listening and close every open connection.

        Connection tasks are cancelled, which closes their open files on
        the way out. Calling stop() twice is harmless.
        """
        if not self.running:
            return
        self.running = False

        logger.info("Shutting down server...")
        self._server.close()

        for task in list(self._connections):
            task.cancel()
        if self._connections:
            await asyncio.gather(*self._connections, return_exceptions=True)

        await self._server.wait_closed()
        logger.info("Server stopped")

    async def __aenter__(self) -> "ServerHandle":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
        return False


class HTTPServer:
    """
    Static file HTTP server.

    =========================================================================
    USAGE
    =========================================================================

    Blocking, for the command line:

        server = HTTPServer(ServerConfig(root_dir="./public", port=8000))
        server.run()

    Inside an existing event loop:

        handle = await HTTPServer(config).start()
        ...
        await handle.stop()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the server.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._parser = RequestParser()
        self._static = StaticFileHandler.from_config(self.config)

        # Logging first so it sees the final status, including the 500 the
        # error guard turns a crash into. Compression wraps the byte source.
        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(self.config.log_format))
        self._middleware.add(ErrorMiddleware())
        self._middleware.add(CompressionMiddleware(self.config.compression_level))

        self._handler = self._middleware.wrap(self._static.handle)

    def use(self, middleware: Middleware) -> "HTTPServer":
        """
        Add middleware inside the built-in ones, closest to the handler.

        Returns:
            Self for method chaining.
        """
        self._middleware.add(middleware)
        self._handler = self._middleware.wrap(self._static.handle)
        return self

    @property
    def root_dir(self) -> Path:
        return self._static.root_dir

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    async def start(self) -> ServerHandle:
        """
        Bind the listening socket and start accepting connections.

        Returns:
            A ServerHandle for the running server.

        Raises:
            OSError: If the address can't be bound.
        """
        connections: Set[asyncio.Task] = set()

        async def on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
            task = asyncio.current_task()
            connections.add(task)
            try:
                await self._handle_connection(reader, writer)
            finally:
                connections.discard(task)

        server = await asyncio.start_server(
            on_connect,
            host=self.config.host,
            port=self.config.port,
            backlog=self.config.backlog,
            limit=self.config.read_limit,
        )

        port = server.sockets[0].getsockname()[1]
        logger.info(f"Serving {self.root_dir} on {self.config.host}:{port}")

        return ServerHandle(self.config.host, port, server, connections)

    def run(self) -> None:
        """
        Start the server (blocking).

        Blocks until Ctrl+C.
        """
        self._setup_logging()

        try:
            asyncio.run(self._serve())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    async def _serve(self) -> None:
        handle = await self.start()
        print(f"Serving HTTP on {handle.host} port {handle.port} ...", flush=True)
        try:
            await handle.serve_forever()
        finally:
            await handle.stop()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("staticserver").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        address = writer.get_extra_info("peername") or ("", 0)
        conn = Connection(
            reader,
            writer,
            address=tuple(address[:2]),
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            server_name=self.config.server_name,
        )

        async with conn:
            try:
                await self._process_connection(conn)
            except ConnectionError as e:
                logger.debug(f"[{conn.id}] Client went away: {e}")
            except Exception as e:
                # Mid-stream failure: headers may be out already, so the
                # only honest signal left is closing the connection.
                logger.exception(f"[{conn.id}] Connection error: {e}")

    async def _process_connection(self, conn: Connection):
        """
        The keep-alive loop for one connection.

        =====================================================================
        CONNECTION PROCESSING LOOP
        =====================================================================

        1. Read a request head
        2. Parse it
        3. Drop any request body
        4. Run middleware + handler (crashes become 500s in the pipeline)
        5. Send the response
        6. If keep-alive: repeat from step 1

        =====================================================================
        """
        while True:
            try:
                head = await conn.read_request_head()
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Rejected request: {e}")
                await conn.send_error(HTTPStatus(e.status_code))
                return
            except TimeoutError:
                await conn.send_error(HTTPStatus.REQUEST_TIMEOUT)
                return

            if head is None:
                return

            try:
                request = self._parser.parse(head, conn.address)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Malformed request: {e}")
                await conn.send_error(HTTPStatus(e.status_code))
                return

            try:
                if request.is_chunked:
                    await conn.discard_chunked_body()
                else:
                    await conn.discard_body(request.content_length)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Malformed request body: {e}")
                await conn.send_error(HTTPStatus(e.status_code))
                return

            conn.state = ConnectionState.PROCESSING
            response = await self._handler(request)
            keep_alive = self.config.keep_alive and request.is_keep_alive

            if not await conn.send_response(response, request, keep_alive):
                return

