"""
=============================================================================
CONNECTION HANDLING
=============================================================================

Wraps one client's asyncio stream pair: reads request heads, writes
response plans with the right body framing, and closes cleanly.

=============================================================================
ONE TASK PER CONNECTION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    COOPERATIVE CONCURRENCY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   event loop                                                         │
    │     ├── task: client A   read head → handle → stream chunk → ...    │
    │     ├── task: client B   read head → handle → stream chunk → ...    │
    │     └── task: client C   (idle, awaiting next keep-alive request)   │
    │                                                                      │
    │   Every await is a point where another task may run:                │
    │     readuntil(), stat, open, each file read, each drain().          │
    │                                                                      │
    │   Requests on ONE connection are strictly sequential.               │
    │   Nothing is shared between tasks except read-only configuration.   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODY FRAMING
=============================================================================

How the client learns where the body ends:

    ┌────────────────────────────┬──────────────────────────────────────────┐
    │ Response                   │ Framing                                  │
    ├────────────────────────────┼──────────────────────────────────────────┤
    │ inline body (404, 301)     │ Content-Length: len(body)                │
    │ file, uncompressed         │ Content-Length from the handler          │
    │ file, compressed, 1.1      │ Transfer-Encoding: chunked               │
    │ file, compressed, 1.0      │ no length, Connection: close             │
    │ 304                        │ no body at all                           │
    │ HEAD                       │ GET's headers, no body                   │
    └────────────────────────────┴──────────────────────────────────────────┘

    CHUNKED ENCODING:

        1A\\r\\n                 ← chunk size in hex
        <26 bytes>\\r\\n
        0\\r\\n                  ← last chunk
        \\r\\n

=============================================================================
"""

import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from ..http.request import HTTPParseError, HTTPRequest
from ..http.response import HTTPResponse, HTTPStatus, error_response, format_http_date


logger = logging.getLogger(__name__)


HEAD_TERMINATOR = b"\r\n\r\n"
DISCARD_CHUNK = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""

    NEW = "new"                # Just accepted, haven't read anything yet
    READING = "reading"        # Waiting for / reading a request head
    PROCESSING = "processing"  # Handler is building the response
    WRITING = "writing"        # Sending response data
    KEEP_ALIVE = "keep_alive"  # Response sent, waiting for next request
    CLOSED = "closed"          # Transport closed


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        reader: asyncio stream reader (its limit bounds the request head).
        writer: asyncio stream writer.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for logs.
        timeout: Seconds to wait for the first request head.
        keep_alive_timeout: Seconds to wait for each later request head.
        server_name: Value for the Server header.
    """

    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    address: tuple[str, int] = ("", 0)
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    server_name: str = "StaticServer/1.0"

    @property
    def client_ip(self) -> str:
        return self.address[0]

    async def read_request_head(self) -> Optional[bytes]:
        """
        Read one request head (request line + headers + blank line).

        Returns:
            The head bytes, or None if the client closed the connection or
            an idle keep-alive connection timed out.

        Raises:
            HTTPParseError: 431 if the head exceeds the reader's limit.
            TimeoutError: If the FIRST request doesn't arrive in time.
        """
        self.state = ConnectionState.READING
        wait = self.keep_alive_timeout if self.requests_handled else self.timeout

        head = b""
        while not head:
            try:
                head = await asyncio.wait_for(self.reader.readuntil(HEAD_TERMINATOR), wait)
            except asyncio.IncompleteReadError:
                return None  # Connection closed by client
            except asyncio.LimitOverrunError as e:
                raise HTTPParseError("Request head too large", status_code=431) from e
            except asyncio.TimeoutError:
                if self.requests_handled:
                    logger.debug(f"[{self.id}] Keep-alive timeout")
                    return None
                raise TimeoutError("Request read timeout")

            # RFC 7230 §3.5: ignore empty lines before the request line.
            head = head.lstrip(b"\r\n")

        self.requests_handled += 1
        return head

    async def discard_body(self, length: int) -> None:
        """Read and drop a request body; a file server has no use for it."""
        remaining = length
        while remaining > 0:
            chunk = await self.reader.read(min(DISCARD_CHUNK, remaining))
            if not chunk:
                raise ConnectionResetError("Connection closed mid-body")
            remaining -= len(chunk)

    async def discard_chunked_body(self) -> None:
        """
        Read and drop a chunked request body, trailers included.

        Raises:
            HTTPParseError: 400 on a malformed chunk-size line.
            ConnectionResetError: If the client closed mid-body.
        """
        try:
            while True:
                line = await self.reader.readuntil(b"\r\n")
                try:
                    size = int(line.split(b";", 1)[0].strip(), 16)
                except ValueError:
                    raise HTTPParseError("Invalid chunk size") from None
                if size < 0:
                    raise HTTPParseError("Invalid chunk size")
                if size == 0:
                    break
                await self.discard_body(size)
                if await self.reader.readexactly(2) != b"\r\n":
                    raise HTTPParseError("Missing chunk terminator")

            # Trailer section ends at an empty line
            while await self.reader.readuntil(b"\r\n") != b"\r\n":
                pass
        except asyncio.IncompleteReadError as e:
            raise ConnectionResetError("Connection closed mid-body") from e
        except asyncio.LimitOverrunError as e:
            raise HTTPParseError("Chunk line too long") from e

    async def send_response(
        self,
        response: HTTPResponse,
        request: Optional[HTTPRequest] = None,
        keep_alive: bool = False,
    ) -> bool:
        """
        Write a response plan to the client.

        The response's stream is ALWAYS closed before this returns or
        raises, whether or not it was iterated.

        Args:
            response: The response to send.
            request: The request being answered (None for parse errors).
            keep_alive: Whether the caller wants to reuse the connection.

        Returns:
            True if the connection may carry another request.

        Raises:
            ConnectionError: If the client went away mid-write.
        """
        self.state = ConnectionState.WRITING

        async with contextlib.aclosing(response):
            version = request.version if request else "HTTP/1.1"
            head_only = request is not None and request.is_head
            send_body = response.status.has_body and not head_only

            extra: Dict[str, str] = {
                "Date": format_http_date(datetime.now(timezone.utc)),
                "Server": self.server_name,
            }

            declared = response.headers.get("Content-Length")
            chunked = False

            if response.stream is not None:
                if declared is None:
                    if version == "HTTP/1.1":
                        extra["Transfer-Encoding"] = "chunked"
                        chunked = True
                    elif not head_only:
                        keep_alive = False  # body ends when we close
            elif response.status.has_body and declared is None:
                extra["Content-Length"] = str(len(response.body))

            extra["Connection"] = "keep-alive" if keep_alive else "close"
            response.version = version

            self.writer.write(response.head_bytes(extra))

            if send_body and response.stream is not None:
                sent = await self._write_stream(response, chunked)
                if declared is not None and sent != int(declared):
                    logger.warning(
                        f"[{self.id}] Sent {sent} of {declared} declared bytes; closing"
                    )
                    keep_alive = False
            elif send_body and response.body:
                self.writer.write(response.body)

            await self.writer.drain()

        if keep_alive:
            self.state = ConnectionState.KEEP_ALIVE
        return keep_alive

    async def _write_stream(self, response: HTTPResponse, chunked: bool) -> int:
        sent = 0
        async for chunk in response.stream:
            if chunked:
                self.writer.write(b"%X\r\n%s\r\n" % (len(chunk), chunk))
            else:
                self.writer.write(chunk)
            sent += len(chunk)
            await self.writer.drain()
        if chunked:
            self.writer.write(b"0\r\n\r\n")
        return sent

    async def send_error(self, status: HTTPStatus) -> None:
        """Best-effort error response for requests we couldn't parse."""
        try:
            await self.send_response(error_response(status), keep_alive=False)
        except ConnectionError as e:
            logger.debug(f"[{self.id}] Could not send {int(status)}: {e}")

    async def close(self) -> None:
        """Close the transport and wait for it to finish."""
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass  # Already disconnected, that's fine

        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
