"""
=============================================================================
HTTP RESPONSE
=============================================================================

HTTPResponse is the "response plan" a handler hands back to the connection
layer: a status, a header mapping and a body. The body is one of

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        RESPONSE BODIES                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   EMPTY        304 Not Modified, 416 Range Not Satisfiable           │
    │                body=b"", stream=None                                 │
    │                                                                      │
    │   INLINE       404 text, 301 redirect text                           │
    │                body=b"404 Not Found!"                                │
    │                                                                      │
    │   STREAMED     200 / 206 file contents                               │
    │                stream=FileSlice(...)  (maybe wrapped in a            │
    │                compressor by CompressionMiddleware)                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A streamed body is an async iterator of byte chunks that also has an
``aclose()`` coroutine. Whoever ends up owning the response (normally the
connection layer) MUST call ``aclose()`` whether or not it iterated the
stream, so file handles and compressor state are always released.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder for a more convenient way to construct responses.

    Attributes:
        status:       HTTPStatus of the response.
        headers:      Header name → value, names in their wire spelling.
        body:         Inline body bytes (small, fully known up front).
        stream:       Async byte source for file contents, or None.
        compressible: Set by the file handler when the served file's
                      extension is in the compression policy. Read by
                      CompressionMiddleware.
        version:      HTTP version for the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    stream: Optional[AsyncIterator[bytes]] = None
    compressible: bool = False
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 206 Partial Content"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def remove_header(self, name: str) -> None:
        """Drop a header if present, matching the name case-insensitively."""
        for existing in [key for key in self.headers if key.lower() == name.lower()]:
            del self.headers[existing]

    def has_header(self, name: str) -> bool:
        lowered = name.lower()
        return any(key.lower() == lowered for key in self.headers)

    async def aclose(self) -> None:
        """Release the streamed body, if any. Safe to call more than once."""
        if self.stream is not None:
            stream, self.stream = self.stream, None
            await stream.aclose()

    def head_bytes(self, extra_headers: Optional[Dict[str, str]] = None) -> bytes:
        """
        Serialize the status line and headers.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 206 Partial Content\\r\\n   ← Status line
            Accept-Range: bytes\\r\\n
            Content-Range: bytes 0-99/500\\r\\n
            Content-Length: 100\\r\\n
            \\r\\n                              ← Empty line (separator)

        The body is written separately by the connection layer, which also
        decides the framing (Content-Length, chunked, or close-delimited).

        =====================================================================

        Args:
            extra_headers: Connection-level headers (Date, Server,
                           Connection, Transfer-Encoding) appended after
                           the handler's own headers.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        for name, value in (extra_headers or {}).items():
            lines.append(f"{name}: {value}")
        lines.append("")
        lines.append("")
        return "\r\n".join(lines).encode("latin-1", errors="replace")


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.PARTIAL_CONTENT)
            .header("Content-Range", "bytes 0-99/500")
            .stream(source)
            .build())

    Each method returns ``self`` except ``build()``.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._stream: Optional[AsyncIterator[bytes]] = None
        self._compressible = False

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an inline body (string auto-encoded to UTF-8)."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        """Set a plain text body and its Content-Type."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def stream(
        self,
        source: AsyncIterator[bytes],
        compressible: bool = False,
    ) -> "ResponseBuilder":
        """
        Attach a streamed body.

        Args:
            source: Async byte source with an ``aclose()`` coroutine.
            compressible: Whether CompressionMiddleware may encode it.
        """
        self._stream = source
        self._compressible = compressible
        return self

    def redirect(self, location: str) -> "ResponseBuilder":
        """
        Create a 301 Moved Permanently response.

        A file server only ever redirects for one reason: a directory was
        requested without its trailing slash, so relative links inside its
        index.html would resolve against the wrong base. That move is
        permanent.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY
        self._headers["Location"] = location
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            stream=self._stream,
            compressible=self._compressible,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    Important: HTTP dates are ALWAYS in GMT (UTC), never local time. The
    names are spelled out by hand so the output doesn't depend on the
    process locale the way strftime("%a") does.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def not_found(message: str = "404 Not Found!") -> HTTPResponse:
    """Create a 404 Not Found response with a plain-text body."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .text(message)
        .build())


def redirect(location: str) -> HTTPResponse:
    """Create a 301 response pointing at ``location``."""
    return (ResponseBuilder()
        .redirect(location)
        .text(f"301 Moved Permanently: {location}")
        .build())


def error_response(status: HTTPStatus) -> HTTPResponse:
    """Minimal text response for connection-level failures."""
    return (ResponseBuilder()
        .status(status)
        .text(f"{int(status)} {status.phrase}")
        .build())
