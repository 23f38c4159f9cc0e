"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses the head of an HTTP/1.x request into a structured HTTPRequest.
Implements the parts of RFC 7230 a file server needs.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    GET /docs/My%20Notes.txt?v=2 HTTP/1.1\r\n                   │ │
    │  │    ─┬─ ────────────┬───────────  ────┬────                     │ │
    │  │     │              │                 │                          │ │
    │  │   Method     Request target        Version                      │ │
    │  │                    │                                            │ │
    │  │         ┌──────────┴──────────┐                                │ │
    │  │       Path (decoded)      Query (ignored)                      │ │
    │  │    /docs/My Notes.txt         v=2                              │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: example.com\r\n                                       │ │
    │  │    Range: bytes=0-99\r\n                                       │ │
    │  │    If-Modified-Since: Wed, 15 Jun 2024 10:00:00 GMT\r\n        │ │
    │  │    Accept-Encoding: gzip, deflate\r\n                          │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE (separator) ───────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The connection layer reads up to and including the empty line and hands
that block to RequestParser. Request bodies are never interpreted by a
file server; the connection layer reads and discards them.

=============================================================================
WHAT THE PARSER DOES NOT DO
=============================================================================

It does not reject ".." in the path. Traversal is stopped structurally by
the path resolver (canonicalize, then prefix-check against the root), which
turns an escape attempt into a plain 404 instead of a 400.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import unquote, urlsplit
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code the connection layer should answer with:

        400 Bad Request                      - Malformed request syntax
        431 Request Header Fields Too Large  - Header block over the limit
        505 HTTP Version Not Supported       - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         The HTTP method. Only HEAD changes behaviour (no
                        body is sent); everything else is served like GET.

        target:         The raw request target exactly as sent,
                        still percent-encoded, query string included.

        path:           URL-decoded path WITHOUT the query string.
                        "/a%20b/" → "/a b/"

        version:        "HTTP/1.1" or "HTTP/1.0". Affects keep-alive
                        and body framing.

        headers:        Dictionary of headers with LOWERCASE keys.

        client_address: (ip, port) of the client, for logging.

    =========================================================================
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def content_length(self) -> int:
        """
        Get the Content-Length header value as integer.

        Returns 0 if header is missing or invalid.
        """
        try:
            return max(int(self.headers.get("content-length", 0)), 0)
        except ValueError:
            return 0

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_chunked(self) -> bool:
        """True when the request body uses chunked transfer coding."""
        return "chunked" in self.headers.get("transfer-encoding", "").lower()

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

        HTTP/1.1 (default: keep-alive):
            Connection: close     → close after response
            (missing)             → keep alive

        HTTP/1.0 (default: close):
            Connection: keep-alive → keep alive
            (missing)              → close after response
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses a raw HTTP request head into an HTTPRequest.

    ==========================================================================
    REGEX PATTERNS
    ==========================================================================

    REQUEST_LINE_PATTERN: ^([A-Z]+) ([^ ]+) (HTTP/\\d\\.\\d)$
        METHOD SP REQUEST-TARGET SP HTTP-VERSION

    HEADER_PATTERN: ^([^:]+):\\s*(.*)$
        field-name ":" OWS field-value

    ==========================================================================
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")
    ABSOLUTE_FORM_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
    QUERY_OR_FRAGMENT_PATTERN = re.compile(r"[?#]")
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def parse(
        self,
        head: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse a request head (request line + headers) into an HTTPRequest.

        Args:
            head: Raw bytes up to and optionally including the blank line.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        # Header bytes are ISO-8859-1 on the wire; decoding that way never
        # fails and keeps every byte.
        text = head.decode("iso-8859-1")
        lines = text.split("\r\n")
        while lines and not lines[-1]:
            lines.pop()
        if not lines:
            raise HTTPParseError("Empty request")

        method, target, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        """
        Parse the HTTP request line.

            METHOD SP REQUEST-TARGET SP HTTP-VERSION CRLF

        Returns:
            Tuple of (method, raw target, decoded path, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        # Absolute-form targets ("http://host/path") carry the path after
        # the authority. Origin-form targets are the path itself, even when
        # they start with "//" (urlsplit would read that as an authority).
        if self.ABSOLUTE_FORM_PATTERN.match(target):
            raw_path = urlsplit(target).path
        else:
            raw_path = self.QUERY_OR_FRAGMENT_PATTERN.split(target, maxsplit=1)[0]
        path = unquote(raw_path, errors="surrogateescape") or "/"
        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {target!r}")

        return method, target, path, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse HTTP headers into a dictionary.

        1. CASE NORMALIZATION: names are lowercased.
        2. HEADER CONTINUATION (obsolete but supported): lines starting with
           whitespace continue the previous header.
        3. MULTIPLE VALUES: a repeated header is combined with ", ".
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    head: bytes,
    client_address: tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """Convenience function: parse a request head in one call."""
    return RequestParser().parse(head, client_address)
