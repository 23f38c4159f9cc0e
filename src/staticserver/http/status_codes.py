"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a static file server actually emits.

A file server speaks a very small dialect of HTTP. Every response it sends
lands in one of these buckets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  STATUS CODES OF A FILE SERVER                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   200 OK                 Whole file follows                          │
    │   206 Partial Content    A byte range of the file follows            │
    │   301 Moved Permanently  Directory requested without trailing /     │
    │   304 Not Modified       Client copy is current, no body             │
    │   404 Not Found          Nothing servable at that path               │
    │   416 Range Not          Range header can't be honoured              │
    │       Satisfiable                                                    │
    │                                                                      │
    │   Connection layer only (malformed traffic):                         │
    │   400, 408, 431, 500, 505                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.PARTIAL_CONTENT.phrase
        'Partial Content'
    """

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200                        # Whole file
    PARTIAL_CONTENT = 206           # Range request fulfilled

    # =========================================================================
    # 3xx REDIRECTION
    # =========================================================================
    MOVED_PERMANENTLY = 301         # Directory → directory/
    NOT_MODIFIED = 304              # Cached version is still valid

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    BAD_REQUEST = 400                       # Malformed request syntax
    NOT_FOUND = 404                         # Resource doesn't exist
    REQUEST_TIMEOUT = 408                   # Client took too long to send request
    RANGE_NOT_SATISFIABLE = 416             # Range header invalid
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431   # Headers too large

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    # Never produced by the file pipeline itself, only by the connection
    # layer when the request can't be parsed or a handler blows up.
    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 206 Partial Content
                     ─── ───────────────
                      │         │
                      │         └── Reason phrase
                      └──────────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def has_body(self) -> bool:
        """304 responses must never carry a message body (RFC 7230 §3.3.3)."""
        return self != HTTPStatus.NOT_MODIFIED


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
