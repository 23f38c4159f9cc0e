"""
=============================================================================
HTTP PROTOCOL PACKAGE
=============================================================================

Protocol-level building blocks, free of any filesystem or socket code:

    request.py      Request head parsing      → HTTPRequest
    response.py     Response plan + builder   → HTTPResponse
    status_codes.py Status enum               → HTTPStatus
    mime_types.py   Extension → Content-Type
    ranges.py       Range header              → ByteRange / 416
    conditional.py  If-Modified-Since, Expires/Cache-Control policy

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    not_found,      # 404 Not Found
    redirect,       # 301 Moved Permanently
    error_response, # 4xx/5xx from the connection layer
)
from .status_codes import HTTPStatus
from .mime_types import MIME_TYPES, DEFAULT_MIME_TYPE, extension_of, get_content_type
from .ranges import ByteRange, RangeNotSatisfiable, parse_range
from .conditional import CachePolicy, is_not_modified

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "not_found",
    "redirect",
    "error_response",

    # Status codes
    "HTTPStatus",

    # MIME types
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "extension_of",
    "get_content_type",

    # Ranges
    "ByteRange",
    "RangeNotSatisfiable",
    "parse_range",

    # Caching
    "CachePolicy",
    "is_not_modified",
]
