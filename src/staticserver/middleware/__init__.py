"""
=============================================================================
MIDDLEWARE PACKAGE
=============================================================================

Async middleware wrapped around the static file handler:

    LoggingMiddleware      "[<status>] <path>" access log
    ErrorMiddleware        handler exceptions become 500 responses
    CompressionMiddleware  gzip / deflate for text-like files

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware
from .errors import ErrorMiddleware
from .compression import CompressionMiddleware, choose_encoding

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "LoggingMiddleware",
    "ErrorMiddleware",
    "CompressionMiddleware",
    "choose_encoding",
]
