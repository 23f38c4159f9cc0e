"""
=============================================================================
ERROR GUARD MIDDLEWARE
=============================================================================

Turns an exception raised while building a response into a plain
500 Internal Server Error, inside the pipeline, so the access log still
records a line for the request:

    LoggingMiddleware  →  ErrorMiddleware  →  ...  →  handler
          │                     │
          │                     └── handler raised: log traceback, return 500
          └── sees an ordinary 500 response: "[500] /path"

Failures that happen after the head is sent (mid-stream file errors) are
outside the pipeline; the connection layer closes the socket for those.

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, HTTPStatus, error_response


logger = logging.getLogger(__name__)


class ErrorMiddleware(Middleware):
    """Convert handler exceptions into 500 responses."""

    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            return await next(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
