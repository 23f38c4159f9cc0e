"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Logs one line per response with its status code and the requested path:

    [200] /index.html
    [206] /video.mp4
    [304] /css/site.css
    [404] /missing.txt

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# ═══════════════════════════════════════════════════════════════════════════
# LOGGER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
# A namespaced logger so the access log can be routed on its own:
#   logging.getLogger("staticserver.access").addHandler(file_handler)
# ═══════════════════════════════════════════════════════════════════════════
logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """Structured log entry for a single response."""

    status_code: int
    path: str
    method: str
    client_ip: str
    duration_ms: float

    def to_text(self) -> str:
        return f"[{self.status_code}] {self.path}"

    def to_json(self) -> str:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return json.dumps(entry)


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be FIRST in the pipeline so it records the final status after
    every other middleware has run.

    Usage:
        pipeline.add(LoggingMiddleware())                   # "[200] /a.css"
        pipeline.add(LoggingMiddleware(log_format="json"))  # one JSON object
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level the access lines are emitted at.
        """
        self.log_format = log_format
        self.log_level = log_level

    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.perf_counter()

        try:
            response = await next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        entry = RequestLog(
            status_code=int(response.status),
            path=request.path,
            method=request.method,
            client_ip=request.client_address[0],
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

        if self.log_format == "json":
            logger.log(self.log_level, entry.to_json())
        else:
            logger.log(self.log_level, entry.to_text())

        return response
