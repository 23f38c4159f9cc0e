"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a request into a response plan by running the file pipeline:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      REQUEST → RESPONSE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   request.path                                                       │
    │        │                                                             │
    │        ▼                                                             │
    │   PathResolver ─────────► Redirect ──────────────► 301 + Location   │
    │        │          └─────► NotFound ──────────────► 404              │
    │        ▼ File                                                        │
    │   inspect_file ─────────► vanished ──────────────► 404              │
    │        │                                                             │
    │        ▼ FileMetadata                                                │
    │   is_not_modified ──────► exact match ───────────► 304              │
    │        │                                                             │
    │        ▼                                                             │
    │   parse_range ──────────► unsatisfiable ─────────► 416              │
    │        │                                                             │
    │        ▼ whole file / ByteRange                                      │
    │   FileSlice.open ───────► OSError ───────────────► 404              │
    │        │                                                             │
    │        ▼                                                             │
    │   200 / 206 with streamed body                                       │
    │   (CompressionMiddleware may encode it on the way out)              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every response carries ``Accept-Range: bytes``. Every response about a file
(200, 206, 416) carries its Content-Type and Last-Modified; 304 keeps
Last-Modified but drops Content-Type. Expires/Cache-Control follow the
CachePolicy on all of them.

=============================================================================
CACHING HEADERS
=============================================================================

    Last-Modified: Wed, 15 Jun 2024 10:00:00 GMT     always (200/206/304/416)
    Expires: <now + max-age>                         long-lived types only
    Cache-Control: max-age=86400                     long-lived types only

See http/conditional.py for why If-Modified-Since is compared as a string.

=============================================================================
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Pattern, Union

from ..config import ServerConfig, DEFAULT_COMPRESS_PATTERN
from ..core.streams import FileSlice, DEFAULT_CHUNK_SIZE
from ..http.conditional import CachePolicy, is_not_modified
from ..http.ranges import RangeNotSatisfiable, parse_range
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    not_found, redirect,
)
from .metadata import inspect_file
from .resolver import PathResolver, File, Redirect


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler for serving static files.

    =========================================================================
    USAGE
    =========================================================================

        handler = StaticFileHandler("/srv/www")
        response = await handler.handle(request)

        # or from a ServerConfig
        handler = StaticFileHandler.from_config(config)

    =========================================================================
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        index_file: str = "index.html",
        cache_policy: Optional[CachePolicy] = None,
        compress_pattern: Optional[Pattern[str]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize static file handler.

        Args:
            root_dir: Root directory to serve files from.
                      All files MUST be inside this directory.

            index_file: Default file for directory requests.

            cache_policy: Which extensions get Expires/Cache-Control.
                          Defaults to images, CSS and JS for one day.

            compress_pattern: Regex over extensions marking responses as
                              compressible for CompressionMiddleware.

            chunk_size: Bytes per disk read while streaming.

        Raises:
            ValueError: If root_dir isn't a directory.
        """
        self.resolver = PathResolver(root_dir, index_file)
        self.cache_policy = cache_policy or CachePolicy()
        self.compress_pattern = compress_pattern or re.compile(
            DEFAULT_COMPRESS_PATTERN, re.IGNORECASE
        )
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, config: ServerConfig) -> "StaticFileHandler":
        return cls(
            root_dir=config.root_dir,
            index_file=config.index_file,
            cache_policy=CachePolicy(config.cache_max_age, config.expires_regex),
            compress_pattern=config.compress_regex,
            chunk_size=config.chunk_size,
        )

    @property
    def root_dir(self) -> Path:
        return self.resolver.root_dir

    async def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Handle a static file request.

        Never raises for filesystem problems; those all become 404.

        Args:
            request: The HTTP request.

        Returns:
            Response plan. A streamed body must be released with
            ``await response.aclose()`` by whoever consumes it.
        """
        target = await asyncio.to_thread(self.resolver.resolve, request.path)

        if isinstance(target, Redirect):
            response = redirect(target.location)
        elif isinstance(target, File):
            response = await self._serve_file(target.path, request)
        else:
            response = not_found()

        response.headers = {"Accept-Range": "bytes", **response.headers}
        return response

    async def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        """
        Serve a single file: conditional check, range check, open.

        Args:
            path: Canonical path of a regular file under the root.
            request: The HTTP request.
        """
        meta = await inspect_file(path)
        if meta is None:
            return not_found()

        builder = (ResponseBuilder()
            .content_type(meta.content_type)
            .header("Last-Modified", meta.last_modified)
            .headers(self.cache_policy.headers_for(meta.extension)))

        # ═══════════════════════════════════════════════════════════════════
        # CONDITIONAL: exact string match → 304
        # ═══════════════════════════════════════════════════════════════════
        if is_not_modified(request.get_header("If-Modified-Since"), meta.last_modified):
            response = builder.status(HTTPStatus.NOT_MODIFIED).build()
            response.remove_header("Content-Type")
            return response

        # ═══════════════════════════════════════════════════════════════════
        # RANGE: whole file (200) or one interval (206)
        # ═══════════════════════════════════════════════════════════════════
        range_header = request.get_header("Range")
        if range_header:
            try:
                byte_range = parse_range(range_header, meta.size)
            except RangeNotSatisfiable as e:
                logger.debug(f"416 for {request.path}: {e}")
                return (builder
                    .status(HTTPStatus.RANGE_NOT_SATISFIABLE)
                    .header("Content-Range", f"bytes */{meta.size}")
                    .build())

            start, end = byte_range.start, byte_range.end
            builder.status(HTTPStatus.PARTIAL_CONTENT)
            builder.header("Content-Range", byte_range.content_range(meta.size))
            builder.header("Content-Length", str(byte_range.length))
        else:
            start, end = 0, meta.size - 1
            builder.status(HTTPStatus.OK)
            builder.header("Content-Length", str(meta.size))

        # ═══════════════════════════════════════════════════════════════════
        # OPEN BEFORE COMMITTING HEADERS
        # ═══════════════════════════════════════════════════════════════════
        # Once the status line is on the wire we can't turn a failed open
        # into a 404, so the file is opened here.
        source = FileSlice(path, start, end, chunk_size=self.chunk_size)
        try:
            await source.open()
        except OSError as e:
            logger.debug(f"Cannot open {path}: {e}")
            return not_found()

        compressible = bool(self.compress_pattern.search(meta.extension))
        return builder.stream(source, compressible=compressible).build()
