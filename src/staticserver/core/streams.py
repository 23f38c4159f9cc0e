"""
=============================================================================
BYTE SOURCES
=============================================================================

Async byte sources used as streamed response bodies.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        STREAM PIPELINE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   disk ──► FileSlice ──────────────────────────────► socket         │
    │            [start, end]                                              │
    │                                                                      │
    │   disk ──► FileSlice ──► CompressedStream("gzip") ──► socket        │
    │            [start, end]   zlib.compressobj                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Both are async iterators of ``bytes`` with an ``aclose()`` coroutine.
Every chunk read from disk is an await on aiofiles (the read runs in a
worker thread), so one large download never stalls the event loop.

=============================================================================
RESOURCE OWNERSHIP
=============================================================================

A FileSlice holds an open file handle from ``open()`` until ``aclose()``.
CompressedStream owns its source and closes it in turn. The connection
layer wraps the outermost stream in ``contextlib.aclosing`` so the handle
is released when:

    - the body was fully sent
    - the client disconnected mid-stream (write raised)
    - the task was cancelled (server shutdown, idle timeout)
    - the response was never iterated at all (HEAD, error paths)

=============================================================================
"""

from pathlib import Path
from typing import AsyncIterator, Optional
import logging
import zlib

import aiofiles


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 64 * 1024


class FileSlice:
    """
    Streams the inclusive byte interval [start, end] of a file.

    Usage:
        source = FileSlice(path, start=0, end=99)
        await source.open()             # may raise OSError
        async with aclosing(source):
            async for chunk in source:
                ...

    Args:
        path: File to read.
        start: First byte offset.
        end: Last byte offset (inclusive). None means "to end of file",
             which requires ``size``.
        size: Known file size; used when end is None.
        chunk_size: Maximum bytes per chunk.
    """

    def __init__(
        self,
        path: Path,
        start: int = 0,
        end: Optional[int] = None,
        size: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if end is None:
            if size is None:
                raise ValueError("FileSlice needs either end or size")
            end = size - 1
        self.path = path
        self.start = start
        self.end = end
        self.chunk_size = chunk_size
        self._remaining = max(end - start + 1, 0)
        self._file = None

    @property
    def length(self) -> int:
        return max(self.end - self.start + 1, 0)

    @property
    def is_open(self) -> bool:
        return self._file is not None

    async def open(self) -> "FileSlice":
        """Open the file and seek to ``start``. Raises OSError on failure."""
        self._file = await aiofiles.open(self.path, "rb")
        try:
            if self.start:
                await self._file.seek(self.start)
        except BaseException:
            await self.aclose()
            raise
        return self

    def __aiter__(self) -> "FileSlice":
        return self

    async def __anext__(self) -> bytes:
        if self._file is None or self._remaining <= 0:
            raise StopAsyncIteration

        chunk = await self._file.read(min(self.chunk_size, self._remaining))
        if not chunk:
            # File shrank underneath us; the connection layer notices the
            # short body and drops the connection.
            logger.warning(f"{self.path} ended {self._remaining} bytes early")
            self._remaining = 0
            raise StopAsyncIteration

        self._remaining -= len(chunk)
        return chunk

    async def aclose(self) -> None:
        if self._file is not None:
            handle, self._file = self._file, None
            await handle.close()

    async def __aenter__(self) -> "FileSlice":
        if self._file is None:
            await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False


# =============================================================================
# COMPRESSION
# =============================================================================
#
#   "gzip"    → gzip container (RFC 1952):  wbits = 16 + MAX_WBITS
#   "deflate" → zlib container (RFC 1950):  wbits = MAX_WBITS
#
# HTTP's "deflate" coding is the zlib-wrapped format, not raw DEFLATE,
# which is why it isn't wbits=-MAX_WBITS.
#
# =============================================================================

_WBITS = {
    "gzip": 16 + zlib.MAX_WBITS,
    "deflate": zlib.MAX_WBITS,
}


class CompressedStream:
    """
    Compresses another byte source on the fly.

    The compressed length isn't known until the last chunk is out, so a
    response carrying a CompressedStream must not declare Content-Length.

    Args:
        source: The byte source to compress (owned: closed by ``aclose``).
        encoding: "gzip" or "deflate".
        level: zlib compression level, 1 (fast) to 9 (small).
    """

    def __init__(self, source: AsyncIterator[bytes], encoding: str, level: int = 6):
        if encoding not in _WBITS:
            raise ValueError(f"Unsupported encoding: {encoding}")
        self.encoding = encoding
        self._source = source
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, _WBITS[encoding])
        self._finished = False

    def __aiter__(self) -> "CompressedStream":
        return self

    async def __anext__(self) -> bytes:
        while not self._finished:
            try:
                chunk = await anext(self._source)
            except StopAsyncIteration:
                self._finished = True
                tail = self._compressor.flush()
                if tail:
                    return tail
                break

            data = self._compressor.compress(chunk)
            if data:
                return data

        raise StopAsyncIteration

    async def aclose(self) -> None:
        self._finished = True
        await self._source.aclose()
