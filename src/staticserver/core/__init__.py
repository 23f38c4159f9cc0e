"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The I/O plumbing underneath the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Wraps one client's asyncio reader/writer pair                    │
    │  • Reads bounded request heads with first-request and keep-alive    │
    │    timeouts                                                         │
    │  • Writes response heads and frames bodies (length, chunked, close) │
    │  • Tracks state (NEW → READING → PROCESSING → WRITING)              │
    └─────────────────────────────────────────────────────────────────────┘
                                    ▲
                                    │ pulls chunks from
                                    │
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           STREAMS                                    │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • FileSlice: async chunks of bytes [start, end] of one file        │
    │  • CompressedStream: gzip/deflate wrapper over another source       │
    │  • Both release their resources through aclose()                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .streams import CompressedStream, FileSlice, DEFAULT_CHUNK_SIZE

__all__ = [
    "Connection",          # One client's reader/writer pair
    "ConnectionState",     # Enum for connection lifecycle states
    "FileSlice",           # Async byte source over part of a file
    "CompressedStream",    # gzip / deflate over another byte source
    "DEFAULT_CHUNK_SIZE",
]
