"""
=============================================================================
STATICSERVER - Async Static File HTTP Server
=============================================================================

Serves the files under one root directory over HTTP/1.1, with byte ranges,
conditional GET, cache headers and on-the-fly gzip/deflate.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STATICSERVER FEATURES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. SAFE PATH RESOLUTION                                           │
    │      - Canonical paths, never outside the root                      │
    │      - Directory → trailing-slash redirect → index.html             │
    │                                                                      │
    │   2. HTTP CACHING                                                   │
    │      - Last-Modified / If-Modified-Since → 304                      │
    │      - Expires + Cache-Control for matching extensions              │
    │                                                                      │
    │   3. PARTIAL CONTENT                                                │
    │      - Single byte ranges → 206, unsatisfiable → 416               │
    │                                                                      │
    │   4. STREAMING                                                      │
    │      - Files are read chunk by chunk, never fully buffered          │
    │      - gzip / deflate for text-like files                           │
    │                                                                      │
    │   5. CONCURRENCY                                                    │
    │      - asyncio, one task per connection, HTTP keep-alive            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # HTTPServer + ServerHandle
    ├── config.py            # ServerConfig dataclass
    ├── core/
    │   ├── connection.py    # Per-client reader/writer, body framing
    │   └── streams.py       # FileSlice, CompressedStream
    ├── http/
    │   ├── request.py       # Request head parsing
    │   ├── response.py      # Response plan + builder
    │   ├── status_codes.py  # HTTP status enum
    │   ├── mime_types.py    # Extension → Content-Type
    │   ├── ranges.py        # Range header parsing
    │   └── conditional.py   # If-Modified-Since, cache policy
    ├── middleware/
    │   ├── base.py          # Middleware + pipeline
    │   ├── logging.py       # "[status] path" access log
    │   └── compression.py   # gzip / deflate
    └── handlers/
        ├── resolver.py      # URL path → File / Redirect / NotFound
        ├── metadata.py      # stat → size, mtime, content type
        └── static.py        # Request → response plan

=============================================================================
QUICK START
=============================================================================

    from staticserver import HTTPServer, ServerConfig

    HTTPServer(ServerConfig(root_dir="./public", port=8000)).run()

Or from a running event loop:

    handle = await HTTPServer(config).start()
    print(handle.url)
    await handle.stop()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, ServerHandle
from .config import ServerConfig
from .handlers import StaticFileHandler

__all__ = ["HTTPServer", "ServerHandle", "ServerConfig", "StaticFileHandler", "__version__"]
