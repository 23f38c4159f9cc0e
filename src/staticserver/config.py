"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the static file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE SETTINGS COME FROM                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Defaults          ServerConfig()                                │
    │                        root = cwd, port = 8000                       │
    │                                                                      │
    │   2. Environment       ServerConfig.from_env()                       │
    │                        STATIC_ROOT=/srv/www STATIC_PORT=9000         │
    │                                                                      │
    │   3. Command line      python -m staticserver /srv/www 9000          │
    │                        (see __main__.py, overrides 1 and 2)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything here is read-only once the server starts. The regex policies
are compiled once and shared by every request.

=============================================================================
"""

import os
import re
from dataclasses import dataclass, field
from typing import Optional, Pattern


DEFAULT_EXPIRES_PATTERN = r"^(gif|png|jpg|css|js)$"
DEFAULT_COMPRESS_PATTERN = r"css|html?|js"


def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, read_limit, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout

    FILES
    - root_dir, index_file, chunk_size

    CACHING & COMPRESSION POLICY
    - cache_max_age, expires_pattern, compress_pattern, compression_level

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (what SimpleHTTPServer does)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8000
    """
    The port number to listen on. 0 lets the OS pick a free port
    (handy in tests; the chosen port is on the ServerHandle).
    """

    backlog: int = 128
    """Maximum number of queued connections."""

    read_limit: int = 64 * 1024
    """
    Maximum size of a request head (request line + headers) in bytes.
    Larger heads are answered with 431.
    """

    timeout: Optional[float] = 30.0
    """
    Seconds to wait for the first request on a new connection.
    None = wait forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow multiple requests on the same TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = field(default_factory=os.getcwd)
    """Directory to serve. Nothing outside it is ever readable."""

    index_file: str = "index.html"
    """File served for a directory request ending in '/'."""

    chunk_size: int = 64 * 1024
    """Bytes read from disk per await while streaming."""

    # ─────────────────────────────────────────────────────────────────────
    # CACHING & COMPRESSION POLICY
    # ─────────────────────────────────────────────────────────────────────

    cache_max_age: int = 86400
    """Seconds for Expires / Cache-Control: max-age (1 day)."""

    expires_pattern: str = DEFAULT_EXPIRES_PATTERN
    """
    Regex (case-insensitive) matched against the file extension, no dot.
    Matching files get Expires and Cache-Control headers.
    """

    compress_pattern: str = DEFAULT_COMPRESS_PATTERN
    """
    Regex (case-insensitive) matched against the file extension, no dot.
    Matching files are gzip/deflate encoded when the client accepts it.
    """

    compression_level: int = 6
    """zlib level: 1 = fastest, 9 = smallest."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format:
    - "text" - "[200] /index.html"
    - "json" - one JSON object per request
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "StaticServer/1.0"
    """Value of the Server response header."""

    @property
    def expires_regex(self) -> Pattern[str]:
        return _compile(self.expires_pattern)

    @property
    def compress_regex(self) -> Pattern[str]:
        return _compile(self.compress_pattern)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATIC_HOST        Bind address (default: 0.0.0.0)
        STATIC_PORT        Port (default: 8000)
        STATIC_ROOT        Directory to serve (default: current directory)
        STATIC_MAX_AGE     Cache max-age in seconds (default: 86400)
        STATIC_LOG_LEVEL   Logging level (default: INFO)
        STATIC_LOG_FORMAT  "text" or "json" (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("STATIC_HOST", "0.0.0.0"),
            port=int(os.getenv("STATIC_PORT", "8000")),
            root_dir=os.getenv("STATIC_ROOT") or os.getcwd(),
            cache_max_age=int(os.getenv("STATIC_MAX_AGE", "86400")),
            log_level=os.getenv("STATIC_LOG_LEVEL", "INFO"),
            log_format=os.getenv("STATIC_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup rather than on the first request.

        Raises:
            ValueError: Describing the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Root directory does not exist: {self.root_dir}")

        if self.read_limit < 1024:
            raise ValueError("read_limit must be >= 1024")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.cache_max_age < 0:
            raise ValueError("cache_max_age must be >= 0")

        if not 1 <= self.compression_level <= 9:
            raise ValueError("compression_level must be 1-9")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        for name in ("expires_pattern", "compress_pattern"):
            try:
                _compile(getattr(self, name))
            except re.error as e:
                raise ValueError(f"Invalid {name}: {e}") from e
