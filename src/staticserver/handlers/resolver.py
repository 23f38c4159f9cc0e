"""
=============================================================================
PATH RESOLVER
=============================================================================

Translates a decoded URL path into one of three outcomes:

    File(path)          serve this regular file
    Redirect(location)  directory requested without trailing slash (301)
    NotFound()          anything else (404)

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    ATTACK ATTEMPT:
    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../../etc/passwd HTTP/1.1                                  │
    │  GET /img/%2e%2e/%2e%2e/secret HTTP/1.1      (encoded dots)          │
    │  GET /link-to-slash/etc/passwd HTTP/1.1      (symlink inside root)   │
    └─────────────────────────────────────────────────────────────────────┘

Stripping ".." segments from the URL is not enough: encoded forms slip past
naive filters and symlinks never show up in the URL at all. So we check the
OUTCOME instead of the input:

    1. Join the decoded path under the root.
    2. Canonicalize it with os.path.realpath (collapses . and .., follows
       every symlink).
    3. Require the canonical path to BE the root or to live under it.
       Otherwise: NotFound.

    root      = /srv/www                (canonicalized once at startup)
    request   = /../../etc/passwd
    candidate = /srv/www/../../etc/passwd
    canonical = /etc/passwd             → not under /srv/www → 404

Escapes are reported as 404, not 403: a file server shouldn't confirm that
something exists outside its root.

=============================================================================
ERRORS
=============================================================================

Every filesystem error (missing file, permission denied, ENOTDIR, a NUL
byte in the path) collapses to NotFound. The resolver never raises.

=============================================================================
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union
from urllib.parse import quote
import logging
import os
import posixpath
import stat


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class File:
    """A regular file inside the root, ready to be inspected and served."""

    path: Path


@dataclass(frozen=True)
class Redirect:
    """Directory requested without trailing slash; ``location`` has one."""

    location: str


@dataclass(frozen=True)
class NotFound:
    """Nothing servable at the requested path."""


ResolvedTarget = Union[File, Redirect, NotFound]


class PathResolver:
    """
    Maps request paths onto files under a fixed root directory.

    The resolver is immutable after construction and does blocking
    filesystem calls; the static handler runs it via ``asyncio.to_thread``.

    Usage:
        resolver = PathResolver("/srv/www")
        resolver.resolve("/docs/")        # File(/srv/www/docs/index.html)
        resolver.resolve("/docs")         # Redirect("/docs/")
        resolver.resolve("/../etc/passwd")  # NotFound()
    """

    def __init__(self, root_dir: Union[str, Path], index_file: str = "index.html"):
        self.root_dir = Path(os.path.realpath(root_dir))
        self.index_file = index_file

        if not self.root_dir.is_dir():
            raise ValueError(f"Root directory does not exist: {root_dir}")

    def resolve(self, url_path: str) -> ResolvedTarget:
        """
        Resolve a decoded URL path.

        Args:
            url_path: Percent-decoded request path, e.g. ``"/css/site.css"``.

        Returns:
            File, Redirect or NotFound.
        """
        try:
            return self._resolve(url_path)
        except (OSError, ValueError) as e:
            # ValueError: embedded NUL byte. OSError: anything the OS says.
            logger.debug(f"Resolving {url_path!r} failed: {e}")
            return NotFound()

    def _resolve(self, url_path: str) -> ResolvedTarget:
        canonical = self._canonicalize(url_path)
        if canonical is None:
            logger.warning(f"Path traversal attempt: {url_path!r}")
            return NotFound()

        mode = os.stat(canonical).st_mode
        wants_directory = url_path.endswith("/")

        if stat.S_ISDIR(mode):
            if not wants_directory:
                return Redirect(self._redirect_location(url_path))
            return self._index_of(canonical)

        if stat.S_ISREG(mode) and not wants_directory:
            return File(canonical)

        # "/file.txt/" (ENOTDIR on POSIX) or a FIFO/socket/device
        return NotFound()

    def _canonicalize(self, url_path: str) -> Union[Path, None]:
        """Join under the root, canonicalize, and prefix-check."""
        relative = url_path.lstrip("/")
        canonical = Path(os.path.realpath(os.path.join(self.root_dir, relative)))
        if self._is_inside_root(canonical):
            return canonical
        return None

    def _is_inside_root(self, path: Path) -> bool:
        return path == self.root_dir or self.root_dir in path.parents

    def _index_of(self, directory: Path) -> ResolvedTarget:
        index = Path(os.path.realpath(directory / self.index_file))
        if not self._is_inside_root(index):
            return NotFound()
        try:
            if stat.S_ISREG(os.stat(index).st_mode):
                return File(index)
        except OSError:
            pass
        return NotFound()

    @staticmethod
    def _redirect_location(url_path: str) -> str:
        """
        Re-encode the normalized request path and append a slash.

            "/docs"          → "/docs/"
            "/a//b/./c"      → "/a/b/c/"
            "/My Files"      → "/My%20Files/"

        The original percent-encoding is not preserved; the path is
        re-encoded from its decoded form.
        """
        clean = posixpath.normpath(url_path)
        if clean.startswith("//"):
            # normpath keeps a leading "//" (POSIX implementation-defined);
            # a Location starting with "//" would be protocol-relative.
            clean = "/" + clean.lstrip("/")
        if not clean.endswith("/"):
            clean += "/"
        return quote(clean, errors="surrogateescape")
