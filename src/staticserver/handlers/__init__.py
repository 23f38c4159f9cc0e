"""
=============================================================================
HANDLERS PACKAGE
=============================================================================

    resolver.py   URL path → File / Redirect / NotFound
    metadata.py   File → size, mtime, content type
    static.py     The request → response pipeline

=============================================================================
"""

from .resolver import PathResolver, ResolvedTarget, File, Redirect, NotFound
from .metadata import FileMetadata, inspect_file
from .static import StaticFileHandler

__all__ = [
    "PathResolver",
    "ResolvedTarget",
    "File",
    "Redirect",
    "NotFound",
    "FileMetadata",
    "inspect_file",
    "StaticFileHandler",
]
