"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to their corresponding MIME types for proper
Content-Type header setting in HTTP responses.

=============================================================================
WHAT IS A MIME TYPE?
=============================================================================

MIME = Multipurpose Internet Mail Extensions

MIME types tell the browser/client how to interpret the response body.
They follow the format: type/subtype

    ┌────────────────────────────────────────────────────────────────────┐
    │                    HOW WE PICK A TYPE                              │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   /site/css/Main.CSS                                               │
    │               ───┬──                                                │
    │                  │                                                  │
    │                  ▼                                                  │
    │   extension_of()  → "css"     (last suffix, lowercased, no dot)    │
    │                  │                                                  │
    │                  ▼                                                  │
    │   MIME_TYPES["css"] → "text/css"                                   │
    │                                                                     │
    │   Unknown or missing extension → application/octet-stream          │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The table is a plain module-level dict built once at import time and never
mutated. Lookups are by extension only; we never sniff file contents.

=============================================================================
"""

from pathlib import Path
from types import MappingProxyType


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Maps file extensions (lowercase, without the dot) to MIME types.
#
# =============================================================================

MIME_TYPES = MappingProxyType({
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "mjs": "text/javascript",
    "txt": "text/plain",
    "csv": "text/csv",
    "xml": "text/xml",
    "md": "text/markdown",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",
    "bmp": "image/bmp",

    # -------------------------------------------------------------------------
    # AUDIO TYPES
    # -------------------------------------------------------------------------
    "wav": "audio/wav",
    "wma": "audio/x-ms-wma",
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "m4a": "audio/x-mp4a-latm",
    "flac": "audio/flac",

    # -------------------------------------------------------------------------
    # VIDEO TYPES
    # -------------------------------------------------------------------------
    "wmv": "video/x-ms-wmv",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",

    # -------------------------------------------------------------------------
    # DOCUMENT / DATA TYPES
    # -------------------------------------------------------------------------
    "json": "application/json",
    "pdf": "application/pdf",
    "swf": "application/x-shockwave-flash",
    "zip": "application/zip",
    "gz": "application/gzip",
    "wasm": "application/wasm",
    "woff": "font/woff",
    "woff2": "font/woff2",
})

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def extension_of(path: str | Path) -> str:
    """
    Return the lowercase extension of ``path`` without the leading dot.

    Examples:
        >>> extension_of("/www/Logo.PNG")
        'png'

        >>> extension_of("README")
        ''
    """
    if isinstance(path, str):
        path = Path(path)
    return path.suffix[1:].lower()


def get_content_type(path: str | Path) -> str:
    """
    Get the Content-Type header value for a file.

    Args:
        path: File path or name with extension

    Returns:
        The MIME type string, ``application/octet-stream`` when the
        extension isn't in the table.

    Examples:
        >>> get_content_type("style.css")
        'text/css'

        >>> get_content_type("/path/to/image.png")
        'image/png'

        >>> get_content_type("unknown.xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(extension_of(path), DEFAULT_MIME_TYPE)
