"""
Metadata inspection for resolved files.

Reads size, modification time and content type fresh on every request;
nothing is cached between requests, so responses always reflect the
filesystem as it is right now.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging
import stat

import aiofiles.os

from ..http.mime_types import extension_of, get_content_type
from ..http.response import format_http_date


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileMetadata:
    """
    What we know about a file at response time.

    Attributes:
        size:         Size in bytes.
        mtime:        Last modification, UTC, truncated to whole seconds
                      (HTTP-dates can't express anything finer).
        content_type: MIME type from the extension table.
        extension:    Lowercase extension without the dot ("" if none).
    """

    size: int
    mtime: datetime
    content_type: str
    extension: str

    @property
    def last_modified(self) -> str:
        """The Last-Modified header value, e.g. ``Wed, 15 Jun 2024 10:00:00 GMT``."""
        return format_http_date(self.mtime)


async def inspect_file(path: Path) -> Optional[FileMetadata]:
    """
    Stat ``path`` without blocking the event loop.

    Returns:
        FileMetadata, or None when the file vanished (or stopped being a
        regular file) between resolution and now. The race is tolerated,
        not retried.
    """
    try:
        st = await aiofiles.os.stat(path)
    except OSError as e:
        logger.debug(f"File vanished before inspection: {path} ({e})")
        return None

    if not stat.S_ISREG(st.st_mode):
        return None

    mtime = datetime.fromtimestamp(int(st.st_mtime), tz=timezone.utc)
    return FileMetadata(
        size=st.st_size,
        mtime=mtime,
        content_type=get_content_type(path),
        extension=extension_of(path),
    )
