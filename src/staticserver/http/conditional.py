"""
=============================================================================
CONDITIONAL RESPONSES & CACHE POLICY
=============================================================================

Two independent decisions made for every file response:

    1. Can we answer 304 Not Modified instead of sending the body?
    2. Should the response carry long-lived caching headers?

=============================================================================
IF-MODIFIED-SINCE: STRING EQUALITY, NOT TIME COMPARISON
=============================================================================

    Response 1:  Last-Modified: Wed, 15 Jun 2024 10:00:00 GMT
                                  │
                   client stores it verbatim
                                  │
                                  ▼
    Request 2:   If-Modified-Since: Wed, 15 Jun 2024 10:00:00 GMT
                                  │
             compared CHARACTER FOR CHARACTER with the
             Last-Modified string we would send right now
                                  │
                  ┌───────────────┴───────────────┐
                equal                         anything else
                  │                               │
            304 Not Modified               full 200/206 response

This is deliberately NOT a "<=" comparison of parsed dates. A client that
sends an older date, a newer date, or the same instant spelled differently
("Wednesday, 15-Jun-24 10:00:00 GMT") always gets the full body. That is the
contract: the only way to get a 304 is to echo back the exact validator we
issued. Browsers do exactly that, so in practice nothing is lost.

=============================================================================
LONG-LIVED CACHING
=============================================================================

Files whose extension matches the expires pattern (images, stylesheets,
scripts by default) get

    Expires: <now + max_age, as HTTP-date>
    Cache-Control: max-age=<max_age>

on EVERY response for that file: 200, 206, 304 and 416 alike.

=============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Pattern
import re

from .response import format_http_date


DEFAULT_MAX_AGE = 86400
DEFAULT_EXPIRES_PATTERN = re.compile(r"^(gif|png|jpg|css|js)$", re.IGNORECASE)


def is_not_modified(if_modified_since: Optional[str], last_modified: str) -> bool:
    """
    Decide whether a 304 suffices.

    Args:
        if_modified_since: The client's If-Modified-Since header, or None.
        last_modified: The Last-Modified string we'd send for the file now.

    Returns:
        True only when the client echoed our validator exactly.
    """
    return bool(if_modified_since) and if_modified_since == last_modified


@dataclass(frozen=True)
class CachePolicy:
    """
    Which files get Expires/Cache-Control, and for how long.

    Attributes:
        max_age: Freshness lifetime in seconds.
        pattern: Compiled regex matched against the lowercase extension
                 (no dot).
    """

    max_age: int = DEFAULT_MAX_AGE
    pattern: Pattern[str] = DEFAULT_EXPIRES_PATTERN

    def applies_to(self, extension: str) -> bool:
        return bool(self.pattern.search(extension))

    def headers_for(self, extension: str, now: Optional[datetime] = None) -> Dict[str, str]:
        """
        Caching headers for a file with this extension.

        Returns an empty dict for extensions outside the pattern.
        """
        if not self.applies_to(extension):
            return {}

        now = now or datetime.now(timezone.utc)
        expires = now + timedelta(seconds=self.max_age)
        return {
            "Expires": format_http_date(expires),
            "Cache-Control": f"max-age={self.max_age}",
        }
