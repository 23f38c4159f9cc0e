"""
=============================================================================
BYTE RANGES
=============================================================================

Parses the Range request header (RFC 7233) into a concrete byte interval.

=============================================================================
WHY RANGES?
=============================================================================

Range requests let a client fetch part of a file:

    - resume an interrupted download
    - seek inside an audio/video file without downloading all of it
    - fetch the tail of a log file

    Request:                                Response:
    ┌──────────────────────────────┐        ┌──────────────────────────────────┐
    │ GET /movie.mp4 HTTP/1.1      │        │ HTTP/1.1 206 Partial Content     │
    │ Range: bytes=0-99            │  ───►  │ Content-Range: bytes 0-99/500    │
    │                              │        │ Content-Length: 100              │
    └──────────────────────────────┘        │                                  │
                                            │ [first 100 bytes]                │
                                            └──────────────────────────────────┘

=============================================================================
ACCEPTED FORMS (single range only)
=============================================================================

    ┌────────────────┬───────────────────────────┬──────────────────────────┐
    │ Header value   │ Meaning                   │ Interval for size=500    │
    ├────────────────┼───────────────────────────┼──────────────────────────┤
    │ bytes=0-99     │ explicit start and end    │ [0, 99]                  │
    │ bytes=450-     │ from start to end of file │ [450, 499]               │
    │ bytes=-50      │ last 50 bytes (suffix)    │ [450, 499]               │
    ├────────────────┼───────────────────────────┼──────────────────────────┤
    │ bytes=0,100-200│ multiple ranges           │ 416                      │
    │ bytes=600-700  │ end past the last byte    │ 416                      │
    │ bytes=99-0     │ end before start          │ 416                      │
    │ bytes=-        │ no bounds at all          │ 416                      │
    │ bytes=a-b      │ not integers              │ 416                      │
    └────────────────┴───────────────────────────┴──────────────────────────┘

Multi-range requests are rejected outright rather than answered with the
whole file: a multipart/byteranges body is out of scope, and silently
ignoring the header would hand the client bytes it didn't ask for.

A suffix longer than the file ("bytes=-1000" on a 500-byte file) selects
the whole file, as RFC 7233 §2.1 prescribes.

=============================================================================
"""

from dataclasses import dataclass
import re


class RangeNotSatisfiable(ValueError):
    """The Range header is malformed or falls outside the file (→ 416)."""


@dataclass(frozen=True)
class ByteRange:
    """
    Inclusive byte interval into a file of known size.

    Invariant: 0 <= start <= end < size
    """

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, size: int) -> str:
        """Value for the Content-Range header: ``bytes start-end/size``."""
        return f"bytes {self.start}-{self.end}/{size}"


# Anything up to the first "=" is the unit ("bytes"). Only the range-spec
# after it is interpreted.
_UNIT_PREFIX = re.compile(r"^[^=]+=")
_RANGE_SPEC = re.compile(r"^(\d*)-(\d*)$")


def parse_range(header: str, size: int) -> ByteRange:
    """
    Resolve a Range header value against a file of ``size`` bytes.

    Args:
        header: Raw Range header value, e.g. ``"bytes=0-99"``.
        size: File size in bytes.

    Returns:
        The concrete ByteRange to serve.

    Raises:
        RangeNotSatisfiable: For multi-range requests, unparseable bounds,
            end < start, or an end at or past the end of the file.

    Examples:
        >>> parse_range("bytes=0-99", 500)
        ByteRange(start=0, end=99)

        >>> parse_range("bytes=-50", 500)
        ByteRange(start=450, end=499)
    """
    if "," in header:
        raise RangeNotSatisfiable(f"Multiple ranges not supported: {header!r}")

    spec = _UNIT_PREFIX.sub("", header.strip(), count=1).strip()
    match = _RANGE_SPEC.match(spec)
    if not match:
        raise RangeNotSatisfiable(f"Malformed range: {header!r}")

    first, last = match.groups()

    if not first and not last:
        raise RangeNotSatisfiable(f"Range has no bounds: {header!r}")

    if not first:
        # "-N" → the final N bytes
        start = max(size - int(last), 0)
        end = size - 1
    elif not last:
        # "N-" → from N to the end
        start = int(first)
        end = size - 1
    else:
        start = int(first)
        end = int(last)

    if end < start:
        raise RangeNotSatisfiable(f"Range end before start: {header!r}")
    if end >= size:
        raise RangeNotSatisfiable(f"Range past end of {size}-byte file: {header!r}")

    return ByteRange(start, end)
