"""Byte-range media streaming.

Turns a media reference plus an optional ``Range`` header into a status,
a header set and a lazily-read body. Only the single-range form
``bytes=<start>-<end>`` is understood; for a multi-range header the first
range is served and the rest are ignored.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from baluflix.errors import NotFoundError, RangeNotSatisfiableError, StorageError
from baluflix.storage.media import MediaStore

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")


@dataclass
class StreamResponse:
    """Everything the HTTP layer needs to answer a media request."""

    status: int
    headers: dict[str, str]
    body: Iterator[bytes] = field(repr=False)


def parse_range(header: str, size: int) -> tuple[int, int]:
    """Parse a ``bytes=<start>-<end>`` header against a resource size.

    ``end`` defaults to the last byte and is clamped to it.

    Returns:
        Inclusive ``(start, end)`` byte offsets.

    Raises:
        RangeNotSatisfiableError: If the start is missing or malformed,
            lies at or past the end of the resource, or follows ``end``.
    """
    unit, _, spec = header.partition("=")
    if unit.strip().lower() != "bytes":
        raise RangeNotSatisfiableError(None, size)

    first = spec.split(",", 1)[0]
    match = _RANGE_RE.match(first)
    if not match or not match.group(1):
        raise RangeNotSatisfiableError(None, size)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else size - 1
    if start >= size or end < start:
        raise RangeNotSatisfiableError(start, size)
    return start, min(end, size - 1)


class RangeStreamer:
    """Serves stored media honoring HTTP range requests.

    Bodies are never buffered: the media store yields chunks straight
    from the file, and a read failure mid-stream surfaces as a
    StorageError so the transport can abort the connection.
    """

    def __init__(
        self,
        media_store: MediaStore,
        media_type: str = "video/mp4",
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._media = media_store
        self._media_type = media_type
        self._chunk_size = chunk_size

    def serve(self, ref: str, range_header: str | None = None) -> StreamResponse:
        """Build the response for ``ref``.

        Args:
            ref: Media reference (the stored filename).
            range_header: Raw ``Range`` header value, if the client sent one.

        Returns:
            StreamResponse with status 200 (full body) or 206 (partial).

        Raises:
            NotFoundError: If the resource does not exist.
            RangeNotSatisfiableError: If the range cannot be served.
        """
        if not self._media.exists(ref):
            raise NotFoundError(f"Media not found: {ref}")

        size = self._media.size(ref)

        if not range_header:
            headers = {
                "Content-Length": str(size),
                "Content-Type": self._media_type,
                "Accept-Ranges": "bytes",
            }
            body = self._body(ref, 0, size - 1) if size else iter(())
            return StreamResponse(status=200, headers=headers, body=body)

        try:
            start, end = parse_range(range_header, size)
        except RangeNotSatisfiableError:
            logger.warning("Unsatisfiable range %r for %s (%d bytes)", range_header, ref, size)
            raise

        headers = {
            "Content-Range": f"bytes {start}-{end}/{size}",
            "Accept-Ranges": "bytes",
            "Content-Length": str(end - start + 1),
            "Content-Type": self._media_type,
        }
        return StreamResponse(status=206, headers=headers, body=self._body(ref, start, end))

    def _body(self, ref: str, start: int, end: int) -> Iterator[bytes]:
        chunks = self._media.open_range(ref, start, end, self._chunk_size)
        try:
            yield from chunks
        except StorageError:
            logger.exception("Media stream for %s failed mid-body", ref)
            raise
        except OSError as e:
            logger.exception("Media stream for %s failed mid-body", ref)
            raise StorageError(f"Read failed for {ref}: {e}") from e
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()
