"""External video identifier extraction."""

import logging
from urllib.parse import parse_qs, urlparse

logger = logging.getLogger(__name__)

_SHORT_LINK_HOST = "youtu.be"
_VIDEO_HOSTS = ("youtube.com", "youtube-nocookie.com", _SHORT_LINK_HOST)
_THUMBNAIL_TEMPLATE = "https://img.youtube.com/vi/{video_id}/hqdefault.jpg"


def parse_video_id(raw: str) -> str:
    """Derive the canonical video id from a URL or passthrough string.

    Supports youtu.be short links, ``?v=`` query URLs, and falls back to
    the last path segment for any other host. Input that is not URL-shaped
    is treated as an already-canonical id and returned trimmed.

    Never raises: on any parse failure the original input is returned.
    """
    try:
        parsed = urlparse(raw.strip())
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return raw.strip()

        segments = [s for s in parsed.path.split("/") if s]
        host = parsed.hostname

        if host == _SHORT_LINK_HOST or host.endswith("." + _SHORT_LINK_HOST):
            if segments:
                return segments[0]
            return raw

        video_id = parse_qs(parsed.query).get("v", [None])[0]
        if video_id:
            return video_id

        if segments:
            return segments[-1]
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug("Could not parse video id from %r: %s", raw, e)
    return raw


def is_video_host_ref(raw: str) -> bool:
    """True when ``raw`` is a bare id or a URL on a recognised video host."""
    try:
        parsed = urlparse(raw.strip())
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return True
        host = parsed.hostname
    except (AttributeError, TypeError, ValueError):
        return False
    return any(host == h or host.endswith("." + h) for h in _VIDEO_HOSTS)


def thumbnail_url(video_id: str) -> str:
    """Deterministic thumbnail URL for an external video id."""
    return _THUMBNAIL_TEMPLATE.format(video_id=video_id)
