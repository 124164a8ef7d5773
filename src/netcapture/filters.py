"""Response filtering shared by both capture strategies."""

from __future__ import annotations

from collections.abc import Mapping

from netcapture.models import EventStreamConfig


def should_capture(config: EventStreamConfig, url: str, content_type: str | None) -> bool:
    """Decide whether a response is captured.

    Args:
        config: Stream configuration holding the optional filters
        url: Response URL
        content_type: Content-Type header value, if present

    Returns:
        True if both the URL filter and the Content-Type filter pass.
        A configured Content-Type filter never matches a missing Content-Type.
    """
    url_filter = config.url_substring_filter
    if url_filter is not None and url_filter not in url:
        return False

    content_type_filter = config.content_type_substring_filter
    if content_type_filter is not None:
        return content_type is not None and content_type_filter in content_type

    return True


def extract_content_type(headers: Mapping[str, object]) -> str | None:
    """Look up the Content-Type header value.

    Prefers the exact ``content-type`` key, then ``Content-Type``,
    then any other casing. Non-string values are treated as absent.

    Args:
        headers: Response headers as reported by the browser

    Returns:
        Header value, or None if missing
    """
    for key in ("content-type", "Content-Type"):
        if key in headers:
            value = headers[key]
            return value if isinstance(value, str) else None

    for key, value in headers.items():
        if key.lower() == "content-type":
            return value if isinstance(value, str) else None
    return None
