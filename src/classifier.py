"""
Streaming traffic classification.

The checks are heuristic on purpose: a false positive only changes which
response headers are applied, never where the request is routed.
"""

from typing import Mapping

from config import STREAMING_URL_PATTERNS, STREAMING_CONTENT_TYPES


def is_streaming_target(url: str) -> bool:
    """Check if the target URL looks like a live/streaming media resource"""
    return any(pattern.search(url) for pattern in STREAMING_URL_PATTERNS)


def is_streaming_request(headers: Mapping[str, str]) -> bool:
    """Check if the inbound request carries a streaming Content-Type"""
    content_type = headers.get("content-type") or ""
    return any(fragment in content_type for fragment in STREAMING_CONTENT_TYPES)


def is_streaming(url: str, headers: Mapping[str, str]) -> bool:
    """Streaming flag for a request: URL shape OR inbound content type"""
    return is_streaming_target(url) or is_streaming_request(headers)
