"""
Header rewriting rules for both directions of the proxy.

Outbound requests present a media-player identity while still letting
range, conditional and auth headers through. Relayed responses are made
uncacheable and readable cross-origin.
"""

from typing import Mapping
from urllib.parse import urlsplit

import httpx

from config import (
    DEFAULT_HEADERS,
    PRIORITY_HEADERS,
    EXCLUDED_HEADER_PREFIXES,
    OVERRIDDEN_HEADERS,
    FRAMING_HEADERS,
    CACHE_HEADERS,
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS, HEAD",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Expose-Headers": "*",
}
STREAMING_CORS_MAX_AGE = "86400"


def target_host(target_url: str) -> str:
    """Host (and port, if any) of the target URL, without userinfo"""
    netloc = urlsplit(target_url).netloc
    return netloc.rpartition("@")[2]


def _is_excluded(name: str) -> bool:
    lower = name.lower()
    if lower in OVERRIDDEN_HEADERS or lower in FRAMING_HEADERS:
        return True
    return any(lower.startswith(prefix) for prefix in EXCLUDED_HEADER_PREFIXES)


def _join_values(name: str, values) -> str:
    # Cookie pairs are separated by "; ", other list headers by ", "
    separator = "; " if name == "cookie" else ", "
    return separator.join(values)


def build_proxy_headers(inbound: Mapping[str, str], target_url: str) -> httpx.Headers:
    """
    Build the header set for one forwarding attempt.

    Order matters: defaults first, then the priority client headers, then
    any other client header that is not excluded and not already set, and
    finally Host pointing at the target. Repeated client headers are
    folded into one value so none of them is lost.
    """
    proxy_headers = httpx.Headers(dict(DEFAULT_HEADERS))

    grouped = {}
    for key, value in inbound.items():
        grouped.setdefault(key.lower(), []).append(value)
    lowered = {name: _join_values(name, values)
               for name, values in grouped.items()}

    for name in PRIORITY_HEADERS:
        value = lowered.get(name)
        if value:
            proxy_headers[name] = value

    for name, value in lowered.items():
        if name in proxy_headers or _is_excluded(name):
            continue
        proxy_headers[name] = value

    proxy_headers["Host"] = target_host(target_url)
    return proxy_headers


def strip_cache_headers(headers: httpx.Headers) -> httpx.Headers:
    for name in CACHE_HEADERS:
        if name in headers:
            del headers[name]
    return headers


def add_cors_headers(headers: httpx.Headers, is_streaming: bool) -> httpx.Headers:
    for name, value in CORS_HEADERS.items():
        headers[name] = value
    if is_streaming:
        headers["Access-Control-Max-Age"] = STREAMING_CORS_MAX_AGE
    return headers


def build_response_headers(upstream: httpx.Headers, is_streaming: bool) -> httpx.Headers:
    """
    Build the header set relayed to the client from the upstream response.

    Both variants drop caching headers and add CORS. Streaming responses
    also keep the connection alive, advertise byte ranges and re-assert
    Content-Type/Content-Length from the upstream.
    """
    headers = httpx.Headers(upstream.multi_items())
    # The ASGI server frames the relayed body itself
    if "transfer-encoding" in headers:
        del headers["transfer-encoding"]

    strip_cache_headers(headers)

    if is_streaming:
        headers["Connection"] = "keep-alive"
        headers["Accept-Ranges"] = upstream.get("accept-ranges", "bytes")
        if "content-type" in upstream:
            headers["Content-Type"] = upstream["content-type"]
        if "content-length" in upstream:
            headers["Content-Length"] = upstream["content-length"]

    return add_cors_headers(headers, is_streaming)
