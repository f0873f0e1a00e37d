import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import httpx
from starlette.datastructures import Headers

from config import settings
from header_policy import (
    build_proxy_headers,
    build_response_headers,
    strip_cache_headers,
    add_cors_headers,
    target_host,
)


class TestBuildProxyHeaders:
    """Test outbound request header construction"""

    def test_forwarded_and_excluded_headers(self):
        inbound = Headers({
            "cookie": "a=b",
            "cf-connecting-ip": "1.2.3.4",
            "x-forwarded-for": "5.6.7.8",
            "range": "bytes=0-100",
        })

        headers = build_proxy_headers(inbound, "https://cdn.example.com/v.mp4")

        assert headers["cookie"] == "a=b"
        assert headers["range"] == "bytes=0-100"
        assert headers["Host"] == "cdn.example.com"
        assert headers["User-Agent"] == settings.DEFAULT_USER_AGENT
        assert not any(k.lower().startswith("cf-") for k in headers.keys())
        assert not any(k.lower().startswith("x-forwarded-")
                       for k in headers.keys())

    def test_defaults_win_over_client_values(self):
        inbound = Headers({
            "user-agent": "Mozilla/5.0 Browser",
            "accept": "text/html",
            "accept-encoding": "br",
            "connection": "close",
        })

        headers = build_proxy_headers(inbound, "https://cdn.example.com/live.m3u8")

        assert headers["User-Agent"] == settings.DEFAULT_USER_AGENT
        assert headers["Accept"] == "*/*"
        assert headers["Accept-Encoding"] == "gzip, deflate"
        assert headers["Connection"] == "keep-alive"

    def test_priority_headers_copied(self):
        inbound = Headers({
            "authorization": "Bearer token",
            "if-none-match": '"abc"',
            "if-modified-since": "Wed, 21 Oct 2015 07:28:00 GMT",
        })

        headers = build_proxy_headers(inbound, "https://cdn.example.com/a.ts")

        assert headers["Authorization"] == "Bearer token"
        assert headers["If-None-Match"] == '"abc"'
        assert headers["If-Modified-Since"] == "Wed, 21 Oct 2015 07:28:00 GMT"

    def test_other_client_headers_pass_through(self):
        inbound = Headers({
            "referer": "https://player.example.com/",
            "x-custom": "1",
            "x-real-ip": "9.9.9.9",
            "x-client-ip": "8.8.8.8",
        })

        headers = build_proxy_headers(inbound, "https://cdn.example.com/a.ts")

        assert headers["Referer"] == "https://player.example.com/"
        assert headers["X-Custom"] == "1"
        assert "x-real-ip" not in headers
        assert "x-client-ip" not in headers

    def test_host_is_forced_to_target(self):
        inbound = Headers({"host": "proxy.example.org"})

        headers = build_proxy_headers(inbound, "http://user:pw@origin.example.com:8080/a.flv")

        assert headers.get_list("host") == ["origin.example.com:8080"]

    def test_framing_headers_not_copied(self):
        inbound = Headers({"content-length": "12", "transfer-encoding": "chunked"})

        headers = build_proxy_headers(inbound, "https://cdn.example.com/upload")

        assert "content-length" not in headers
        assert "transfer-encoding" not in headers

    def test_plain_mapping_input(self):
        headers = build_proxy_headers({"Cookie": "k=v"}, "https://example.com/x")
        assert headers["cookie"] == "k=v"

    def test_repeated_client_headers_kept(self):
        inbound = Headers(raw=[
            (b"cookie", b"a=1"),
            (b"cookie", b"b=2"),
            (b"x-token", b"t1"),
            (b"x-token", b"t2"),
        ])

        headers = build_proxy_headers(inbound, "https://cdn.example.com/v.mp4")

        assert headers["cookie"] == "a=1; b=2"
        assert headers["x-token"] == "t1, t2"


def test_target_host():
    assert target_host("https://cdn.example.com/v.mp4") == "cdn.example.com"
    assert target_host("https://cdn.example.com:8443/v") == "cdn.example.com:8443"


class TestResponseHeaders:
    """Test relayed response header policy"""

    def _upstream(self, **extra):
        headers = {
            "Cache-Control": "max-age=60",
            "ETag": '"v1"',
            "Pragma": "no-cache",
            "Expires": "0",
            "Last-Modified": "Wed, 21 Oct 2015 07:28:00 GMT",
            "Age": "12",
            "Content-Type": "application/vnd.apple.mpegurl",
        }
        headers.update(extra)
        return httpx.Headers(headers)

    def test_ordinary_response(self):
        headers = build_response_headers(self._upstream(), is_streaming=False)

        for name in ("Cache-Control", "ETag", "Pragma", "Expires", "Last-Modified", "Age"):
            assert name not in headers
        assert headers["Content-Type"] == "application/vnd.apple.mpegurl"
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS, HEAD"
        assert headers["Access-Control-Allow-Headers"] == "*"
        assert headers["Access-Control-Expose-Headers"] == "*"
        assert "Access-Control-Max-Age" not in headers
        assert "Accept-Ranges" not in headers

    def test_streaming_response(self):
        headers = build_response_headers(
            self._upstream(**{"Content-Length": "2048"}), is_streaming=True)

        assert "Cache-Control" not in headers
        assert "ETag" not in headers
        assert headers["Content-Type"] == "application/vnd.apple.mpegurl"
        assert headers["Content-Length"] == "2048"
        assert headers["Access-Control-Max-Age"] == "86400"
        assert headers["Connection"] == "keep-alive"
        assert headers["Accept-Ranges"] == "bytes"

    def test_streaming_preserves_upstream_accept_ranges(self):
        headers = build_response_headers(
            self._upstream(**{"Accept-Ranges": "none"}), is_streaming=True)
        assert headers["Accept-Ranges"] == "none"

    def test_transfer_encoding_dropped(self):
        headers = build_response_headers(
            self._upstream(**{"Transfer-Encoding": "chunked"}), is_streaming=False)
        assert "transfer-encoding" not in headers

    def test_multi_value_headers_survive(self):
        upstream = httpx.Headers([
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
        ])
        headers = build_response_headers(upstream, is_streaming=False)
        assert headers.get_list("set-cookie") == ["a=1", "b=2"]

    def test_upstream_headers_untouched(self):
        upstream = self._upstream()
        build_response_headers(upstream, is_streaming=True)
        assert upstream["Cache-Control"] == "max-age=60"


def test_strip_and_cors_helpers():
    headers = httpx.Headers({"cache-control": "no-store", "x-a": "1"})
    strip_cache_headers(headers)
    add_cors_headers(headers, is_streaming=True)

    assert "cache-control" not in headers
    assert headers["x-a"] == "1"
    assert headers["access-control-max-age"] == "86400"
