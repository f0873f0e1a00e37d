import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import httpx
import pytest

from response_finisher import finish_response, get_error_message


class TestFinishResponse:
    """Test relaying an upstream response"""

    @pytest.mark.asyncio
    async def test_repeated_upstream_headers_relayed(self):
        upstream = httpx.Response(
            200,
            headers=[
                ("Set-Cookie", "a=1"),
                ("Set-Cookie", "b=2"),
                ("Content-Type", "text/plain"),
            ],
            stream=httpx.ByteStream(b"ok"),
        )

        response = finish_response(upstream, is_streaming=False)

        assert response.headers.getlist("set-cookie") == ["a=1", "b=2"]
        assert response.headers["content-type"] == "text/plain"
        assert response.headers["access-control-allow-origin"] == "*"

        body = b"".join([chunk async for chunk in response.body_iterator])
        await response.background()
        assert body == b"ok"
        assert upstream.is_closed


def test_get_error_message():
    assert get_error_message(404) == "Resource not found"
    assert get_error_message(418) == "Unknown error"
