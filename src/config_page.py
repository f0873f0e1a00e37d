"""Static configuration page served when no target URL is given."""

import html
import json
import re
from urllib.parse import quote

from config import VERSION

_SCHEME_RE = re.compile(r"^(https?|rtmps?)://", re.IGNORECASE)

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_.~"
_URI_COMPONENT_SAFE = "!*'()"


def normalize_url(url: str) -> str:
    """Default to https:// when the user typed a bare host/path"""
    url = url.strip()
    if not _SCHEME_RE.match(url):
        return "https://" + url
    return url


def build_proxy_url(hostname: str, url: str) -> str:
    """Proxy URL for `url`, encoded the way the page's script encodes it"""
    return f"https://{hostname}/{quote(normalize_url(url), safe=_URI_COMPONENT_SAFE)}"


def get_config_page(hostname: str) -> str:
    host = html.escape(hostname)
    host_js = json.dumps(hostname).replace("<", "\\u003c")
    example = html.escape(build_proxy_url(
        hostname, "https://example.com/live/stream.m3u8"))
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Stream Proxy</title>
    <style>
        body {{ font-family: system-ui, sans-serif; max-width: 720px; margin: 40px auto; padding: 0 16px; color: #222; }}
        input {{ width: 100%; padding: 10px; font-size: 15px; box-sizing: border-box; }}
        button {{ margin-top: 10px; padding: 10px 18px; font-size: 15px; cursor: pointer; }}
        code, .result {{ word-break: break-all; }}
        .result {{ margin-top: 20px; padding: 14px; background: #e8f5e8; border: 1px solid #4caf50; border-radius: 8px; display: none; }}
        footer {{ margin-top: 40px; font-size: 12px; color: #888; }}
    </style>
</head>
<body>
    <h1>Stream Proxy</h1>
    <p>Relays HLS, FLV, DASH and other live-stream URLs with a media player identity and permissive CORS.</p>
    <p>Usage: <code>https://{host}/&lt;percent-encoded URL&gt;</code></p>
    <p>Example: <code>{example}</code></p>

    <input id="url" type="text" placeholder="https://example.com/live/stream.m3u8" autocomplete="off">
    <button id="create">Create proxy URL</button>
    <div class="result" id="result">
        <code id="proxy-url"></code><br>
        <button id="copy">Copy</button>
    </div>

    <footer>v{VERSION}</footer>

    <script>
        const hostname = {host_js};

        function normalizeUrl(url) {{
            if (!url.match(/^https?:\\/\\//i) && !url.match(/^rtmps?:\\/\\//i)) {{
                return 'https://' + url;
            }}
            return url;
        }}

        function createProxy() {{
            const input = document.getElementById('url').value.trim();
            if (!input) return;
            const proxyUrl = `https://${{hostname}}/${{encodeURIComponent(normalizeUrl(input))}}`;
            document.getElementById('proxy-url').textContent = proxyUrl;
            document.getElementById('result').style.display = 'block';
        }}

        document.getElementById('create').addEventListener('click', createProxy);
        document.getElementById('url').addEventListener('keypress', function (e) {{
            if (e.key === 'Enter') createProxy();
        }});
        document.getElementById('copy').addEventListener('click', function () {{
            navigator.clipboard.writeText(document.getElementById('proxy-url').textContent);
        }});
    </script>
</body>
</html>
"""
