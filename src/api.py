from fastapi import FastAPI, Request, Depends
from fastapi.responses import HTMLResponse
from contextlib import asynccontextmanager
import logging
from urllib.parse import unquote

from config import settings, VERSION
from classifier import is_streaming
from config_page import get_config_page
from retry_controller import ProxyForwarder, RetryPolicy, create_http_client

# Set up logging
logging.basicConfig(level=getattr(
    logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Same list as Access-Control-Allow-Methods
PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    # Startup
    http_client = create_http_client()
    app.state.forwarder = ProxyForwarder(
        http_client, RetryPolicy.from_settings())
    logger.info(f"⚡️ stream proxy {VERSION} starting up...")

    yield

    # Shutdown
    logger.info("stream proxy shutting down...")
    await http_client.aclose()


app = FastAPI(
    title="stream proxy",
    version=VERSION,
    description="Reverse proxy for live-streaming media URLs with retries and permissive CORS",
    lifespan=lifespan,
    # Every path is a candidate target URL, so no built-in doc routes
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


def get_forwarder(request: Request) -> ProxyForwarder:
    return request.app.state.forwarder


def extract_target_url(request: Request) -> str:
    """
    Target URL is everything after the leading "/" of the path, percent-decoded.

    The undecoded path is preferred so an encoded target survives intact
    (e.g. "%2F" and "%3F" inside the target).
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        # Some servers include the query string in raw_path
        path = raw_path.decode("latin-1").split("?", 1)[0]
    else:
        path = request.url.path
    return unquote(path[1:] if path.startswith("/") else path)


@app.api_route("/{target_path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy(request: Request, forwarder: ProxyForwarder = Depends(get_forwarder)):
    target_url = extract_target_url(request)

    if not target_url:
        return HTMLResponse(get_config_page(request.url.hostname or ""))

    streaming = is_streaming(target_url, request.headers)
    body = await request.body()

    logger.info(
        f"Proxying {request.method} {target_url}" + (" (streaming)" if streaming else ""))
    return await forwarder.forward(
        request.method,
        target_url,
        request.headers,
        body=body,
        is_streaming=streaming,
    )
