import re
from types import MappingProxyType
from pydantic_settings import BaseSettings, SettingsConfigDict

# Application version
VERSION = "1.0.0"


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.
    Utilizes pydantic-settings for robust validation and type-casting.
    """

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "info"
    RELOAD: bool = False

    # Identity presented to upstream servers (simulated media player)
    DEFAULT_USER_AGENT: str = "ExoPlayer/2.18.1 (Linux; Android 10; arm64-v8a) ExoPlayerLib/2.18.1"

    # Retry policy
    # Bounds total attempts, not the number of retries
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_INITIAL_DELAY_MS: int = 500
    RETRY_MAX_DELAY_MS: int = 3000
    RETRY_BACKOFF_MULTIPLIER: float = 2.0

    # HTTP Client Configuration
    DEFAULT_CONNECTION_TIMEOUT: float = 10.0
    # Live streams keep data flowing; a stalled upstream should surface as an error
    DEFAULT_READ_TIMEOUT: float = 30.0
    # Clients may pause reading when their player buffer is full
    DEFAULT_WRITE_TIMEOUT: float = 300.0
    MAX_REDIRECTS: int = 10
    MAX_KEEPALIVE_CONNECTIONS: int = 20
    MAX_CONNECTIONS: int = 100

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",  # No prefix, read directly from .env
        extra="ignore"  # Ignore extra environment variables from container
    )


# Global settings instance
settings = Settings()


# Default request headers - media player fingerprint
DEFAULT_HEADERS = MappingProxyType({
    "User-Agent": settings.DEFAULT_USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
})

# URL shapes that identify live/streaming media
STREAMING_URL_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"rtmps?://",
    r"\.flv$",
    r"\.m3u8$",
    r"\.ts$",
    r"\.mp4$",
    r"\.webm$",
    r"hls",
    r"dash",
    r"stream",
    r"live",
    r"broadcast",
))

# Inbound Content-Type fragments that mark a streaming request
STREAMING_CONTENT_TYPES = (
    "video/",
    "application/x-rtmp",
    "application/vnd.apple.mpegurl",
    "application/dash+xml",
)

# Client headers always forwarded when present (range/conditional/auth)
PRIORITY_HEADERS = (
    "range",
    "if-none-match",
    "if-modified-since",
    "authorization",
    "cookie",
)

# Client headers never forwarded (edge/proxy identity)
EXCLUDED_HEADER_PREFIXES = (
    "cf-",
    "x-forwarded-",
    "x-real-ip",
    "x-client-ip",
)

# Client headers replaced by the proxy itself
OVERRIDDEN_HEADERS = frozenset({"host", "connection"})

# Body framing is recomputed by the transport from the replayed body
FRAMING_HEADERS = frozenset({"content-length", "transfer-encoding"})

# Response headers removed so nothing downstream caches proxied content
CACHE_HEADERS = (
    "Cache-Control",
    "Pragma",
    "Expires",
    "ETag",
    "Last-Modified",
    "Age",
)
