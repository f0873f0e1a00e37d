"""
Forwarding with bounded retries and capped exponential backoff.

One ProxyForwarder is shared by all requests; it holds only the HTTP client
and the read-only retry policy. Everything that changes between attempts
lives in local variables of forward().
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Optional
from urllib.parse import urlsplit

import httpx
from starlette.responses import Response

from config import settings
from header_policy import build_proxy_headers
from response_finisher import (
    finish_response,
    client_error_response,
    exhausted_response,
    invalid_target_response,
    get_error_message,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 0.5  # seconds
    max_delay: float = 3.0  # seconds
    backoff_multiplier: float = 2.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            initial_delay=settings.RETRY_INITIAL_DELAY_MS / 1000,
            max_delay=settings.RETRY_MAX_DELAY_MS / 1000,
            backoff_multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number `attempt` (1-based)"""
        delay = self.initial_delay * \
            (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay)


def is_ok_status(status_code: int) -> bool:
    """2xx and 3xx count as success; redirects are followed before this check"""
    return 200 <= status_code < 400


def is_client_error(status_code: int) -> bool:
    return 400 <= status_code < 500


def validate_target_url(url: str) -> str:
    """Validate that the target is an absolute URL before any network call"""
    if not url or not url.strip():
        raise ValueError("URL cannot be empty")

    parsed = urlsplit(url)
    if not parsed.scheme:
        raise ValueError("URL must include a scheme")
    if not parsed.netloc:
        raise ValueError("URL must have a valid host")

    try:
        httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid URL format: {e}")

    return url


def create_http_client() -> httpx.AsyncClient:
    """Shared outbound client: follows redirects, pools connections, never caches"""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=settings.DEFAULT_CONNECTION_TIMEOUT,  # Fail fast if upstream is down
            read=settings.DEFAULT_READ_TIMEOUT,
            write=settings.DEFAULT_WRITE_TIMEOUT,
            pool=10.0
        ),
        follow_redirects=True,
        max_redirects=settings.MAX_REDIRECTS,
        limits=httpx.Limits(
            max_keepalive_connections=settings.MAX_KEEPALIVE_CONNECTIONS,
            max_connections=settings.MAX_CONNECTIONS,
            keepalive_expiry=30.0
        )
    )


class ProxyForwarder:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    async def _send_attempt(
        self,
        method: str,
        target_url: str,
        inbound_headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> httpx.Response:
        request = self.http_client.build_request(
            method,
            target_url,
            headers=build_proxy_headers(inbound_headers, target_url),
            content=body or None,
        )
        return await self.http_client.send(request, stream=True)

    async def forward(
        self,
        method: str,
        target_url: str,
        inbound_headers: Mapping[str, str],
        body: Optional[bytes] = None,
        is_streaming: bool = False,
    ) -> Response:
        """
        Forward a request to the target, retrying 5xx and transport failures.

        4xx responses are never retried. After policy.max_attempts failed
        attempts a 502 describing the last failure is returned. The streaming
        flag is fixed for the whole sequence and only selects how a
        successful response is finished.
        """
        try:
            validate_target_url(target_url)
        except ValueError as e:
            return invalid_target_response(target_url, str(e))

        max_attempts = self.policy.max_attempts
        attempt = 1

        while True:
            logger.debug(
                f"Forwarding {method} {target_url} (attempt {attempt}/{max_attempts})")

            try:
                upstream = await self._send_attempt(
                    method, target_url, inbound_headers, body)
            except httpx.HTTPError as e:
                failure = str(e) or e.__class__.__name__
                logger.warning(
                    f"Proxy request failed (attempt {attempt}/{max_attempts}) for {target_url}: {failure}")
            else:
                status = upstream.status_code
                if is_ok_status(status):
                    if attempt > 1:
                        logger.info(
                            f"Upstream {target_url} recovered on attempt {attempt}/{max_attempts}")
                    return finish_response(upstream, is_streaming)

                await upstream.aclose()

                if is_client_error(status):
                    logger.info(
                        f"Upstream {target_url} returned {status}, not retrying")
                    return client_error_response(upstream, target_url)

                failure = f"Upstream returned {status} {upstream.reason_phrase}: {get_error_message(status)}"
                logger.warning(
                    f"{failure} (attempt {attempt}/{max_attempts}) for {target_url}")

            if attempt >= max_attempts:
                logger.error(
                    f"Giving up on {target_url} after {attempt} attempts: {failure}")
                return exhausted_response(failure, target_url, attempt)

            delay = self.policy.delay_for(attempt)
            logger.debug(f"Retrying {target_url} in {delay:.2f}s")
            await self._sleep(delay)
            attempt += 1
