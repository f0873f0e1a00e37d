"""
Turn upstream responses (or the lack of one) into the response sent back
to the client.
"""

import logging
from typing import Optional

import httpx
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from header_policy import build_response_headers

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json; charset=utf-8"
EXHAUSTED_STATUS = 502

EXHAUSTED_ERROR = "Proxy request failed"
EXHAUSTED_SUGGESTION = "Check that the target URL is correct, or try again later"
INVALID_TARGET_ERROR = "Invalid target URL"

ERROR_MESSAGES = {
    400: "Malformed request",
    401: "Authentication required",
    403: "Access denied - possibly hotlink protection or an IP restriction",
    404: "Resource not found",
    429: "Too many requests, please retry later",
    500: "Internal server error",
    502: "Bad gateway",
    503: "Service temporarily unavailable",
    504: "Gateway timeout",
}
UNKNOWN_ERROR_MESSAGE = "Unknown error"


def get_error_message(status: int) -> str:
    """Human-readable classification of an upstream error status"""
    return ERROR_MESSAGES.get(status, UNKNOWN_ERROR_MESSAGE)


def _error_json(body: dict, status_code: int) -> JSONResponse:
    return JSONResponse(
        content=body,
        status_code=status_code,
        headers={"Access-Control-Allow-Origin": "*"},
        media_type=JSON_MEDIA_TYPE,
    )


def finish_response(upstream: httpx.Response, is_streaming: bool) -> StreamingResponse:
    """
    Relay an upstream response to the client without buffering its body.

    The body is passed through as raw bytes so Content-Encoding and
    Content-Length stay valid. The upstream connection is released once the
    body has been relayed or the client has gone away.
    """
    headers = build_response_headers(upstream.headers, is_streaming)

    response = StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        background=BackgroundTask(upstream.aclose),
    )
    # Assigned as raw pairs so repeated headers (Set-Cookie) survive
    response.raw_headers = [
        (name.lower(), value) for name, value in headers.raw
    ]
    return response


def client_error_response(upstream: httpx.Response, target_url: str) -> JSONResponse:
    """Describe an upstream 4xx without relaying its body"""
    return _error_json(
        {
            "status": upstream.status_code,
            "statusText": upstream.reason_phrase,
            "targetUrl": target_url,
            "message": get_error_message(upstream.status_code),
        },
        upstream.status_code,
    )


def exhausted_response(message: str, target_url: str, attempts: int) -> JSONResponse:
    return _error_json(
        {
            "error": EXHAUSTED_ERROR,
            "message": message,
            "targetUrl": target_url,
            "attempts": attempts,
            "suggestion": EXHAUSTED_SUGGESTION,
        },
        EXHAUSTED_STATUS,
    )


def invalid_target_response(target_url: str, reason: Optional[str] = None) -> JSONResponse:
    logger.info(f"Rejecting invalid target URL {target_url!r}: {reason}")
    return _error_json(
        {
            "error": INVALID_TARGET_ERROR,
            "message": reason or "URL must be absolute (scheme and host)",
            "targetUrl": target_url,
        },
        400,
    )
