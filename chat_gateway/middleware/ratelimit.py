"""
Fixed-window rate limiting.

Built on slowapi: one in-memory Limiter per application with a single
application-wide limit shared by every route not marked exempt.
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..config import RateLimitConfig
from ..errors import LocalRateLimitError

logger = logging.getLogger("chat-gateway.ratelimit")


def forwarded_for_address(request: Request) -> str:
    """First X-Forwarded-For hop, falling back to the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return get_remote_address(request)


def build_limiter(config: RateLimitConfig) -> Limiter:
    """Create the limiter for one application."""
    if config.max_requests < 1:
        raise ValueError("max_requests must be at least 1")
    if config.window_seconds < 1:
        raise ValueError("window_seconds must be at least 1")

    key_func = forwarded_for_address if config.trust_forwarded_for else get_remote_address
    return Limiter(
        key_func=key_func,
        # One shared counter per client across all routes
        application_limits=[config.limit_string],
        strategy="fixed-window",
        headers_enabled=True,
        enabled=config.enabled,
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render a limiter rejection as the error envelope, with Retry-After."""
    client = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for: {client[:16]} ({exc.detail})")

    error = LocalRateLimitError()
    response = JSONResponse(status_code=error.status_code, content=error.to_envelope())
    # Sync on purpose: SlowAPIMiddleware calls this handler without awaiting
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)
