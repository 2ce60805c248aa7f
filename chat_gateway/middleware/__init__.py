"""
HTTP middleware: security headers and fixed-window rate limiting.
"""

from .security import SecurityHeadersMiddleware, SECURITY_HEADERS, apply_security_headers
from .ratelimit import (
    RateLimitExceeded,
    SlowAPIMiddleware,
    build_limiter,
    forwarded_for_address,
    rate_limit_exceeded_handler,
)

__all__ = [
    "SecurityHeadersMiddleware",
    "SECURITY_HEADERS",
    "apply_security_headers",
    "RateLimitExceeded",
    "SlowAPIMiddleware",
    "build_limiter",
    "forwarded_for_address",
    "rate_limit_exceeded_handler",
]
