"""
Gateway error types.

Every failure path ends in one of these; each knows its HTTP status and
renders the standard error envelope.
"""

from typing import Optional, Dict, Any

from .models import ErrorEnvelope, ErrorDetail


INVALID_REQUEST = "invalid_request_error"
INSUFFICIENT_QUOTA = "insufficient_quota"
RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
API_ERROR = "api_error"
SERVER_ERROR = "server_error"
NOT_FOUND = "not_found"

GENERIC_SERVER_MESSAGE = "An unexpected error occurred. Please try again later."
GENERIC_UPSTREAM_MESSAGE = "The upstream provider returned an error."


class GatewayError(Exception):
    """Base class for errors rendered as an error envelope."""
    status_code: int = 500
    error_type: str = SERVER_ERROR

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_envelope(self) -> Dict[str, Any]:
        return ErrorEnvelope(
            error=ErrorDetail(message=self.message, type=self.error_type, code=self.code)
        ).to_dict()


class InvalidRequestError(GatewayError):
    """Client sent a malformed payload."""
    status_code = 400
    error_type = INVALID_REQUEST

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GatewayError):
    status_code = 404
    error_type = NOT_FOUND

    def __init__(self, path: str):
        super().__init__(f"Route {path} not found")


class LocalRateLimitError(GatewayError):
    """This gateway's own limiter rejected the client."""
    status_code = 429
    error_type = RATE_LIMIT_EXCEEDED

    def __init__(self):
        super().__init__("Too many requests, please try again later.")


class UpstreamError(GatewayError):
    """The upstream provider answered with an error status."""
    error_type = API_ERROR

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        error_type: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message or GENERIC_UPSTREAM_MESSAGE, code=code)
        self.status_code = status_code
        self.error_type = error_type or API_ERROR


class TransportError(GatewayError):
    """Network failure or unexpected exception; details stay in the log."""
    status_code = 500
    error_type = SERVER_ERROR

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__(GENERIC_SERVER_MESSAGE)
        self.cause = cause


def _error_fields(body: Any) -> Dict[str, Any]:
    """Pull message/type/code out of an upstream error body, tolerating odd shapes."""
    if not isinstance(body, dict):
        return {}
    error = body.get("error", body)
    if isinstance(error, str):
        return {"message": error}
    if not isinstance(error, dict):
        return {}

    fields = {}
    for key in ("message", "type", "code"):
        value = error.get(key)
        if value is not None and value != "":
            fields[key] = str(value)
    return fields


def classify_upstream_error(status_code: int, body: Any) -> UpstreamError:
    """
    Map an upstream error response to the gateway taxonomy.

    Precedence: quota exhaustion, then rate limiting, then pass-through.
    """
    fields = _error_fields(body)
    code = fields.get("code")
    upstream_type = fields.get("type")
    message = fields.get("message")

    if INSUFFICIENT_QUOTA in (code, upstream_type):
        return UpstreamError(
            429,
            message or "You exceeded your current quota, please check your plan and billing details.",
            INSUFFICIENT_QUOTA,
            code,
        )

    if status_code == 429 or RATE_LIMIT_EXCEEDED in (code, upstream_type):
        return UpstreamError(
            429,
            message or "Rate limit reached for requests. Please try again later.",
            RATE_LIMIT_EXCEEDED,
            code,
        )

    return UpstreamError(status_code, message, upstream_type, code)
