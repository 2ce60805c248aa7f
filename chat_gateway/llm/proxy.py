"""
Chat Completion Proxy

Sits between a frontend and an OpenAI-compatible chat-completion API so
that the frontend never holds the upstream credential:
- Payload validation before anything leaves the process
- Fixed-window rate limiting per client address
- Security headers and CORS policy on every response
- Upstream errors translated into a stable error envelope
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from slowapi import Limiter
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import GatewayConfig
from ..errors import (
    GatewayError,
    InvalidRequestError,
    NotFoundError,
    TransportError,
)
from ..middleware import (
    RateLimitExceeded,
    SecurityHeadersMiddleware,
    SlowAPIMiddleware,
    apply_security_headers,
    build_limiter,
    rate_limit_exceeded_handler,
)
from ..models import ChatRequest, HealthResponse
from .client import UpstreamClient

logger = logging.getLogger("chat-gateway.llm")

MESSAGES_REQUIRED = "messages is required and must be an array"
MESSAGE_FIELDS_REQUIRED = "Each message must have a non-empty role and content"


def _describe_validation_error(exc: ValidationError) -> str:
    """Turn a pydantic error into one client-facing sentence."""
    for err in exc.errors():
        loc = err.get("loc", ())
        if loc and loc[0] == "messages":
            if len(loc) == 1:
                return MESSAGES_REQUIRED
            return MESSAGE_FIELDS_REQUIRED
        if loc:
            return f"Invalid value for '{loc[0]}': {err.get('msg', 'invalid')}"
    return "Invalid request body"


def parse_chat_request(payload: Any) -> ChatRequest:
    """Validate a decoded JSON payload; raise InvalidRequestError on any problem."""
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        raise InvalidRequestError(MESSAGES_REQUIRED)

    for message in messages:
        if not isinstance(message, dict) or not message.get("role") or not message.get("content"):
            raise InvalidRequestError(MESSAGE_FIELDS_REQUIRED)

    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequestError(_describe_validation_error(e)) from e


class ChatProxy:
    """
    HTTP gateway in front of a chat-completion API.

    Routes:
        GET  /health, /            -> liveness
        POST /api/chat/completions -> upstream /chat/completions
        POST /api/test             -> frontend connectivity check
    """

    def __init__(
        self,
        config: GatewayConfig,
        upstream: Optional[UpstreamClient] = None,
        limiter: Optional[Limiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.upstream = upstream or UpstreamClient(config.upstream, transport=transport)
        self.limiter = limiter or build_limiter(config.rate_limit)

        if not config.upstream.api_key:
            logger.warning("No upstream API key configured; the upstream will likely answer 401")

        self.app = FastAPI(
            title="Chat Gateway",
            description="Chat-completion proxy with validation, rate limiting and security headers",
            version="0.1.0",
            lifespan=self._lifespan,
        )
        self.app.state.proxy = self
        self.app.state.limiter = self.limiter
        self._setup_middleware()
        self._setup_exception_handlers()
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info(f"{self.config.service_name} starting")
        logger.info(f"  Upstream: {self.config.upstream.completions_url}")
        logger.info(f"  Environment: {self.config.cors.environment}")
        logger.info(
            f"  Rate limit: {self.config.rate_limit.max_requests} req / "
            f"{self.config.rate_limit.window_seconds}s "
            f"({'enabled' if self.config.rate_limit.enabled else 'disabled'})"
        )
        yield
        logger.info(f"{self.config.service_name} shutting down")
        await self.upstream.aclose()

    def _setup_middleware(self):
        # Added innermost first: limiter, then CORS, then security headers outermost
        if self.config.rate_limit.enabled:
            self.app.add_middleware(SlowAPIMiddleware)

        origins = self.config.cors.effective_origins()
        if self.config.cors.is_production and not origins:
            logger.warning("Production mode with no allowed origins; cross-origin requests will be refused")
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
        )

        self.app.add_middleware(SecurityHeadersMiddleware)

    def _setup_exception_handlers(self):

        @self.app.exception_handler(GatewayError)
        async def gateway_error_handler(request: Request, exc: GatewayError):
            return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())

        self.app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            if exc.status_code == 404:
                error = NotFoundError(request.url.path)
            elif exc.status_code == 405:
                error = InvalidRequestError(
                    f"Method {request.method} not allowed for {request.url.path}",
                    status_code=405,
                )
            elif exc.status_code < 500:
                error = InvalidRequestError(str(exc.detail), status_code=exc.status_code)
            else:
                error = TransportError()
            return JSONResponse(
                status_code=error.status_code,
                content=error.to_envelope(),
                headers=getattr(exc, "headers", None),
            )

        @self.app.exception_handler(Exception)
        async def unhandled_exception_handler(request: Request, exc: Exception):
            # Runs outside the middleware stack, so headers are applied here
            logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
            response = JSONResponse(status_code=500, content=TransportError(exc).to_envelope())
            apply_security_headers(response.headers)
            self._apply_cors_headers(request, response)
            return response

    def _apply_cors_headers(self, request: Request, response: Response):
        origin = request.headers.get("origin")
        if not origin:
            return
        origins = self.config.cors.effective_origins()
        if "*" in origins:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin in origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"

    def _health(self) -> Dict[str, Any]:
        return HealthResponse(service=self.config.service_name).model_dump()

    def _setup_routes(self):

        @self.app.get("/health")
        @self.limiter.exempt
        async def health():
            return self._health()

        @self.app.get("/")
        @self.limiter.exempt
        async def root():
            return self._health()

        @self.app.post("/api/test")
        async def connectivity_test():
            """Lets a frontend confirm it can reach the backend."""
            return {"message": "Backend connected successfully!"}

        @self.app.post("/api/chat/completions")
        async def chat_completions(request: Request):
            """Validate and forward a chat-completion request."""
            payload = await self._read_json(request)
            chat_request = parse_chat_request(payload)

            body = chat_request.to_upstream(
                default_model=self.config.upstream.default_model,
                default_max_completion_tokens=self.config.upstream.default_max_completion_tokens,
            )
            logger.info(
                f"Proxying completion: model={body.get('model')} "
                f"messages={len(chat_request.messages)}"
            )

            try:
                result = await self.upstream.create_chat_completion(body)
            except GatewayError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected failure calling upstream: {e}")
                raise TransportError(e) from e

            return JSONResponse(content=result, status_code=200)

    async def _read_json(self, request: Request) -> Any:
        limit = self.config.server.max_body_bytes
        too_large = InvalidRequestError(
            f"Request body exceeds {limit} bytes", status_code=413
        )

        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise too_large

        # Chunked bodies carry no Content-Length; stop reading once over the limit
        raw = bytearray()
        async for chunk in request.stream():
            raw.extend(chunk)
            if len(raw) > limit:
                raise too_large

        try:
            return json.loads(raw)
        except ValueError as e:
            raise InvalidRequestError("Request body must be valid JSON") from e

