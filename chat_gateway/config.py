"""
Configuration management for Chat Gateway.

Supports YAML configuration with environment variable expansion,
overridden by process environment variables.
"""

import os
import re
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any, Mapping

import yaml


DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_COMPLETION_TOKENS = 40
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    log_level: str = "INFO"
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES


@dataclass
class UpstreamConfig:
    """Upstream chat-completion provider."""
    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    default_model: str = DEFAULT_MODEL
    default_max_completion_tokens: int = DEFAULT_MAX_COMPLETION_TOKENS
    timeout: float = 600.0

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"


@dataclass
class CORSConfig:
    """Cross-origin policy."""
    environment: str = "development"  # development | production
    allowed_origins: List[str] = field(default_factory=list)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def effective_origins(self) -> List[str]:
        """Origins the CORS middleware should allow."""
        if self.is_production:
            return list(self.allowed_origins)
        return ["*"]


@dataclass
class RateLimitConfig:
    """Fixed-window rate limiting per client address."""
    enabled: bool = True
    max_requests: int = 100
    window_seconds: int = 15 * 60
    trust_forwarded_for: bool = False

    @property
    def limit_string(self) -> str:
        return f"{self.max_requests}/{self.window_seconds} seconds"


@dataclass
class GatewayConfig:
    """Root configuration for Chat Gateway."""
    service_name: str = "chat-gateway"
    server: ServerConfig = field(default_factory=ServerConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values."""
    if isinstance(value, str):
        # Match ${VAR} or $VAR patterns
        pattern = r'\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)'

        def replace(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return re.sub(pattern, replace, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(v) for v in value]
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def parse_config(data: Dict[str, Any]) -> GatewayConfig:
    """Build a GatewayConfig from an (already expanded) dict."""
    server_data = data.get("server") or {}
    server = ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=int(server_data.get("port", 3000)),
        reload=_as_bool(server_data.get("reload", False)),
        log_level=str(server_data.get("log_level", "INFO")).upper(),
        max_body_bytes=int(server_data.get("max_body_bytes", DEFAULT_MAX_BODY_BYTES)),
    )

    upstream_data = data.get("upstream") or {}
    api_key = upstream_data.get("api_key") or None
    # Unresolved ${VAR} reference
    if api_key and str(api_key).startswith("$"):
        api_key = None
    upstream = UpstreamConfig(
        base_url=upstream_data.get("base_url", "https://api.openai.com/v1"),
        api_key=api_key,
        default_model=upstream_data.get("default_model", DEFAULT_MODEL),
        default_max_completion_tokens=int(
            upstream_data.get("default_max_completion_tokens", DEFAULT_MAX_COMPLETION_TOKENS)
        ),
        timeout=float(upstream_data.get("timeout", 600.0)),
    )

    cors_data = data.get("cors") or {}
    cors = CORSConfig(
        environment=cors_data.get("environment", "development"),
        allowed_origins=_as_list(cors_data.get("allowed_origins")),
    )

    rl_data = data.get("rate_limit") or {}
    rate_limit = RateLimitConfig(
        enabled=_as_bool(rl_data.get("enabled", True)),
        max_requests=int(rl_data.get("max_requests", 100)),
        window_seconds=int(rl_data.get("window_seconds", 15 * 60)),
        trust_forwarded_for=_as_bool(rl_data.get("trust_forwarded_for", False)),
    )

    return GatewayConfig(
        service_name=data.get("service_name", "chat-gateway"),
        server=server,
        upstream=upstream,
        cors=cors,
        rate_limit=rate_limit,
    )


def apply_env_overrides(config: GatewayConfig, environ: Optional[Mapping[str, str]] = None) -> GatewayConfig:
    """Override config values from environment variables (in place)."""
    env = os.environ if environ is None else environ

    if env.get("HOST"):
        config.server.host = env["HOST"]
    if env.get("PORT"):
        config.server.port = int(env["PORT"])
    if env.get("LOG_LEVEL"):
        config.server.log_level = env["LOG_LEVEL"].upper()
    if env.get("MAX_BODY_BYTES"):
        config.server.max_body_bytes = int(env["MAX_BODY_BYTES"])

    if env.get("OPENAI_API_KEY"):
        config.upstream.api_key = env["OPENAI_API_KEY"]
    if env.get("UPSTREAM_URL"):
        config.upstream.base_url = env["UPSTREAM_URL"]
    if env.get("DEFAULT_MODEL"):
        config.upstream.default_model = env["DEFAULT_MODEL"]
    if env.get("DEFAULT_MAX_COMPLETION_TOKENS"):
        config.upstream.default_max_completion_tokens = int(env["DEFAULT_MAX_COMPLETION_TOKENS"])
    if env.get("UPSTREAM_TIMEOUT"):
        config.upstream.timeout = float(env["UPSTREAM_TIMEOUT"])

    if env.get("ENVIRONMENT"):
        config.cors.environment = env["ENVIRONMENT"]
    if env.get("ALLOWED_ORIGINS"):
        config.cors.allowed_origins = _as_list(env["ALLOWED_ORIGINS"])

    if env.get("RATE_LIMIT_ENABLED"):
        config.rate_limit.enabled = _as_bool(env["RATE_LIMIT_ENABLED"])
    if env.get("RATE_LIMIT_MAX"):
        config.rate_limit.max_requests = int(env["RATE_LIMIT_MAX"])
    if env.get("RATE_LIMIT_WINDOW_SECONDS"):
        config.rate_limit.window_seconds = int(env["RATE_LIMIT_WINDOW_SECONDS"])
    if env.get("TRUST_FORWARDED_FOR"):
        config.rate_limit.trust_forwarded_for = _as_bool(env["TRUST_FORWARDED_FOR"])

    return config


def load_config(path: str | Path | None = None, environ: Optional[Mapping[str, str]] = None) -> GatewayConfig:
    """
    Load configuration.

    Defaults, then the YAML file at ``path`` (if given), then environment
    variables.
    """
    data: Dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        data = expand_env_vars(raw)

    return apply_env_overrides(parse_config(data), environ)


def create_default_config() -> str:
    """Generate default configuration YAML."""
    return """# Chat Gateway Configuration
# Environment variables override every value below.

service_name: chat-gateway

server:
  host: 0.0.0.0
  port: 3000
  log_level: INFO
  max_body_bytes: 10485760  # 10 MiB

upstream:
  base_url: https://api.openai.com/v1
  api_key: ${OPENAI_API_KEY}
  default_model: gpt-4o-mini
  default_max_completion_tokens: 40
  # timeout: 600

cors:
  environment: development  # production restricts origins to the list below
  allowed_origins: []
  #   - https://app.example.com

rate_limit:
  enabled: true
  max_requests: 100
  window_seconds: 900  # 15 minutes
  trust_forwarded_for: false
"""
