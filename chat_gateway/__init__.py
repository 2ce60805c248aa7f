"""
Chat Gateway - Chat-Completion Proxy for Frontends

Forwards chat-completion requests to an upstream LLM API so the frontend
never holds the API credential, adding validation, rate limiting and
security headers on the way.
"""

__version__ = "0.1.0"

from .config import GatewayConfig, load_config
from .server import create_app

__all__ = [
    "__version__",
    "GatewayConfig",
    "load_config",
    "create_app",
]
