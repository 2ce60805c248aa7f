"""
Chat Gateway Server

Application factory and entry point.
"""

import logging
import os
from typing import Optional

import httpx
from fastapi import FastAPI

from .config import GatewayConfig, load_config
from .llm import ChatProxy

logger = logging.getLogger("chat-gateway")

CONFIG_PATH_ENV = "CHAT_GATEWAY_CONFIG"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(
    config: Optional[GatewayConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Without an explicit config, the YAML file named by CHAT_GATEWAY_CONFIG
    (if set) is loaded, then environment variables are applied.
    ``transport`` replaces the network layer of the upstream client.
    """
    if config is None:
        config = load_config(os.environ.get(CONFIG_PATH_ENV) or None)

    proxy = ChatProxy(config, transport=transport)
    return proxy.app


# =============================================================================
# Main
# =============================================================================

def main(config_path: str = None, host: str = None, port: int = None, reload: bool = False):
    """Run the Chat Gateway server."""
    import uvicorn

    config = load_config(config_path)
    if host:
        config.server.host = host
    if port:
        config.server.port = port

    configure_logging(config.server.log_level)

    if reload or config.server.reload:
        # Reload needs an import string; the factory re-reads the config from here
        if config_path:
            os.environ[CONFIG_PATH_ENV] = str(config_path)
        uvicorn.run(
            "chat_gateway.server:create_app",
            factory=True,
            host=config.server.host,
            port=config.server.port,
            reload=True,
            log_level=config.server.log_level.lower(),
        )
        return

    app = create_app(config)
    logger.info(f"Listening on {config.server.host}:{config.server.port}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
