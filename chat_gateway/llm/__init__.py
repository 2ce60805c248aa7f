"""
Chat Completion Proxy

HTTP gateway for OpenAI-compatible chat-completion APIs with:
- Payload validation
- Rate limiting
- Upstream error translation
"""

from .client import UpstreamClient
from .proxy import ChatProxy, parse_chat_request

__all__ = ["ChatProxy", "UpstreamClient", "parse_chat_request"]
