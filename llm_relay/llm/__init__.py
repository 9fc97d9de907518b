"""
LLM API Relay

HTTP relay for OpenAI-compatible chat completion APIs with:
- Server-side credential injection
- Request validation and defaults
- Upstream error translation
"""

from .proxy import LLMProxy, create_proxy_app
from .models import ChatRequest, ChatMessage, RelayError
from .upstream import UpstreamClient, UpstreamResult

__all__ = [
    "LLMProxy",
    "create_proxy_app",
    "ChatRequest",
    "ChatMessage",
    "RelayError",
    "UpstreamClient",
    "UpstreamResult",
]
