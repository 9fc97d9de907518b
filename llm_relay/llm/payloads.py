"""
Outbound request bodies and response normalization per wire format.
"""

import time
from typing import Dict, Any, Optional

from ..providers import ProviderConfig, ANTHROPIC_FORMAT
from .models import ChatRequest, DEFAULT_MAX_TOKENS, FALLBACK_MODEL


def resolve_model(request: ChatRequest, default_model: Optional[str]) -> str:
    """Explicit request model, else the configured default, else the fallback."""
    return request.model or default_model or FALLBACK_MODEL


def build_chat_body(provider: ProviderConfig, request: ChatRequest, model: str) -> Dict[str, Any]:
    messages = request.message_dicts()

    if provider.wire_format == ANTHROPIC_FORMAT:
        body: Dict[str, Any] = {
            "model": model,
            "messages": [m for m in messages if m.get("role") != "system"],
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        system = next((m.get("content") for m in messages if m.get("role") == "system"), None)
        if system is not None:
            body["system"] = system
        return body

    return {
        "model": model,
        "messages": messages,
        **request.sampling_options(),
    }


def normalize_chat_response(provider: ProviderConfig, data: Any) -> Any:
    """Convert a provider response into chat-completion shape.

    OpenAI-compatible responses are returned untouched.
    """
    if provider.wire_format != ANTHROPIC_FORMAT or not isinstance(data, dict):
        return data

    content = data.get("content") or []
    text = ""
    if content and isinstance(content[0], dict):
        text = content[0].get("text") or ""

    return {
        "id": data.get("id"),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": data.get("model"),
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": data.get("stop_reason"),
            }
        ],
        "usage": data.get("usage"),
    }
