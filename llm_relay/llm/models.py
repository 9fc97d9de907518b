"""
Request and error models for the relay routes.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any, Union

from pydantic import BaseModel, ConfigDict, PositiveFloat, PositiveInt


DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
FALLBACK_MODEL = "deepseek-chat"


class ChatMessage(BaseModel):
    """One conversation turn. Unknown keys are passed through to the upstream."""
    model_config = ConfigDict(extra="allow")

    role: str
    content: str


class ChatRequest(BaseModel):
    """Inbound body of ``POST /api/ai/chat``."""
    messages: List[ChatMessage]
    model: Optional[str] = None
    provider: Optional[str] = None
    stream: Optional[bool] = None
    temperature: Optional[float] = None
    # JSON number; whole values stay ints on the way out
    max_tokens: Optional[Union[PositiveInt, PositiveFloat]] = None

    def message_dicts(self) -> List[Dict[str, Any]]:
        return [m.model_dump() for m in self.messages]

    def sampling_options(self) -> Dict[str, Any]:
        """stream, temperature and max_tokens with defaults applied."""
        return {
            "stream": self.stream if self.stream is not None else False,
            "temperature": self.temperature if self.temperature is not None else DEFAULT_TEMPERATURE,
            "max_tokens": self.max_tokens if self.max_tokens is not None else DEFAULT_MAX_TOKENS,
        }


@dataclass
class RelayError:
    """
    Error envelope returned to callers.

    Rendered as ``{"error": ..., "message": ..., **extra}`` with
    ``status_code`` as the HTTP status.
    """
    status_code: int
    error: str
    message: str
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.extra}
