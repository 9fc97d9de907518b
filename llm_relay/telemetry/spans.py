"""
Span helpers for relay operations.
"""

from enum import Enum
from contextlib import contextmanager
from typing import Optional

from opentelemetry.trace import Status, StatusCode

from .tracer import get_tracer


class SpanKind(Enum):
    """Types of relay spans."""

    UPSTREAM = "upstream"


class UpstreamSpan:
    """
    Span for one outbound call to an upstream LLM API.

    Usage:
        with UpstreamSpan.call("DeepSeek", "POST", "/chat/completions") as span:
            span.set_attribute("http.status_code", 200)
    """

    @staticmethod
    @contextmanager
    def call(provider: str, method: str, path: str):
        tracer = get_tracer()

        with tracer.start_as_current_span(
            f"upstream {method} {path}",
            attributes={
                "relay.span_kind": SpanKind.UPSTREAM.value,
                "relay.provider": provider,
                "http.method": method,
                "http.route": path,
            },
        ) as span:
            yield span

    @staticmethod
    def mark_error(span, description: Optional[str] = None):
        span.set_status(Status(StatusCode.ERROR, description))
