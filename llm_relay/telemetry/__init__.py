"""
LLM Relay Telemetry

OpenTelemetry tracing for outbound upstream calls.
"""

from .tracer import init_telemetry, get_tracer, TracingConfig
from .spans import UpstreamSpan, SpanKind

__all__ = [
    "init_telemetry",
    "get_tracer",
    "TracingConfig",
    "UpstreamSpan",
    "SpanKind",
]
