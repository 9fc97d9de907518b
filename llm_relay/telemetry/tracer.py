"""
OpenTelemetry Tracer Configuration

Initializes OTEL with an OTLP or console exporter for upstream call tracing.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION

logger = logging.getLogger("llm-relay.telemetry")

_tracer = None
_initialized = False


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing."""

    enabled: bool = False
    service_name: str = "llm-relay"
    service_version: str = "0.1.0"

    # e.g. "http://localhost:4318/v1/traces"
    otlp_endpoint: Optional[str] = None

    # Console exporter for debugging
    console_export: bool = False

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        console_export = os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true"
        return cls(
            enabled=bool(otlp_endpoint) or console_export,
            service_name=os.getenv("OTEL_SERVICE_NAME", "llm-relay"),
            service_version=os.getenv("LLM_RELAY_VERSION", "0.1.0"),
            otlp_endpoint=otlp_endpoint,
            console_export=console_export,
        )


def init_telemetry(config: Optional[TracingConfig] = None) -> bool:
    """
    Initialize OpenTelemetry tracing.

    Returns False when no exporter is configured; spans are then recorded
    against the default no-op provider.
    """
    global _tracer, _initialized

    if _initialized:
        return True

    config = config or TracingConfig.from_env()
    if not config.enabled:
        logger.info("OTEL: no exporter configured, tracing disabled")
        return False

    resource = Resource.create({
        SERVICE_NAME: config.service_name,
        SERVICE_VERSION: config.service_version,
        "deployment.environment": os.getenv("ENVIRONMENT", "development"),
    })
    provider = TracerProvider(resource=resource)

    if config.otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint)))
        logger.info(f"OTEL: OTLP exporter configured → {config.otlp_endpoint}")

    if config.console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("OTEL: Console exporter enabled")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(config.service_name, config.service_version)
    _initialized = True

    logger.info(f"OTEL: Telemetry initialized for {config.service_name}")
    return True


def get_tracer():
    """Get the configured tracer, or the global (possibly no-op) one."""
    if _tracer is not None:
        return _tracer
    return trace.get_tracer("llm-relay")
