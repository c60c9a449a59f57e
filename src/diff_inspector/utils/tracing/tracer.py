"""
Tracer initialization for OpenTelemetry.

Spans are only exported when an exporter is configured: OTLP when
``OTLP_ENDPOINT`` is set (or an endpoint is passed), console when
``TRACE_CONSOLE=true``. Otherwise spans are recorded and dropped.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

_tracer: trace.Tracer | None = None
_provider: TracerProvider | None = None


def initialize_tracing(
    service_name: str = "pg-diff-inspector",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Initialize tracing with OpenTelemetry.

    Args:
        service_name: Name of the service for identification
        otlp_endpoint: OTLP collector endpoint (e.g. "localhost:4317");
            defaults to the ``OTLP_ENDPOINT`` environment variable
        console_export: Also export spans to stdout

    Returns:
        Configured tracer instance
    """
    global _tracer, _provider

    if _tracer is not None:
        return _tracer

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    exporters = []

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTLP_ENDPOINT")

    if otlp_endpoint:
        try:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
            )
            exporters.append("OTLP")
        except Exception as e:
            logger.warning(f"Failed to configure OTLP exporter: {e}")

    if console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("Console")

    _provider = provider
    _tracer = provider.get_tracer(service_name)

    logger.debug(
        f"Tracing initialized: {service_name} "
        f"(exporters: {', '.join(exporters) or 'none'})"
    )
    return _tracer


def get_tracer() -> trace.Tracer:
    """Return the tracer, initializing it with defaults on first use."""
    if _tracer is None:
        return initialize_tracing()
    return _tracer


def shutdown_tracing() -> None:
    """Flush pending spans and reset the tracer. Call before exit."""
    global _tracer, _provider

    if _provider is not None:
        try:
            _provider.shutdown()
        except Exception as e:
            logger.error(f"Error during tracing shutdown: {e}")
    _tracer = None
    _provider = None
