"""OpenTelemetry tracing for the member service.

Every remote call this layer makes is a span: ``store.*`` for the document
store, ``search.*`` for the search cluster, ``s3.put_object`` for photo
uploads and ``bus.post_event`` for the event bus. FastAPI and SQLAlchemy are
instrumented on top of that when tracing is enabled.

Exporters, chosen by ``observability_config.exporter_type``:

- ``console``: finished spans are logged through Loguru (development)
- ``otlp`` / ``aws``: OTLP over gRPC, to a collector or the ADOT sidecar
- ``none``: spans are recorded but not exported
"""

from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Final

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from member_service.core.context import RequestContext

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from fastapi import FastAPI

    from member_service.core.config import Settings

DEFAULT_OTLP_ENDPOINT: Final[str] = "http://localhost:4317"
UNTRACED_URLS: Final[str] = "/health,/docs,/openapi.json"

# Driver-level spans that only add noise to console output
NOISY_SPAN_NAMES: Final[frozenset[str]] = frozenset(
    {"connect", "http send", "http receive", "cursor.execute"}
)


class LoguruSpanExporter(SpanExporter):
    """Writes finished spans to the log at debug level."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        for span in spans:
            span_context = span.get_span_context()
            if not span_context or span.name in NOISY_SPAN_NAMES:
                continue

            attributes = dict(span.attributes or {})
            duration_ms = None
            if span.end_time and span.start_time:
                duration_ms = (span.end_time - span.start_time) // 1_000_000

            logger.bind(
                trace_id=f"0x{span_context.trace_id:032x}",
                span_id=f"0x{span_context.span_id:016x}",
                correlation_id=attributes.get(
                    "correlation_id", RequestContext.get_correlation_id()
                ),
                span_name=span.name,
                duration_ms=duration_ms,
                status=span.status.status_code.name,
            ).debug("Span {} finished", span.name)

        return SpanExportResult.SUCCESS


def get_span_exporter(settings: Settings) -> SpanExporter | None:
    """Exporter for the configured exporter type, ``None`` for ``none``."""
    config = settings.observability_config

    match config.exporter_type:
        case "console":
            return LoguruSpanExporter()
        case "otlp" | "aws":
            endpoint = config.exporter_endpoint or DEFAULT_OTLP_ENDPOINT
            logger.info("Exporting spans over OTLP to {}", endpoint)
            return OTLPSpanExporter(
                endpoint=endpoint,
                insecure=settings.environment == "development",
            )
        case _:
            return None


@lru_cache(maxsize=1)
def get_tracer(name: str) -> trace.Tracer:
    """Tracer of a component, usually named after its module."""
    return trace.get_tracer(name)


def setup_tracing(settings: Settings) -> None:
    """Install the global tracer provider, unless tracing is disabled."""
    config = settings.observability_config
    if not config.enable_tracing:
        logger.info("Tracing disabled by configuration")
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.app_name,
                "service.version": settings.app_version,
                "deployment.environment": settings.environment,
            }
        ),
        sampler=TraceIdRatioBased(config.trace_sample_rate),
    )
    if exporter := get_span_exporter(settings):
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    logger.info(
        "Tracing configured",
        exporter_type=config.exporter_type,
        sample_rate=config.trace_sample_rate,
    )


def instrument_app(app: FastAPI, settings: Settings) -> None:
    """Instrument FastAPI routes and SQLAlchemy queries when tracing is on."""
    if not settings.observability_config.enable_tracing:
        return

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=UNTRACED_URLS,
        server_request_hook=add_correlation_id_to_span,
    )
    SQLAlchemyInstrumentor().instrument()
    logger.info("Application instrumented for tracing")


def add_correlation_id_to_span(span: trace.Span, scope: dict[str, Any]) -> None:
    """Tag a server span with the correlation id and any ``X-Request-ID`` header."""
    if correlation_id := RequestContext.get_correlation_id():
        span.set_attribute("correlation_id", correlation_id)

    headers = dict(scope.get("headers", []))
    if request_id := headers.get(b"x-request-id", b"").decode("utf-8"):
        span.set_attribute("request_id", request_id)


@contextmanager
def trace_operation(
    name: str, **attributes: str | int | float | bool
) -> Generator[trace.Span]:
    """Run the enclosed block inside a span named ``name``.

    Attribute values are stored as strings; the request correlation id is
    added when one is set.

    Example:
        >>> with trace_operation("store.query", collection="Member"):
        ...     rows = await session.execute(stmt)
    """
    span = get_tracer(__name__).start_span(name)
    for key, value in attributes.items():
        span.set_attribute(key, str(value))
    if correlation_id := RequestContext.get_correlation_id():
        span.set_attribute("correlation_id", correlation_id)

    with trace.use_span(span, end_on_exit=True):
        yield span
