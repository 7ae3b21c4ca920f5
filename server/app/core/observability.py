"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "tour-admin-api"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
IMPORT_ROWS = Counter(
    'tour_import_rows_total',
    'Import rows committed, by outcome',
    ['action'],
    registry=REGISTRY
)

IMPORTS_REJECTED = Counter(
    'tour_imports_rejected_total',
    'Import files rejected at the validation stage',
    registry=REGISTRY
)

EXPORTS = Counter(
    'tour_exports_total',
    'Catalog exports, by format',
    ['format'],
    registry=REGISTRY
)

BULK_ACTIONS = Counter(
    'tour_bulk_actions_total',
    'Bulk actions applied, by action',
    ['action'],
    registry=REGISTRY
)

TOURS_DELETED = Counter(
    'tours_deleted_total',
    'Tours physically deleted',
    registry=REGISTRY
)

ADMIN_LOGINS = Counter(
    'admin_logins_total',
    'Admin login attempts, by outcome',
    ['outcome'],
    registry=REGISTRY
)


def _add_trace_ids(logger, method_name, event_dict):
    span = trace.get_current_span()
    if span and span.is_recording():
        span_context = span.get_span_context()
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")
    return event_dict


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_structured_logging():
    """Configure structlog: console output in development, JSON lines elsewhere."""
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            _add_trace_ids,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, settings.log_level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource(app_name: str) -> Resource:
    return Resource.create({
        "service.name": app_name,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })


def setup_tracing(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource(app_name))

    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=settings.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(app_name), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument the application's SQLAlchemy engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for request and business metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration: float):
        """Record one served HTTP request."""
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_import_row(action: str):
        """Record the outcome of one committed import row."""
        IMPORT_ROWS.labels(action=action).inc()

    @staticmethod
    def record_import_rejected():
        """Record an import rejected by validation."""
        IMPORTS_REJECTED.inc()

    @staticmethod
    def record_export(export_format: str):
        """Record a catalog export."""
        EXPORTS.labels(format=export_format).inc()

    @staticmethod
    def record_bulk_action(action: str):
        """Record a bulk action."""
        BULK_ACTIONS.labels(action=action).inc()

    @staticmethod
    def record_tours_deleted(count: int):
        """Record physically deleted tours."""
        TOURS_DELETED.inc(count)

    @staticmethod
    def record_login(outcome: str):
        """Record an admin login attempt."""
        ADMIN_LOGINS.labels(outcome=outcome).inc()


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


class StructuredLogger:
    """
    structlog wrapper carrying key/value context.

    Used where several fields describe one unit of work, such as an import
    file or a single row inside it.
    """

    def __init__(self, name_or_logger):
        if isinstance(name_or_logger, str):
            name_or_logger = structlog.get_logger(name_or_logger)
        self.logger = name_or_logger

    def debug(self, event: str, **context):
        self.logger.debug(event, **context)

    def info(self, event: str, **context):
        self.logger.info(event, **context)

    def warning(self, event: str, **context):
        self.logger.warning(event, **context)

    def error(self, event: str, **context):
        self.logger.error(event, **context)

    def with_context(self, **context) -> "StructuredLogger":
        """Return a logger that adds ``context`` to every event."""
        return StructuredLogger(self.logger.bind(**context))


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
