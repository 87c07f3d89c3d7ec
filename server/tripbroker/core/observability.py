"""Structured logging, Prometheus business metrics and OpenTelemetry export."""

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

from .. import __version__
from .config import Settings, settings

SERVICE_NAME = "trip-broker-api"

# Served by /metrics; process and platform collectors are not registered here
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
BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Total bookings created from accepted offers',
    ['currency'],
    registry=REGISTRY
)

ACCEPTANCE_OUTCOMES = Counter(
    'offer_acceptance_outcomes_total',
    'Offer acceptance attempts by outcome',
    ['outcome'],
    registry=REGISTRY
)

BOOKING_TRANSITIONS = Counter(
    'booking_transitions_total',
    'Booking status transitions applied',
    ['from_status', 'to_status'],
    registry=REGISTRY
)

CRITICAL_TRANSITION_FAILURES = Counter(
    'booking_post_commit_transition_failures_total',
    'Bookings left in CREATED because the first transition failed',
    registry=REGISTRY
)

EVENT_HANDLER_FAILURES = Counter(
    'domain_event_handler_failures_total',
    'Domain event handler failures',
    ['event_name', 'handler'],
    registry=REGISTRY
)

NOTIFICATIONS = Counter(
    'notifications_total',
    'Notification dispatch attempts by result',
    ['template_key', 'result'],
    registry=REGISTRY
)


def add_trace_context(logger, method_name, event_dict):
    """Stamp log records emitted inside a span with its trace and span ids."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict['trace_id'] = format(ctx.trace_id, '032x')
        event_dict['span_id'] = format(ctx.span_id, '016x')
    return event_dict


def setup_structured_logging(config: Settings = settings) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Modules log with logging.getLogger(__name__) and extra={...}; the extra
    fields and any request-scoped context bound with structlog.contextvars
    are rendered on every record.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer = structlog.dev.ConsoleRenderer() if config.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.log_level)
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, config.log_level))


def _resource(config: Settings, app_name: str) -> Resource:
    return Resource.create({
        "service.name": app_name,
        "service.version": __version__,
        "environment": config.environment,
    })


def setup_tracing(app_name: str = SERVICE_NAME, config: Settings = settings):
    """Install a tracer provider, exporting spans over OTLP when an endpoint is set."""
    provider = TracerProvider(resource=_resource(config, app_name))

    # Export only when a collector is configured
    if config.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics(app_name: str = SERVICE_NAME, config: Settings = settings):
    """Export OpenTelemetry metrics over OTLP when an endpoint is set."""
    if config.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=config.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(config, app_name), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
        FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Thin facade over the Prometheus collectors above."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
        """Record one HTTP request."""
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    @staticmethod
    def record_booking_created(currency: str):
        """Record a booking creation."""
        BOOKINGS_CREATED.labels(currency=currency).inc()

    @staticmethod
    def record_acceptance_outcome(outcome: str):
        """Record the outcome of an acceptance attempt."""
        ACCEPTANCE_OUTCOMES.labels(outcome=outcome).inc()

    @staticmethod
    def record_transition(from_status: str, to_status: str):
        """Record an applied booking transition."""
        BOOKING_TRANSITIONS.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_critical_transition_failure():
        """Record a booking whose first transition failed after commit."""
        CRITICAL_TRANSITION_FAILURES.inc()

    @staticmethod
    def record_handler_failure(event_name: str, handler: str):
        """Record a failed domain event handler."""
        EVENT_HANDLER_FAILURES.labels(event_name=event_name, handler=handler).inc()

    @staticmethod
    def record_notification(template_key: str, result: str):
        """Record a notification dispatch result."""
        NOTIFICATIONS.labels(template_key=template_key, result=result).inc()


def get_prometheus_metrics() -> bytes:
    return generate_latest(REGISTRY)


metrics_collector = MetricsCollector()
