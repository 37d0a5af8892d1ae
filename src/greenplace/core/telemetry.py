"""Initializes OpenTelemetry services for the GreenPlace engine."""

import logging
import os

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)

# Default: http://localhost:4318. In k8s, this would be http://otel-collector.<ns>.svc.cluster.local:4318
OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")


def initialize_telemetry():
    """
    Configures and initializes the TracerProvider and MeterProvider for OpenTelemetry.
    Data will be exported via OTLP/HTTP. Instruments created below bind to the
    global proxies, so calling this after import still routes their data.
    """
    resource = Resource(attributes={SERVICE_NAME: "greenplace"})

    tracer_provider = TracerProvider(resource=resource)
    span_exporter = OTLPSpanExporter(endpoint=f"{OTEL_EXPORTER_OTLP_ENDPOINT}/v1/traces")
    tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(tracer_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{OTEL_EXPORTER_OTLP_ENDPOINT}/v1/metrics")
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    logger.info(f"OpenTelemetry initialized. Exporting to: {OTEL_EXPORTER_OTLP_ENDPOINT}")


tracer = trace.get_tracer("greenplace.tracer")
meter = metrics.get_meter("greenplace.meter")

provider_failures = meter.create_counter(
    "greenplace.provider.failures",
    description="Failed carbon data provider calls, by provider and error type.",
)
cache_reads = meter.create_counter(
    "greenplace.cache.reads",
    description="Carbon cache reads, by confidence tier.",
)
snapshot_rebuilds = meter.create_counter(
    "greenplace.snapshot.rebuilds",
    description="Sustainability snapshots published.",
)
