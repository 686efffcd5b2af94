"""OpenTelemetry adapter for run metrics."""

from dataclasses import dataclass
from importlib import import_module
from typing import Any

from loguru import logger

from casemap.application.ports import TelemetryPort


@dataclass
class OtelConfig:
    """Configuration for OpenTelemetry."""

    service_name: str = "casemap"
    otlp_endpoint: str | None = None  # e.g., "http://localhost:4317"
    environment: str = "production"
    enable_console: bool = False  # Debug: print metrics to console


class OpenTelemetryAdapter(TelemetryPort):
    """OpenTelemetry adapter for pipeline metrics.

    - Counters: incr() for events (runs, degraded retrieval)
    - Histograms: observe() for distributions (chunk counts, graph size)

    Metrics become no-ops when opentelemetry-sdk is not installed.
    """

    def __init__(self, cfg: OtelConfig) -> None:
        self._cfg = cfg
        self._meter: Any | None = None
        self._counters: dict[str, Any] = {}
        self._histograms: dict[str, Any] = {}
        self._init_otel()

    def _init_otel(self) -> None:
        """Set up the meter provider with OTLP and/or console readers."""
        try:
            otel_sdk = import_module("opentelemetry.sdk.metrics")
            otel_export = import_module("opentelemetry.sdk.metrics.export")
            otel_metrics = import_module("opentelemetry.metrics")
            otel_resources = import_module("opentelemetry.sdk.resources")
        except ImportError:
            logger.debug("opentelemetry-sdk not installed; metrics disabled")
            self._meter = None
            return

        resource = otel_resources.Resource.create(
            {
                "service.name": self._cfg.service_name,
                "deployment.environment": self._cfg.environment,
            }
        )

        readers = []
        if self._cfg.otlp_endpoint:
            try:
                otel_otlp = import_module(
                    "opentelemetry.exporter.otlp.proto.grpc.metric_exporter"
                )
            except ImportError:
                logger.warning("OTLP exporter not installed; ignoring {}", self._cfg.otlp_endpoint)
            else:
                exporter = otel_otlp.OTLPMetricExporter(endpoint=self._cfg.otlp_endpoint)
                readers.append(otel_export.PeriodicExportingMetricReader(exporter))
        if self._cfg.enable_console:
            readers.append(
                otel_export.PeriodicExportingMetricReader(otel_export.ConsoleMetricExporter())
            )

        provider = otel_sdk.MeterProvider(resource=resource, metric_readers=readers)
        otel_metrics.set_meter_provider(provider)
        self._meter = otel_metrics.get_meter(__name__)

    def incr(self, name: str, tags: dict | None = None) -> None:
        """Increment a counter, e.g. incr("casemap.runs.total", {"status": "ok"})."""
        if self._meter is None:
            return
        if name not in self._counters:
            self._counters[name] = self._meter.create_counter(
                name=name, description=f"Counter for {name}"
            )
        self._counters[name].add(1, attributes=tags or {})

    def observe(self, name: str, value: float, tags: dict | None = None) -> None:
        """Record a histogram value, e.g. observe("casemap.chunks.count", 42)."""
        if self._meter is None:
            return
        if name not in self._histograms:
            self._histograms[name] = self._meter.create_histogram(
                name=name, description=f"Histogram for {name}"
            )
        self._histograms[name].record(value, attributes=tags or {})
