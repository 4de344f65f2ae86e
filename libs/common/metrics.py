"""Metrics collection for the search services.

Provides a thin convenience wrapper around ``prometheus_client`` so services
consistently record HTTP, search, provider, and chunk-lookup metrics.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected for tests)
"""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for the search service.

    Parameters
    - service_name: Logical name of the owning service
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.search_requests = Counter(
            'docs_search_requests_total',
            'Total hybrid search requests',
            ['framework'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'docs_search_duration_seconds',
            'Hybrid search duration',
            ['framework'],
            registry=self.registry
        )

        self.provider_calls = Counter(
            'docs_search_provider_calls_total',
            'Provider calls partitioned by outcome',
            ['provider', 'status'],
            registry=self.registry
        )

        self.chunk_lookups = Counter(
            'docs_chunk_lookups_total',
            'Chunk lookups by identity partitioned by outcome',
            ['outcome'],
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_search(self, framework: str, duration: float) -> None:
        """Record a completed hybrid search."""
        label = framework or "all"
        self.search_requests.labels(framework=label).inc()
        self.search_duration.labels(framework=label).observe(duration)

    def record_provider_call(self, provider: str, status: str) -> None:
        """Record the outcome (``success``, ``error``, ``timeout``) of a provider call."""
        self.provider_calls.labels(provider=provider, status=status).inc()

    def record_chunk_lookup(self, outcome: str) -> None:
        """Record a chunk lookup (``hit``, ``miss``, ``error``)."""
        self.chunk_lookups.labels(outcome=outcome).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create metrics collector for a service.

    Returns a process-wide singleton to avoid duplicate collectors/labels.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector
