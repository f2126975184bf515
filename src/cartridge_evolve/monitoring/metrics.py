"""Prometheus metrics exposure for cartridge-evolve.

Values are read from the schema manager when the registry is scraped; the
engine never pushes metrics.
"""

from typing import Dict, Iterator, Optional, Union

import structlog
from prometheus_client import CollectorRegistry, start_http_server
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from ..core.config import PrometheusConfig
from ..schema.manager import SchemaManager

logger = structlog.get_logger(__name__)

METRIC_PREFIX = "cartridge_evolve"


class EngineCollector(Collector):
    """Custom collector reading engine counters and cache gauges on demand."""

    def __init__(self, manager: SchemaManager):
        self.manager = manager

    def collect(self) -> Iterator[Metric]:
        compatibility = self.manager.compatibility_metrics()

        for suffix, description, attr in (
            ("", "Total number of compatibility checks", "total"),
            ("_passed", "Number of compatibility checks that passed", "passed"),
            ("_failed", "Number of compatibility checks that failed", "failed"),
        ):
            family = CounterMetricFamily(
                f"{METRIC_PREFIX}_compatibility_checks{suffix}",
                description,
                labels=["policy"],
            )
            for policy, counters in compatibility.by_policy.items():
                family.add_metric([policy.value], getattr(counters, attr))
            yield family

        stats = self.manager.cache_stats()

        yield GaugeMetricFamily(
            f"{METRIC_PREFIX}_cached_schemas",
            "Number of converted schemas currently cached",
            value=stats.size,
        )
        yield GaugeMetricFamily(
            f"{METRIC_PREFIX}_cache_hit_rate",
            "Fraction of cache lookups that were hits",
            value=stats.hit_rate,
        )
        yield CounterMetricFamily(
            f"{METRIC_PREFIX}_cache_evictions",
            "Number of cache entries evicted by size or TTL",
            value=stats.eviction_count,
        )
        yield CounterMetricFamily(
            f"{METRIC_PREFIX}_cache_hits",
            "Number of cache hits",
            value=stats.hit_count,
        )
        yield CounterMetricFamily(
            f"{METRIC_PREFIX}_cache_misses",
            "Number of cache misses",
            value=stats.miss_count,
        )


class MetricsCollector:
    """Owns the Prometheus registry and the optional exposition server."""

    def __init__(self, manager: SchemaManager, prometheus_config: Optional[PrometheusConfig] = None):
        """Initialize metrics collector."""
        self.manager = manager
        self.config = prometheus_config or PrometheusConfig()
        self.registry = CollectorRegistry()
        self.registry.register(EngineCollector(manager))
        self._server = None

    def start_server(self) -> None:
        """Start the Prometheus metrics server if enabled."""
        if not self.config.enabled or self._server is not None:
            return

        logger.info("Starting Prometheus metrics server", port=self.config.port)
        self._server = start_http_server(self.config.port, registry=self.registry)

    def stop_server(self) -> None:
        """Stop the Prometheus metrics server."""
        if self._server is None:
            return

        logger.info("Stopping Prometheus metrics server")
        server, _thread = self._server
        server.shutdown()
        server.server_close()
        self._server = None

    def snapshot(self) -> Dict[str, Union[int, float]]:
        """Read the current metric values as a flat name-to-value mapping."""
        compatibility = self.manager.compatibility_metrics()
        stats = self.manager.cache_stats()

        values: Dict[str, Union[int, float]] = {
            "compatibility_checks_total": compatibility.total,
            "compatibility_checks_passed": compatibility.passed,
            "compatibility_checks_failed": compatibility.failed,
        }
        for policy, counters in compatibility.by_policy.items():
            values[f"compatibility_checks_{policy.value}_total"] = counters.total
            values[f"compatibility_checks_{policy.value}_passed"] = counters.passed
            values[f"compatibility_checks_{policy.value}_failed"] = counters.failed

        values["cached_schemas"] = stats.size
        values["hit_rate"] = stats.hit_rate
        values["eviction_count"] = stats.eviction_count
        return values
