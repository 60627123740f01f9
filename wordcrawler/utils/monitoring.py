"""
Monitoring and metrics collection for the word frequency crawler.
"""

import time
import logging
import threading
from typing import Dict, Optional, Any

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class MetricsCollector:
    """Owns the Prometheus metrics of one crawl."""

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port
        self.registry = CollectorRegistry()

        self.prometheus_metrics = {
            'urls_crawled_total': Counter(
                'crawler_urls_crawled_total',
                'Total number of URLs taken from the frontier and processed',
                registry=self.registry
            ),
            'errors_total': Counter(
                'crawler_errors_total',
                'Total number of per-page failures',
                ['error_type'],
                registry=self.registry
            ),
            'links_admitted_total': Counter(
                'crawler_links_admitted_total',
                'Total number of new URLs admitted to the frontier',
                registry=self.registry
            ),
            'words_counted_total': Counter(
                'crawler_words_counted_total',
                'Total number of words merged into the tally',
                registry=self.registry
            ),
            'bytes_downloaded_total': Counter(
                'crawler_bytes_downloaded_total',
                'Total bytes downloaded',
                registry=self.registry
            ),
            'response_time_seconds': Histogram(
                'crawler_response_time_seconds',
                'Response time for HTTP requests',
                registry=self.registry
            ),
            'queue_size': Gauge(
                'crawler_queue_size',
                'Number of URLs waiting in the frontier',
                registry=self.registry
            ),
            'active_workers': Gauge(
                'crawler_active_workers',
                'Number of workers currently processing a page',
                registry=self.registry
            )
        }

    def start_prometheus_server(self):
        """Start Prometheus metrics HTTP server."""
        if not self.enable_prometheus:
            return

        start_http_server(self.prometheus_port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read the current value of a counter or gauge sample."""
        return self.registry.get_sample_value(name, labels or {}) or 0.0


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: MetricsCollector):
        self.metrics = metrics_collector
        self._m = metrics_collector.prometheus_metrics
        self.logger = logging.getLogger(__name__)
        self.start_time = time.time()
        self._lock = threading.Lock()
        self._errors_by_type: Dict[str, int] = {}

    def record_url_crawled(self, url: str, response_time: float, content_size: int):
        """Record a successfully fetched page."""
        self._m['urls_crawled_total'].inc()
        self._m['response_time_seconds'].observe(response_time)
        self._m['bytes_downloaded_total'].inc(content_size)

    def record_error(self, error_type: str):
        """Record a per-page failure."""
        self._m['urls_crawled_total'].inc()
        self._m['errors_total'].labels(error_type=error_type).inc()
        with self._lock:
            self._errors_by_type[error_type] = self._errors_by_type.get(error_type, 0) + 1

    def record_links_admitted(self, count: int):
        self._m['links_admitted_total'].inc(count)

    def record_words_counted(self, count: int):
        self._m['words_counted_total'].inc(count)

    def update_queue_size(self, size: int):
        self._m['queue_size'].set(size)

    def update_active_workers(self, count: int):
        self._m['active_workers'].set(count)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the crawl metrics."""
        runtime = time.time() - self.start_time
        urls_crawled = self.metrics.get_value('crawler_urls_crawled_total')
        with self._lock:
            errors = dict(self._errors_by_type)

        return {
            'runtime_seconds': runtime,
            'urls_crawled': urls_crawled,
            'links_admitted': self.metrics.get_value('crawler_links_admitted_total'),
            'words_counted': self.metrics.get_value('crawler_words_counted_total'),
            'bytes_downloaded': self.metrics.get_value('crawler_bytes_downloaded_total'),
            'errors': errors,
            'urls_per_second': urls_crawled / runtime if runtime > 0 else 0,
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> CrawlerMonitor:
    """Create a monitor with its own metrics registry."""
    return CrawlerMonitor(MetricsCollector(enable_prometheus, prometheus_port))
