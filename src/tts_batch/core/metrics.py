"""
Prometheus Metrics for the batching service.

Metrics Exposed:
    tts_batch_runs_total{provider,state}      - Runs reaching a settled state
    tts_batch_chunks_total{provider,status}   - Chunk outcomes (completed/failed)
    tts_batch_batches_total{provider}         - Batches dispatched
    tts_batch_generation_seconds{provider}    - Per-chunk provider latency
    tts_batch_active_runs                     - Runs currently executing

Usage:
    from tts_batch.core.metrics import metrics

    metrics.record_chunk("minimax", "completed", seconds=4.2)
    metrics.inc_batches("minimax")
    metrics.record_run("minimax", "completed")

    content, content_type = metrics.get_metrics_response()

Prometheus Scrape Config Example:
    scrape_configs:
      - job_name: 'tts-batch'
        static_configs:
          - targets: ['localhost:8000']
        metrics_path: '/metrics'

See Also:
    - api/routes.py: /metrics endpoint
    - tts/scheduler.py: where the counters are updated
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class BatchMetrics:
    """
    Metric collection for runs, batches and chunks.

    Uses a private CollectorRegistry so that several instances (one per
    test, for example) never collide on metric names.
    """

    def __init__(self) -> None:
        self._registry = CollectorRegistry()

        self._runs_total = Counter(
            "tts_batch_runs_total",
            "Runs reaching a settled state",
            ["provider", "state"],
            registry=self._registry,
        )
        self._chunks_total = Counter(
            "tts_batch_chunks_total",
            "Chunk generation outcomes",
            ["provider", "status"],
            registry=self._registry,
        )
        self._batches_total = Counter(
            "tts_batch_batches_total",
            "Batches dispatched to a provider",
            ["provider"],
            registry=self._registry,
        )
        self._generation_seconds = Histogram(
            "tts_batch_generation_seconds",
            "Provider latency per chunk in seconds",
            ["provider"],
            buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )
        self._active_runs = Gauge(
            "tts_batch_active_runs",
            "Runs currently executing",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_run(self, provider: str, state: str) -> None:
        """Count a run that stopped in ``state`` (completed, paused, aborted)."""
        self._runs_total.labels(provider=provider, state=state).inc()

    def record_chunk(self, provider: str, status: str, seconds: float | None = None) -> None:
        """
        Record one chunk outcome.

        Args:
            provider: Provider name.
            status: "completed" or "failed".
            seconds: Provider latency, when the call was actually made.
        """
        self._chunks_total.labels(provider=provider, status=status).inc()
        if seconds is not None:
            self._generation_seconds.labels(provider=provider).observe(seconds)

    def inc_batches(self, provider: str) -> None:
        self._batches_total.labels(provider=provider).inc()

    def run_started(self) -> None:
        self._active_runs.inc()

    def run_stopped(self) -> None:
        self._active_runs.dec()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus text format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global metrics instance: from tts_batch.core.metrics import metrics
metrics = BatchMetrics()
