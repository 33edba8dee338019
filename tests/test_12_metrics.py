"""Tests for Prometheus metrics."""
from __future__ import annotations


def _sample(m, name, labels=None):
    return m.registry.get_sample_value(name, labels or {})


class TestBatchMetrics:
    def test_instances_do_not_collide(self):
        from tts_batch.core.metrics import BatchMetrics

        a, b = BatchMetrics(), BatchMetrics()
        a.inc_batches("fake")
        assert _sample(a, "tts_batch_batches_total", {"provider": "fake"}) == 1.0
        assert _sample(b, "tts_batch_batches_total", {"provider": "fake"}) is None

    def test_chunk_outcomes(self):
        from tts_batch.core.metrics import BatchMetrics

        m = BatchMetrics()
        m.record_chunk("minimax", "completed", seconds=2.0)
        m.record_chunk("minimax", "failed")
        assert _sample(m, "tts_batch_chunks_total", {"provider": "minimax", "status": "completed"}) == 1.0
        assert _sample(m, "tts_batch_chunks_total", {"provider": "minimax", "status": "failed"}) == 1.0
        assert _sample(m, "tts_batch_generation_seconds_count", {"provider": "minimax"}) == 1.0

    def test_active_runs_gauge(self):
        from tts_batch.core.metrics import BatchMetrics

        m = BatchMetrics()
        m.run_started()
        m.run_started()
        m.run_stopped()
        assert _sample(m, "tts_batch_active_runs") == 1.0

    def test_runs_by_state(self):
        from tts_batch.core.metrics import BatchMetrics

        m = BatchMetrics()
        m.record_run("fake", "completed")
        assert _sample(m, "tts_batch_runs_total", {"provider": "fake", "state": "completed"}) == 1.0

    def test_exposition(self):
        from tts_batch.core.metrics import BatchMetrics

        m = BatchMetrics()
        m.inc_batches("elevenlabs")
        content, content_type = m.get_metrics_response()
        assert content_type.startswith("text/plain")
        assert b'tts_batch_batches_total{provider="elevenlabs"} 1.0' in content
