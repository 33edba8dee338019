"""Tests for the per-chunk job state store."""
from __future__ import annotations

import pytest


def _artifact(i: int = 0):
    from tts_batch.tts.client import ArtifactRef

    return ArtifactRef(audio_bytes=b"ID3audio", filename=f"fake-v-chunk{i}-1.mp3", duration_estimate_seconds=1)


def _store(n: int = 3):
    from tts_batch.tts.chunker import TextChunk
    from tts_batch.tts.state import ChunkStateStore

    return ChunkStateStore.from_chunks(
        TextChunk(index=i, text=f"chunk {i}", start_char=i * 8, end_char=i * 8 + 7) for i in range(n)
    )


class TestLifecycle:
    """pending -> generating -> completed | failed."""

    def test_jobs_start_pending(self):
        store = _store(3)
        assert len(store) == 3
        assert store.counts() == {"pending": 3, "generating": 0, "completed": 0, "failed": 0}

    def test_complete_and_fail(self):
        from tts_batch.tts.state import ChunkStatus

        store = _store(2)
        store.mark_generating([0, 1])
        store.mark_completed(0, _artifact(0))
        store.mark_failed(1, "HTTP 429")

        assert store.get(0).status == ChunkStatus.COMPLETED
        assert store.get(0).artifact is not None
        assert store.get(1).status == ChunkStatus.FAILED
        assert store.get(1).error == "HTTP 429"
        assert store.get(1).artifact is None
        assert [j.chunk_index for j in store.completed_jobs()] == [0]
        assert [j.chunk_index for j in store.failed_jobs()] == [1]

    def test_cannot_complete_pending_job(self):
        from tts_batch.tts.state import InvalidTransitionError

        store = _store(1)
        with pytest.raises(InvalidTransitionError):
            store.mark_completed(0, _artifact())

    def test_terminal_states_are_final(self):
        from tts_batch.tts.state import InvalidTransitionError

        store = _store(1)
        store.mark_generating([0])
        store.mark_failed(0, "boom")
        with pytest.raises(InvalidTransitionError):
            store.mark_generating([0])

    def test_mark_generating_is_all_or_nothing(self):
        from tts_batch.tts.state import ChunkStatus, InvalidTransitionError

        store = _store(3)
        store.mark_generating([1])
        with pytest.raises(InvalidTransitionError):
            store.mark_generating([0, 1, 2])
        assert store.get(0).status == ChunkStatus.PENDING
        assert store.get(2).status == ChunkStatus.PENDING

    def test_unknown_index(self):
        store = _store(2)
        with pytest.raises(KeyError):
            store.get(5)
        with pytest.raises(KeyError):
            store.mark_generating([5])


class TestFailUnsettled:
    def test_fails_only_unsettled_jobs(self):
        from tts_batch.tts.state import ChunkStatus

        store = _store(3)
        store.mark_generating([0, 1])
        store.mark_completed(0, _artifact(0))

        failed = store.fail_unsettled([0, 1, 2], "batch failed")

        assert failed == [1, 2]
        assert store.get(0).status == ChunkStatus.COMPLETED
        assert store.get(1).error == "batch failed"
        assert store.get(2).status == ChunkStatus.FAILED


class TestReads:
    def test_reads_return_copies(self):
        from tts_batch.tts.state import ChunkStatus

        store = _store(1)
        job = store.get(0)
        job.status = ChunkStatus.COMPLETED
        assert store.get(0).status == ChunkStatus.PENDING

    def test_jobs_sorted_by_index_with_gaps(self):
        from tts_batch.tts.state import ChunkJob, ChunkStateStore

        store = ChunkStateStore([ChunkJob(7, "c"), ChunkJob(2, "a"), ChunkJob(4, "b")])
        assert [j.chunk_index for j in store.jobs()] == [2, 4, 7]
        assert 4 in store and 3 not in store

    def test_duplicate_index_rejected(self):
        from tts_batch.tts.state import ChunkJob, ChunkStateStore

        with pytest.raises(ValueError):
            ChunkStateStore([ChunkJob(1, "a"), ChunkJob(1, "b")])

    def test_to_dict(self):
        store = _store(1)
        store.mark_generating([0])
        store.mark_completed(0, _artifact(0))

        d = store.get(0).to_dict()
        assert d["status"] == "completed"
        assert d["filename"] == "fake-v-chunk0-1.mp3"
        assert "text" not in d
        assert store.get(0).to_dict(include_text=True)["text"] == "chunk 0"
