"""
Chunk State Store.

One ChunkJob per chunk of a run, tracking where that chunk is in its
lifecycle:

    pending ──> generating ──> completed
                          └──> failed

There are no transitions out of ``completed`` or ``failed``. Retrying a
failed chunk means starting a new run with fresh jobs, never reviving an
existing one.

Ownership:
    The batch scheduler of a run is the only writer. Everything else
    (progress endpoints, export, CLI summaries) reads copies via
    ``get()``, ``jobs()`` and ``counts()``; mutating a returned job does
    not affect the store.

Example:
    >>> store = ChunkStateStore.from_chunks(chunks)
    >>> store.mark_generating([0, 1])
    >>> store.mark_completed(0, artifact)
    >>> store.mark_failed(1, "HTTP 429")
    >>> store.counts()
    {'pending': 1, 'generating': 0, 'completed': 1, 'failed': 1}
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional

from tts_batch.tts.chunker import TextChunk
from tts_batch.tts.client import ArtifactRef


class ChunkStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ChunkStatus.COMPLETED, ChunkStatus.FAILED)


_ALLOWED = {
    ChunkStatus.PENDING: {ChunkStatus.GENERATING},
    ChunkStatus.GENERATING: {ChunkStatus.COMPLETED, ChunkStatus.FAILED},
    ChunkStatus.COMPLETED: set(),
    ChunkStatus.FAILED: set(),
}


class InvalidTransitionError(Exception):
    """A job was moved along an edge the lifecycle does not have."""

    def __init__(self, chunk_index: int, current: ChunkStatus, target: ChunkStatus):
        super().__init__(
            f"chunk {chunk_index}: cannot go from {current.value} to {target.value}"
        )
        self.chunk_index = chunk_index
        self.current = current
        self.target = target


@dataclass
class ChunkJob:
    """
    Mutable generation state of one chunk.

    ``artifact`` is set only when completed, ``error`` only when failed.
    """
    chunk_index: int
    text: str
    status: ChunkStatus = ChunkStatus.PENDING
    artifact: Optional[ArtifactRef] = None
    error: Optional[str] = None

    def copy(self) -> "ChunkJob":
        return replace(self)

    def to_dict(self, include_text: bool = False) -> Dict[str, object]:
        d: Dict[str, object] = {
            "chunk_index": self.chunk_index,
            "status": self.status.value,
            "chars": len(self.text),
        }
        if include_text:
            d["text"] = self.text
        if self.artifact is not None:
            d.update(self.artifact.to_dict())
        if self.error is not None:
            d["error"] = self.error
        return d


class ChunkStateStore:
    """
    Per-run map of chunk index to ChunkJob.

    Indices need not be contiguous: a retry run keeps the original indices
    of the chunks it re-submits.
    """

    def __init__(self, jobs: Iterable[ChunkJob] = ()):
        self._jobs: Dict[int, ChunkJob] = {}
        for job in jobs:
            if job.chunk_index in self._jobs:
                raise ValueError(f"duplicate chunk index {job.chunk_index}")
            self._jobs[job.chunk_index] = job

    @classmethod
    def from_chunks(cls, chunks: Iterable[TextChunk]) -> "ChunkStateStore":
        """One pending job per chunk."""
        return cls(ChunkJob(chunk_index=c.index, text=c.text) for c in chunks)

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, chunk_index: object) -> bool:
        return chunk_index in self._jobs

    # ── writes (scheduler only) ──────────────────────────────────────────

    def _job(self, chunk_index: int) -> ChunkJob:
        try:
            return self._jobs[chunk_index]
        except KeyError:
            raise KeyError(f"unknown chunk index {chunk_index}") from None

    def _transition(self, chunk_index: int, target: ChunkStatus) -> ChunkJob:
        job = self._job(chunk_index)
        if target not in _ALLOWED[job.status]:
            raise InvalidTransitionError(chunk_index, job.status, target)
        job.status = target
        return job

    def mark_generating(self, indices: Iterable[int]) -> None:
        # validate all first so a bad index leaves the batch untouched
        indices = list(indices)
        for i in indices:
            job = self._job(i)
            if ChunkStatus.GENERATING not in _ALLOWED[job.status]:
                raise InvalidTransitionError(i, job.status, ChunkStatus.GENERATING)
        for i in indices:
            self._transition(i, ChunkStatus.GENERATING)

    def mark_completed(self, chunk_index: int, artifact: ArtifactRef) -> None:
        job = self._transition(chunk_index, ChunkStatus.COMPLETED)
        job.artifact = artifact

    def mark_failed(self, chunk_index: int, error: str) -> None:
        job = self._transition(chunk_index, ChunkStatus.FAILED)
        job.error = error or "unknown error"

    def fail_unsettled(self, indices: Iterable[int], error: str) -> List[int]:
        """
        Fail every job in ``indices`` that is not terminal yet.

        Pending jobs are moved through ``generating`` first so the
        lifecycle is respected. Returns the indices that were failed.
        """
        failed: List[int] = []
        for i in indices:
            job = self._job(i)
            if job.status.terminal:
                continue
            if job.status == ChunkStatus.PENDING:
                self._transition(i, ChunkStatus.GENERATING)
            self.mark_failed(i, error)
            failed.append(i)
        return failed

    # ── reads ────────────────────────────────────────────────────────────

    def indices(self) -> List[int]:
        return sorted(self._jobs)

    def get(self, chunk_index: int) -> ChunkJob:
        return self._job(chunk_index).copy()

    def jobs(self) -> List[ChunkJob]:
        """Copies of all jobs ordered by chunk index."""
        return [self._jobs[i].copy() for i in sorted(self._jobs)]

    def completed_jobs(self) -> List[ChunkJob]:
        return [j for j in self.jobs() if j.status == ChunkStatus.COMPLETED]

    def failed_jobs(self) -> List[ChunkJob]:
        return [j for j in self.jobs() if j.status == ChunkStatus.FAILED]

    def counts(self) -> Dict[str, int]:
        out = {s.value: 0 for s in ChunkStatus}
        for job in self._jobs.values():
            out[job.status.value] += 1
        return out
